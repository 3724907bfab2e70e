"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from enum import Enum
from typing import Self

from talks.domain.errors import InvalidInputError

# characters a key-tree segment may not contain
RESERVED_KEY_CHARS = frozenset("/.#$[]")


def check_key(value: str, what: str) -> str:
    """Return value if it can be used as a single store path segment."""
    if any(char in RESERVED_KEY_CHARS for char in value):
        raise InvalidInputError(f"{what} may not contain any of / . # $ [ ]")
    return value


class AttendanceKind(str, Enum):
    """Attendance intent markers kept per talk per user."""

    GOING = "going"
    HERE = "here"

    @classmethod
    def parse(cls, value: "str | AttendanceKind") -> "AttendanceKind":
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(f"Unknown attendance kind: {value}") from None


class View(str, Enum):
    """Top-level views the UI can switch between."""

    SCHEDULE = "schedule"
    MYPLAN = "myplan"
    FRIENDS = "friends"

    @classmethod
    def parse(cls, value: "str | View") -> "View":
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(f"Unknown view: {value}") from None


class FilterType(str, Enum):
    """Friends-view filter modes."""

    NONE = "none"
    USER = "user"


@dataclass(frozen=True)
class TalkFilter:
    """Current friends-view filter."""

    type: FilterType = FilterType.NONE
    value: str | None = None

    @classmethod
    def none(cls) -> Self:
        return cls()

    @classmethod
    def from_parts(cls, type: "str | FilterType", value: str | None) -> Self:
        try:
            filter_type = FilterType(type)
        except ValueError:
            raise InvalidInputError(f"Unknown filter type: {type}") from None
        return cls(type=filter_type, value=value)


@dataclass(frozen=True)
class GroupName:
    """Group secret shared by everyone in a group. Whitespace is trimmed."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise InvalidInputError()
        check_key(self.value, "Group secret")

    @classmethod
    def from_string(cls, value: str | None) -> Self:
        return cls(value=(value or "").strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Nickname:
    """Display nickname. Case is preserved for display and folded for matching."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise InvalidInputError()

    @classmethod
    def from_string(cls, value: str | None) -> Self:
        return cls(value=(value or "").strip())

    def matches(self, other: str | None) -> bool:
        return other is not None and self.value.lower() == other.strip().lower()

    def __str__(self) -> str:
        return self.value
