"""Domain models for the schedule, group members and attendance.

These are pure domain objects. The key-tree persistence rows are in
talks/models.py and the wire format (camelCase keys) is only handled by
services/attendance_store.py.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping

from talks.domain.value_objects import AttendanceKind, TalkFilter, View


@dataclass(frozen=True)
class Talk:
    """A scheduled session. Optional fields are None when the document omits them."""

    slug: str
    title: str
    date: str | None = None
    start: str | None = None
    duration: str | None = None
    room: str | None = None
    url: str | None = None

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.date or "", self.start or "")


@dataclass(frozen=True)
class Track:
    """A thematic track and its talks, ordered by (date, start)."""

    slug: str
    name: str
    talks: tuple[Talk, ...] = ()

    def with_talks(self, talks: tuple[Talk, ...]) -> "Track":
        return replace(self, talks=talks)


@dataclass(frozen=True)
class PlannedTalk:
    """A talk resolved together with the name of its track."""

    talk: Talk
    track_slug: str
    track_name: str

    @property
    def slug(self) -> str:
        return self.talk.slug

    @property
    def sort_key(self) -> tuple[str, str]:
        return self.talk.sort_key


@dataclass(frozen=True)
class GroupUser:
    """A member of a group as stored under users/{uid}."""

    uid: str
    nickname: str
    last_seen: int | None = None
    created_at: int | None = None
    pin_hash: str | None = None


@dataclass(frozen=True)
class Attendee:
    """A uid marked on a talk, with the nickname to show for it."""

    uid: str
    nickname: str


@dataclass(frozen=True)
class Registration:
    """Outcome of a successful join or session restore."""

    uid: str
    nickname: str
    group: str
    existing: bool


# talk slug -> kind -> uids carrying the marker
Attendance = Mapping[str, Mapping[AttendanceKind, frozenset[str]]]

Schedule = Mapping[str, Track]


class RegistrationState(str, Enum):
    """Identity claim progress."""

    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    CHECKING_EXISTING = "checking_existing"
    CREATING_NEW = "creating_new"
    VERIFYING_PIN = "verifying_pin"
    ACTIVE = "active"
    PIN_REQUIRED = "pin_required"
    REJECTED = "rejected"


@dataclass
class SessionContext:
    """Process-local session state.

    Remote-mirrored fields (all_users, attendance) are replaced wholesale by
    the live subscriptions; view, filter and search are only changed through
    the tracker facade.
    """

    current_user: str | None = None
    group_name: str | None = None
    nickname: str | None = None
    schedule: dict[str, Track] | None = None
    all_users: dict[str, GroupUser] = field(default_factory=dict)
    attendance: dict[str, dict[AttendanceKind, frozenset[str]]] = field(default_factory=dict)
    current_view: View = View.SCHEDULE
    current_filter: TalkFilter = field(default_factory=TalkFilter.none)
    search_query: str = ""
    is_initialized: bool = False
    registration_state: RegistrationState = RegistrationState.ANONYMOUS

    @property
    def is_logged_in(self) -> bool:
        return bool(self.current_user) and bool(self.group_name)

    def clear_identity(self) -> None:
        self.current_user = None
        self.group_name = None
        self.nickname = None
        self.all_users = {}
        self.attendance = {}
        self.is_initialized = False
        self.registration_state = RegistrationState.ANONYMOUS

    def snapshot(self) -> "StateSnapshot":
        return StateSnapshot(
            current_user=self.current_user,
            group_name=self.group_name,
            nickname=self.nickname,
            schedule=dict(self.schedule) if self.schedule is not None else None,
            all_users=dict(self.all_users),
            attendance={slug: dict(kinds) for slug, kinds in self.attendance.items()},
            current_view=self.current_view,
            current_filter=self.current_filter,
            search_query=self.search_query,
            is_logged_in=self.is_logged_in,
        )


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only copy of the session state handed to the UI layer."""

    current_user: str | None
    group_name: str | None
    nickname: str | None
    schedule: dict[str, Track] | None
    all_users: dict[str, GroupUser]
    attendance: dict[str, dict[AttendanceKind, frozenset[str]]]
    current_view: View
    current_filter: TalkFilter
    search_query: str
    is_logged_in: bool
