"""Domain error codes for the talks module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_INPUT = "INVALID_INPUT"
    AUTH_FAILED = "AUTH_FAILED"
    PIN_REQUIRED = "PIN_REQUIRED"
    INCORRECT_PIN = "INCORRECT_PIN"
    NOT_JOINED = "NOT_JOINED"
    PARSE_FAILED = "PARSE_FAILED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    NOT_ALLOWED = "NOT_ALLOWED"
    STORE_FAILED = "STORE_FAILED"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidInputError(DomainError):
    """Raised when a caller supplies missing or unknown values."""

    def __init__(self, message: str = "Please enter both a nickname and a group secret") -> None:
        super().__init__(code=ErrorCode.INVALID_INPUT, message=message)


class AuthError(DomainError):
    """Raised when the anonymous auth provider rejects a sign-in."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.AUTH_FAILED,
            message="Could not start an anonymous session",
        )


class PinRequiredError(DomainError):
    """Raised when a nickname is PIN protected and no PIN was supplied."""

    def __init__(self, nickname: str) -> None:
        super().__init__(
            code=ErrorCode.PIN_REQUIRED,
            message="This nickname is protected by a PIN",
        )
        self.nickname = nickname


class IncorrectPinError(DomainError):
    """Raised when the supplied PIN does not match the one on record."""

    def __init__(self, nickname: str) -> None:
        super().__init__(
            code=ErrorCode.INCORRECT_PIN,
            message="Incorrect PIN for this nickname",
        )
        self.nickname = nickname


class NotJoinedError(DomainError):
    """Raised when an attendance action is attempted without a session."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NOT_JOINED,
            message="Please join a group first",
        )


class ParseError(DomainError):
    """Raised when a schedule document is not well-formed markup."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            code=ErrorCode.PARSE_FAILED,
            message="Schedule document could not be parsed",
        )
        self.detail = detail


class QuotaExceededError(DomainError):
    """Raised when the store refuses a write because a group limit is reached."""

    def __init__(self, message: str = "Group limit reached") -> None:
        super().__init__(code=ErrorCode.QUOTA_EXCEEDED, message=message)


class NotAllowedError(DomainError):
    """Raised when the store refuses a write for a group outside the allowlist."""

    def __init__(self, message: str = "Group not allowed") -> None:
        super().__init__(code=ErrorCode.NOT_ALLOWED, message=message)


class StoreError(DomainError):
    """Raised when the store rejects a write for any other reason."""

    def __init__(self, message: str = "Could not save changes") -> None:
        super().__init__(code=ErrorCode.STORE_FAILED, message=message)
