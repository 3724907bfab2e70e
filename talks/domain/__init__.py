from talks.domain.identity import Identity, derive_uid, hash_pin, verify_pin
from talks.domain.models import (
    Attendance,
    Attendee,
    GroupUser,
    PlannedTalk,
    Registration,
    RegistrationState,
    Schedule,
    SessionContext,
    StateSnapshot,
    Talk,
    Track,
)
from talks.domain.value_objects import (
    AttendanceKind,
    FilterType,
    GroupName,
    Nickname,
    TalkFilter,
    View,
)

__all__ = [
    "Attendance",
    "Attendee",
    "GroupUser",
    "PlannedTalk",
    "Registration",
    "RegistrationState",
    "Schedule",
    "SessionContext",
    "StateSnapshot",
    "Talk",
    "Track",
    "Identity",
    "derive_uid",
    "hash_pin",
    "verify_pin",
    "AttendanceKind",
    "FilterType",
    "GroupName",
    "Nickname",
    "TalkFilter",
    "View",
]
