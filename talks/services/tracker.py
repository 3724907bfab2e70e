"""TalkTracker - the operations the UI layer calls.

Wires the session context, collaborators, services and event bus together.
Collaborators default to the backends named in ``settings.TALKS``.
"""

import logging
from typing import Any, Callable

from django.utils.module_loading import import_string

from talks.conf import talk_settings
from talks.domain.models import (
    Attendee,
    GroupUser,
    PlannedTalk,
    Registration,
    SessionContext,
    StateSnapshot,
    Track,
)
from talks.domain.value_objects import AttendanceKind, GroupName, TalkFilter, View
from talks.handlers.serializers import StateSnapshotSerializer
from talks.services import projection
from talks.services.attendance_service import AttendanceService
from talks.services.event_bus import EventBus, Handler, TrackerEvent
from talks.services.schedule_parser import parse
from talks.services.session_service import SessionService
from talks.stores.interfaces import AuthProvider, LocalStorage, TreeStore
from talks.stores.rules import Availability, GroupQuota

logger = logging.getLogger(__name__)


def default_quota() -> GroupQuota | None:
    return GroupQuota.from_settings() if talk_settings.ENFORCE_QUOTA else None


def default_store() -> TreeStore:
    return import_string(talk_settings.STORE_BACKEND)(rules=default_quota())


def default_auth() -> AuthProvider:
    return import_string(talk_settings.AUTH_BACKEND)()


def default_local_storage() -> LocalStorage:
    return import_string(talk_settings.LOCAL_STORAGE_BACKEND)()


class TalkTracker:
    """Group talk tracker for one client session."""

    def __init__(
        self,
        store: TreeStore | None = None,
        auth: AuthProvider | None = None,
        local_storage: LocalStorage | None = None,
        *,
        reload: Callable[[], None] | None = None,
        quota: GroupQuota | None = None,
    ) -> None:
        self._store = store or default_store()
        self._auth = auth or default_auth()
        self._quota = quota or GroupQuota.from_settings()
        self._context = SessionContext()
        self._bus = EventBus()
        self._sessions = SessionService(
            self._context,
            self._store,
            self._auth,
            local_storage or default_local_storage(),
            self._bus,
            root=talk_settings.STORE_ROOT,
            storage_prefix=talk_settings.LOCAL_STORAGE_PREFIX,
            require_pin_when_on_file=talk_settings.REQUIRE_PIN_WHEN_ON_FILE,
            reload=reload,
        )
        self._attendance = AttendanceService(self._context, self._sessions)
        self._auth.on_auth_state_change(lambda session_id: self._bus.emit(TrackerEvent.AUTH_STATE_CHANGE, session_id))

    # Schedule

    def load_schedule(self, document: str | bytes) -> dict[str, Track]:
        """Parse and install a schedule document.

        Raises:
            ParseError: If the document is not well-formed XML.
        """
        schedule = parse(document)
        self._context.schedule = schedule
        logger.info("Loaded schedule with %d tracks", len(schedule))
        self._bus.emit(TrackerEvent.SCHEDULE_LOADED, schedule)
        self._sessions.start_live_sync()
        return schedule

    # Session

    def register(self, nickname: str, group: str, pin: str | None = None) -> Registration:
        return self._sessions.register(nickname, group, pin)

    def restore_session(self) -> Registration | None:
        return self._sessions.restore_session()

    def check_saved_session(self) -> str | None:
        return self._sessions.check_saved_session()

    def logout(self) -> None:
        self._sessions.logout()

    def check_availability(self, group: str) -> Availability:
        return self._quota.check_availability(self._store, GroupName.from_string(group).value)

    # Attendance

    def toggle_attendance(self, talk_slug: str, kind: "str | AttendanceKind" = AttendanceKind.GOING) -> bool:
        return self._attendance.toggle(talk_slug, kind)

    def is_user_attending(self, talk_slug: str, kind: "str | AttendanceKind" = AttendanceKind.GOING) -> bool:
        return self._attendance.is_attending(talk_slug, kind)

    def get_attendees(self, talk_slug: str, kind: "str | AttendanceKind" = AttendanceKind.GOING) -> list[Attendee]:
        return self._attendance.attendees(talk_slug, kind)

    # Projections

    def get_filtered_talks(self) -> dict[str, Track]:
        ctx = self._context
        return projection.filtered_talks(
            ctx.schedule,
            ctx.attendance,
            ctx.current_view,
            ctx.current_filter,
            ctx.search_query,
            ctx.current_user,
        )

    def get_my_talks(self) -> list[PlannedTalk]:
        return projection.talks_for_user(self._context.schedule, self._context.attendance, self._context.current_user)

    def get_talks_for_user(self, uid: str) -> list[PlannedTalk]:
        return projection.talks_for_user(self._context.schedule, self._context.attendance, uid)

    def get_here_status(self) -> dict[str, str]:
        return projection.here_status(self._context.attendance)

    def get_talk_by_slug(self, talk_slug: str) -> PlannedTalk | None:
        return projection.find_talk(self._context.schedule, talk_slug)

    def get_nickname(self, uid: str) -> str:
        return projection.nickname_for(self._context.all_users, uid)

    def get_other_users(self) -> list[GroupUser]:
        return projection.other_users(self._context.all_users, self._context.current_user)

    # View state

    def set_current_view(self, view: "str | View") -> None:
        self._context.current_view = View.parse(view)
        self._bus.emit(TrackerEvent.VIEW_CHANGE, self._context.current_view)

    def set_search_query(self, query: str | None) -> None:
        self._context.search_query = query or ""

    def set_filter(self, type: str, value: str | None) -> None:
        self._context.current_filter = TalkFilter.from_parts(type, value)

    def clear_filter(self) -> None:
        self._context.current_filter = TalkFilter.none()

    # Events and state

    def on(self, event: "str | TrackerEvent", handler: Handler) -> Callable[[], None]:
        return self._bus.on(event, handler)

    def get_state(self) -> StateSnapshot:
        return self._context.snapshot()

    def export_state(self) -> dict[str, Any]:
        """The state snapshot as JSON-ready primitives."""
        return StateSnapshotSerializer(self.get_state()).data
