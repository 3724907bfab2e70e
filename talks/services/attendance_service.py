"""Attendance service - marking talks as going or here."""

import logging

from talks.domain.errors import InvalidInputError, NotJoinedError
from talks.domain.models import Attendee, SessionContext
from talks.domain.value_objects import AttendanceKind, check_key
from talks.services import projection
from talks.services.attendance_store import AttendanceStore
from talks.services.session_service import SessionService, store_error
from talks.stores.interfaces import StoreRejectedError

logger = logging.getLogger(__name__)


class AttendanceService:
    """Toggles the current user's markers and answers attendance questions."""

    def __init__(self, context: SessionContext, sessions: SessionService) -> None:
        self._context = context
        self._sessions = sessions

    def _joined_store(self) -> tuple[AttendanceStore, str]:
        if not self._context.is_logged_in:
            raise NotJoinedError()
        return self._sessions.group_store(), self._context.current_user

    def toggle(self, talk_slug: str, kind: "str | AttendanceKind" = AttendanceKind.GOING) -> bool:
        """Flip the current user's marker on a talk. Returns True when now marked.

        Marking ``here`` first clears the user's ``here`` marker on every
        other talk. This is a read then a write, not a transaction.

        Raises:
            InvalidInputError: If the kind is unknown or the slug cannot be a store key.
            NotJoinedError: If there is no active session.
        """
        kind = AttendanceKind.parse(kind)
        if not talk_slug:
            raise InvalidInputError("Talk slug is required")
        check_key(talk_slug, "Talk slug")
        store, uid = self._joined_store()
        try:
            if store.has_marker(talk_slug, kind, uid):
                store.remove_marker(talk_slug, kind, uid)
                logger.debug("%s unmarked %s on %s", uid, kind.value, talk_slug)
                return False
            if kind is AttendanceKind.HERE:
                for other in store.talks_marked(AttendanceKind.HERE, uid):
                    store.remove_marker(other, AttendanceKind.HERE, uid)
            store.set_marker(talk_slug, kind, uid)
        except StoreRejectedError as exc:
            raise store_error(exc) from exc
        logger.debug("%s marked %s on %s", uid, kind.value, talk_slug)
        return True

    def is_attending(self, talk_slug: str, kind: "str | AttendanceKind" = AttendanceKind.GOING) -> bool:
        if not self._context.is_logged_in:
            return False
        return projection.has_marker(
            self._context.attendance,
            talk_slug,
            AttendanceKind.parse(kind),
            self._context.current_user,
        )

    def attendees(self, talk_slug: str, kind: "str | AttendanceKind" = AttendanceKind.GOING) -> list[Attendee]:
        """Users marked on a talk, with nicknames read from the store."""
        uids = self._context.attendance.get(talk_slug, {}).get(AttendanceKind.parse(kind), frozenset())
        if not uids or not self._context.group_name:
            return []
        store = self._sessions.group_store()
        return [
            Attendee(uid=uid, nickname=store.get_nickname(uid) or projection.ANONYMOUS)
            for uid in sorted(uids)
        ]
