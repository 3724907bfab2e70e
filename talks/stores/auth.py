"""In-process anonymous auth provider."""

import logging
import uuid
from typing import Callable

from talks.stores.interfaces import AuthProvider

logger = logging.getLogger(__name__)


class AnonymousAuth(AuthProvider):
    """Issues a random session id on first use and keeps it until sign-out."""

    def __init__(self) -> None:
        self._session_id: str | None = None
        self._listeners: list[Callable[[str | None], None]] = []

    def ensure_anonymous_session(self) -> str:
        if self._session_id is None:
            self._session_id = uuid.uuid4().hex
            logger.info("Started anonymous session %s", self._session_id)
            self._notify()
        return self._session_id

    def on_auth_state_change(self, callback: Callable[[str | None], None]) -> None:
        self._listeners.append(callback)

    def sign_out(self) -> None:
        if self._session_id is None:
            return
        self._session_id = None
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self._session_id)
