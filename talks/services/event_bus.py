"""In-process notification channels, one django Signal per event."""

from enum import Enum
from typing import Any, Callable

from django.dispatch import Signal

from talks.domain.errors import InvalidInputError

Handler = Callable[[Any], None]


class TrackerEvent(str, Enum):
    SCHEDULE_LOADED = "onScheduleLoaded"
    USER_CHANGE = "onUserChange"
    USERS_UPDATE = "onUsersUpdate"
    ATTENDANCE_UPDATE = "onAttendanceUpdate"
    VIEW_CHANGE = "onViewChange"
    AUTH_STATE_CHANGE = "onAuthStateChange"


class EventBus:
    """Synchronous publish/subscribe keyed by TrackerEvent.

    Handlers run in subscription order on the caller's thread and their
    exceptions propagate to whoever triggered the change.
    """

    def __init__(self) -> None:
        self._channels = {event: Signal() for event in TrackerEvent}

    @staticmethod
    def _event(event: "str | TrackerEvent") -> TrackerEvent:
        try:
            return TrackerEvent(event)
        except ValueError:
            raise InvalidInputError(f"Unknown event: {event}") from None

    def on(self, event: "str | TrackerEvent", handler: Handler) -> Callable[[], None]:
        """Subscribe handler(payload). Returns a callable that unsubscribes it."""
        signal = self._channels[self._event(event)]

        def receiver(sender, payload=None, **kwargs):
            handler(payload)

        signal.connect(receiver, weak=False)
        return lambda: signal.disconnect(receiver)

    def emit(self, event: TrackerEvent, payload: Any = None) -> None:
        self._channels[event].send(sender=self.__class__, payload=payload)
