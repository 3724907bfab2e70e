"""Collaborator interfaces (repository pattern).

The key-tree store, the anonymous auth provider and local persistence are
external services. Implementations must be swappable; the core only talks to
these interfaces.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

Unsubscribe = Callable[[], None]
ValueCallback = Callable[[Any], None]


class _ServerTimestamp:
    """Placeholder the store replaces with its own clock (epoch ms) on write."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class StoreRejectedError(Exception):
    """A store refused or could not complete an operation. ``code`` mirrors the backend's error code."""

    RESOURCE_EXHAUSTED = "resource-exhausted"
    PERMISSION_DENIED = "permission-denied"
    UNAVAILABLE = "unavailable"

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class AuthRejectedError(Exception):
    """The auth provider could not issue an anonymous session."""


class TreeStore(ABC):
    """Interface for a key-tree store with live subscriptions.

    Paths are ``/`` separated. Values are JSON-like: dicts, lists, strings,
    numbers, booleans. Writing ``None`` removes the node. Writes are last
    write wins.
    """

    @abstractmethod
    def get(self, path: str) -> Any:
        """Return the value at path (a nested dict for subtrees), or None."""
        ...

    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Replace the value at path."""
        ...

    @abstractmethod
    def update(self, path: str, values: dict[str, Any]) -> None:
        """Set each child of path named in values, leaving other children alone."""
        ...

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove path and everything below it."""
        ...

    @abstractmethod
    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        """Deliver the value at path now and after every change affecting it."""
        ...


class AuthProvider(ABC):
    """Interface for anonymous session issuance."""

    @abstractmethod
    def ensure_anonymous_session(self) -> str:
        """Return the current session id, signing in anonymously if needed.

        Raises:
            AuthRejectedError: If the provider refuses to issue a session.
        """
        ...

    @abstractmethod
    def on_auth_state_change(self, callback: Callable[[str | None], None]) -> None:
        """Call back with the session id (or None) whenever it changes."""
        ...

    @abstractmethod
    def sign_out(self) -> None:
        """End the anonymous session. A no-op when there is none."""
        ...


class LocalStorage(ABC):
    """Interface for synchronous client-side key-value persistence."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...
