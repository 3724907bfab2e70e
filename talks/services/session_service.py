"""Session service - joining, reclaiming and leaving a group.

Identity is derived from (group, nickname), so joining is:

    authenticate -> read users/{uid} -> create it, or verify the PIN and
    touch lastSeen -> commit the session locally

Two people who pick the same nickname in the same group race on the same
record; the store keeps the last write and nothing here detects it.
"""

import logging
from typing import Callable

from talks.domain.errors import (
    AuthError,
    DomainError,
    IncorrectPinError,
    InvalidInputError,
    NotAllowedError,
    PinRequiredError,
    QuotaExceededError,
    StoreError,
)
from talks.domain.identity import Identity, verify_pin
from talks.domain.models import Registration, RegistrationState, SessionContext
from talks.domain.value_objects import GroupName, Nickname
from talks.services.attendance_store import AttendanceStore
from talks.services.event_bus import EventBus, TrackerEvent
from talks.stores.interfaces import (
    AuthProvider,
    AuthRejectedError,
    LocalStorage,
    StoreRejectedError,
    TreeStore,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


def store_error(exc: StoreRejectedError) -> DomainError:
    """Map a store rejection to the domain error surfaced to callers."""
    if exc.code == StoreRejectedError.RESOURCE_EXHAUSTED:
        return QuotaExceededError(exc.message)
    if exc.code == StoreRejectedError.PERMISSION_DENIED:
        return NotAllowedError(exc.message)
    return StoreError()


class SessionService:
    """Owns the SessionContext identity fields and the live subscriptions."""

    def __init__(
        self,
        context: SessionContext,
        store: TreeStore,
        auth: AuthProvider,
        local_storage: LocalStorage,
        bus: EventBus,
        *,
        root: str = "groups",
        storage_prefix: str = "fosdem",
        require_pin_when_on_file: bool = False,
        reload: Callable[[], None] | None = None,
    ) -> None:
        self._context = context
        self._store = store
        self._auth = auth
        self._local = local_storage
        self._bus = bus
        self._root = root
        self._group_key = f"{storage_prefix}_group"
        self._nickname_key = f"{storage_prefix}_nickname"
        self._require_pin = require_pin_when_on_file
        self._reload = reload
        self._unsubscribers: list[Unsubscribe] = []

    def group_store(self, group: str | None = None) -> AttendanceStore:
        return AttendanceStore(self._store, group or self._context.group_name, root=self._root)

    def _transition(self, state: RegistrationState) -> None:
        logger.debug("Registration %s -> %s", self._context.registration_state.value, state.value)
        self._context.registration_state = state

    def register(self, nickname: str, group: str, pin: str | None = None) -> Registration:
        """Join a group under a nickname, reclaiming it if it already exists.

        A failed attempt made while already joined leaves that session in
        force, and the registration state goes back to ACTIVE.

        Raises:
            InvalidInputError: If nickname or group is blank, or the group
                contains a character that cannot appear in a store key.
            AuthError: If no anonymous session could be started.
            PinRequiredError: If a PIN is on file, none was given, and
                REQUIRE_PIN_WHEN_ON_FILE is enabled.
            IncorrectPinError: If the PIN does not match the one on file.
            QuotaExceededError: If the store refuses a new user or group.
            NotAllowedError: If the group is not on the store's allowlist.
            StoreError: If the store refuses the write for another reason.
        """
        group_name = GroupName.from_string(group).value
        nick = Nickname.from_string(nickname).value
        try:
            registration = self._claim(group_name, nick, pin or None)
        except DomainError:
            if self._context.is_logged_in:
                self._transition(RegistrationState.ACTIVE)
            raise
        self._activate(registration)
        logger.info(
            "%s %s in group %s",
            "Reclaimed" if registration.existing else "Registered",
            registration.uid,
            group_name,
        )
        return registration

    def _claim(self, group_name: str, nick: str, pin: str | None) -> Registration:
        self._transition(RegistrationState.AUTHENTICATING)
        try:
            self._auth.ensure_anonymous_session()
        except AuthRejectedError as exc:
            self._transition(RegistrationState.REJECTED)
            logger.warning("Anonymous sign-in failed: %s", exc)
            raise AuthError() from exc

        identity = Identity.claim(group_name, nick, pin)
        users = self.group_store(group_name)

        try:
            self._transition(RegistrationState.CHECKING_EXISTING)
            existing = users.get_user(identity.uid)
            if existing is None:
                self._transition(RegistrationState.CREATING_NEW)
                users.create_user(identity)
                display_name = nick
            else:
                self._transition(RegistrationState.VERIFYING_PIN)
                self._check_pin(existing.pin_hash, pin, group_name, nick)
                users.touch_user(identity.uid)
                display_name = existing.nickname or nick
        except StoreRejectedError as exc:
            self._transition(RegistrationState.REJECTED)
            logger.warning("Store rejected registration in %s: %s", group_name, exc.message)
            raise store_error(exc) from exc

        return Registration(
            uid=identity.uid,
            nickname=display_name,
            group=group_name,
            existing=existing is not None,
        )

    def _check_pin(self, stored_hash: str | None, pin: str | None, group: str, nickname: str) -> None:
        if pin is None:
            if stored_hash and self._require_pin:
                self._transition(RegistrationState.PIN_REQUIRED)
                raise PinRequiredError(nickname)
            return
        if not verify_pin(stored_hash, pin, group):
            self._transition(RegistrationState.REJECTED)
            raise IncorrectPinError(nickname)

    def check_saved_session(self) -> str | None:
        return self._local.get_item(self._group_key)

    def restore_session(self) -> Registration | None:
        """Re-enter the group saved in local storage, or return None.

        Collaborator failures and stale or malformed hints all mean "no session".
        """
        group = self._local.get_item(self._group_key)
        nickname = self._local.get_item(self._nickname_key)
        if not group or not nickname:
            return None

        try:
            group = GroupName.from_string(group).value
            self._auth.ensure_anonymous_session()
            identity = Identity.claim(group, nickname)
            user = self.group_store(group).get_user(identity.uid)
        except (InvalidInputError, AuthRejectedError, StoreRejectedError) as exc:
            logger.warning("Could not restore session for group %s: %s", group, exc)
            return None

        if user is None or not Nickname(nickname).matches(user.nickname):
            logger.info("Saved session for group %s no longer matches the store", group)
            return None

        registration = Registration(uid=identity.uid, nickname=user.nickname, group=group, existing=True)
        self._activate(registration)
        return registration

    def _activate(self, registration: Registration) -> None:
        if self._context.group_name != registration.group:
            # switching groups without logging out; the old mirrors are stale
            self._stop_live_sync()
        self._context.group_name = registration.group
        self._context.nickname = registration.nickname
        self._context.current_user = registration.uid
        self._transition(RegistrationState.ACTIVE)
        self._local.set_item(self._group_key, registration.group)
        self._local.set_item(self._nickname_key, registration.nickname)
        self._bus.emit(TrackerEvent.USER_CHANGE, registration)
        if self._context.schedule is not None:
            self.start_live_sync()

    def start_live_sync(self) -> None:
        """Mirror the group's users and attendance. A no-op once started."""
        if self._context.is_initialized or not self._context.is_logged_in:
            return
        self._context.is_initialized = True
        users = self.group_store()
        self._unsubscribers.append(users.subscribe_users(self._on_users))
        self._unsubscribers.append(users.subscribe_attendance(self._on_attendance))
        logger.debug("Live sync started for group %s", self._context.group_name)

    def _stop_live_sync(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._context.is_initialized = False
        self._context.all_users = {}
        self._context.attendance = {}

    def _on_users(self, users) -> None:
        self._context.all_users = users
        self._bus.emit(TrackerEvent.USERS_UPDATE, users)

    def _on_attendance(self, attendance) -> None:
        self._context.attendance = attendance
        self._bus.emit(TrackerEvent.ATTENDANCE_UPDATE, attendance)

    def logout(self) -> None:
        self._local.remove_item(self._group_key)
        self._local.remove_item(self._nickname_key)
        self._stop_live_sync()
        self._auth.sign_out()
        logger.info("Left group %s", self._context.group_name)
        self._context.clear_identity()
        if self._reload is not None:
            self._reload()
