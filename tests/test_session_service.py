"""Tests for joining, reclaiming and leaving a group.

Run with: pytest tests/test_session_service.py -v
"""

import itertools

import pytest

from talks.domain import RegistrationState, derive_uid, hash_pin
from talks.domain.errors import (
    AuthError,
    IncorrectPinError,
    InvalidInputError,
    NotAllowedError,
    PinRequiredError,
    QuotaExceededError,
)
from talks.services.attendance_store import AttendanceStore
from talks.services.event_bus import TrackerEvent
from talks.services.tracker import TalkTracker
from talks.stores.auth import AnonymousAuth
from talks.stores.interfaces import AuthRejectedError
from talks.stores.local_storage import MemoryLocalStorage
from talks.stores.memory_store import MemoryTreeStore
from talks.stores.rules import GroupQuota


class RejectingAuth(AnonymousAuth):
    def ensure_anonymous_session(self) -> str:
        raise AuthRejectedError("anonymous sign-in disabled")


def quota_tracker(quota: GroupQuota) -> TalkTracker:
    return TalkTracker(
        store=MemoryTreeStore(rules=quota),
        auth=AnonymousAuth(),
        local_storage=MemoryLocalStorage(),
    )


@pytest.fixture
def store():
    ticks = itertools.count(1000)
    return MemoryTreeStore(clock=lambda: next(ticks))


class TestRegister:
    """Tests for register()."""

    def test_new_user(self, tracker, store):
        registration = tracker.register("Alice", "devgroup")
        assert registration.uid == derive_uid("devgroup", "Alice")
        assert registration.existing is False
        assert (registration.nickname, registration.group) == ("Alice", "devgroup")
        record = store.get(f"groups/devgroup/users/{registration.uid}")
        assert record["nickname"] == "Alice"
        assert isinstance(record["createdAt"], int)
        assert record["createdAt"] == record["lastSeen"]
        assert "pinHash" not in record

    def test_case_only_difference_reclaims(self, make_tracker):
        first = make_tracker().register("Alice", "devgroup")
        second = make_tracker().register("alice", "devgroup")
        assert second.uid == first.uid
        assert second.existing is True
        assert second.nickname == "Alice"

    def test_reclaim_only_touches_last_seen(self, make_tracker, store):
        uid = make_tracker().register("Alice", "devgroup", pin="1234").uid
        before = store.get(f"groups/devgroup/users/{uid}")
        make_tracker().register("ALICE", "devgroup", pin="1234")
        after = store.get(f"groups/devgroup/users/{uid}")
        assert after["lastSeen"] > before["lastSeen"]
        assert {k: v for k, v in after.items() if k != "lastSeen"} == {
            k: v for k, v in before.items() if k != "lastSeen"
        }

    def test_inputs_are_trimmed(self, tracker):
        registration = tracker.register("  Alice ", " devgroup ")
        assert registration.uid == derive_uid("devgroup", "alice")
        assert registration.group == "devgroup"

    @pytest.mark.parametrize("nickname, group", [("", "devgroup"), ("Alice", ""), ("  ", "devgroup"), ("Alice", None)])
    def test_blank_input(self, tracker, nickname, group):
        with pytest.raises(InvalidInputError):
            tracker.register(nickname, group)
        assert not tracker.get_state().is_logged_in

    def test_pin_is_stored_as_hash(self, tracker, store):
        uid = tracker.register("Alice", "devgroup", pin="1234").uid
        assert store.get(f"groups/devgroup/users/{uid}/pinHash") == hash_pin("1234", "devgroup")

    def test_empty_pin_is_no_pin(self, tracker, store):
        uid = tracker.register("Alice", "devgroup", pin="").uid
        assert store.get(f"groups/devgroup/users/{uid}/pinHash") is None

    def test_wrong_pin(self, make_tracker):
        make_tracker().register("Alice", "devgroup", pin="1234")
        intruder = make_tracker()
        with pytest.raises(IncorrectPinError):
            intruder.register("alice", "devgroup", pin="0000")
        state = intruder.get_state()
        assert not state.is_logged_in
        assert intruder._context.registration_state is RegistrationState.REJECTED

    def test_right_pin(self, make_tracker):
        make_tracker().register("Alice", "devgroup", pin="1234")
        assert make_tracker().register("alice", "devgroup", pin="1234").existing

    def test_legacy_user_accepts_any_pin(self, make_tracker, store):
        uid = derive_uid("devgroup", "Alice")
        store.set(f"groups/devgroup/users/{uid}", {"nickname": "Alice", "lastSeen": 1})
        assert make_tracker().register("Alice", "devgroup", pin="9999").existing

    def test_no_pin_reclaims_protected_nickname(self, make_tracker):
        """Reclaiming without a PIN succeeds by default even when one is on file."""
        first = make_tracker().register("Alice", "devgroup", pin="1234")
        second = make_tracker().register("Alice", "devgroup")
        assert second.uid == first.uid

    def test_pin_required_when_configured(self, settings, make_tracker):
        settings.TALKS = {"REQUIRE_PIN_WHEN_ON_FILE": True}
        make_tracker().register("Alice", "devgroup", pin="1234")
        tracker = make_tracker()
        with pytest.raises(PinRequiredError):
            tracker.register("Alice", "devgroup")
        assert tracker._context.registration_state is RegistrationState.PIN_REQUIRED

    def test_auth_failure(self, make_tracker, store):
        tracker = make_tracker(auth=RejectingAuth())
        with pytest.raises(AuthError):
            tracker.register("Alice", "devgroup")
        assert store.get("groups") is None

    def test_quota_exceeded(self):
        tracker = quota_tracker(GroupQuota(max_users_per_group=1))
        tracker.register("Alice", "devgroup")
        with pytest.raises(QuotaExceededError):
            tracker.register("Bob", "devgroup")

    def test_not_allowed(self):
        tracker = quota_tracker(GroupQuota(allowed_groups=frozenset({"crew"})))
        with pytest.raises(NotAllowedError):
            tracker.register("Alice", "devgroup")
        assert not tracker.get_state().is_logged_in

    def test_persists_session_hints(self, make_tracker):
        local = MemoryLocalStorage()
        make_tracker(local_storage=local).register("Alice", "devgroup")
        assert local.get_item("fosdem_group") == "devgroup"
        assert local.get_item("fosdem_nickname") == "Alice"

    def test_emits_user_change(self, tracker):
        seen = []
        tracker.on(TrackerEvent.USER_CHANGE, seen.append)
        registration = tracker.register("Alice", "devgroup")
        assert seen == [registration]

    def test_emits_auth_state_change_on_first_sign_in(self, tracker):
        seen = []
        tracker.on("onAuthStateChange", seen.append)
        tracker.register("Alice", "devgroup")
        tracker.register("Alice", "devgroup")
        assert len(seen) == 1
        assert seen[0]

    def test_same_nickname_race_is_last_write_wins(self, make_tracker, store, monkeypatch):
        """Two claimants who both see no record both create it; the later write wins."""
        first = make_tracker()
        second = make_tracker()
        monkeypatch.setattr(AttendanceStore, "get_user", lambda self, uid: None)
        first.register("Alice", "devgroup", pin="1111")
        second.register("Alice", "devgroup", pin="2222")
        uid = derive_uid("devgroup", "Alice")
        assert store.get(f"groups/devgroup/users/{uid}/pinHash") == hash_pin("2222", "devgroup")
        assert first.get_state().current_user == second.get_state().current_user == uid

    def test_group_cannot_address_another_groups_tree(self, make_tracker, joined, store):
        with pytest.raises(InvalidInputError):
            make_tracker().register("mallory", "devgroup/attendance/keynote/going")
        assert joined.get_attendees("keynote") == []
        assert store.get("groups/devgroup/attendance") is None

    def test_group_cannot_step_around_the_allowlist(self):
        quota_store = MemoryTreeStore(rules=GroupQuota(allowed_groups=frozenset({"devgroup"})))
        tracker = TalkTracker(store=quota_store, auth=AnonymousAuth(), local_storage=MemoryLocalStorage())
        with pytest.raises(InvalidInputError):
            tracker.register("eve", "outsider/x")
        assert quota_store.get("groups") is None

    def test_failed_attempt_keeps_current_session(self, make_tracker):
        make_tracker().register("Bob", "devgroup", pin="1234")
        tracker = make_tracker()
        alice = tracker.register("Alice", "devgroup")

        with pytest.raises(IncorrectPinError):
            tracker.register("bob", "devgroup", pin="0000")

        state = tracker.get_state()
        assert state.is_logged_in
        assert (state.current_user, state.nickname) == (alice.uid, "Alice")
        assert tracker._context.registration_state is RegistrationState.ACTIVE

    def test_failed_attempt_without_session_stays_rejected(self):
        tracker = TalkTracker(
            store=MemoryTreeStore(rules=GroupQuota(allowed_groups=frozenset())),
            auth=AnonymousAuth(),
            local_storage=MemoryLocalStorage(),
        )
        with pytest.raises(NotAllowedError):
            tracker.register("Alice", "devgroup")
        assert tracker._context.registration_state is RegistrationState.REJECTED


class TestRestoreSession:
    """Tests for restore_session()."""

    def test_restores_saved_session(self, make_tracker):
        local = MemoryLocalStorage()
        original = make_tracker(local_storage=local).register("Alice", "devgroup")
        restored_tracker = make_tracker(local_storage=local)
        seen = []
        restored_tracker.on(TrackerEvent.USER_CHANGE, seen.append)

        restored = restored_tracker.restore_session()

        assert restored.uid == original.uid
        assert restored.existing
        assert seen == [restored]
        state = restored_tracker.get_state()
        assert (state.current_user, state.group_name, state.nickname) == (original.uid, "devgroup", "Alice")

    def test_nothing_saved(self, tracker):
        assert tracker.restore_session() is None
        assert tracker.check_saved_session() is None

    def test_check_saved_session(self, make_tracker):
        local = MemoryLocalStorage()
        make_tracker(local_storage=local).register("Alice", "devgroup")
        assert make_tracker(local_storage=local).check_saved_session() == "devgroup"

    def test_user_record_gone(self, make_tracker, store):
        local = MemoryLocalStorage()
        make_tracker(local_storage=local).register("Alice", "devgroup")
        store.remove("groups/devgroup")
        tracker = make_tracker(local_storage=local)
        assert tracker.restore_session() is None
        assert not tracker.get_state().is_logged_in

    def test_nickname_mismatch(self, make_tracker, store):
        local = MemoryLocalStorage({"fosdem_group": "devgroup", "fosdem_nickname": "Alice"})
        uid = derive_uid("devgroup", "Alice")
        store.set(f"groups/devgroup/users/{uid}", {"nickname": "Somebody else"})
        assert make_tracker(local_storage=local).restore_session() is None

    def test_auth_failure_returns_none(self, make_tracker):
        local = MemoryLocalStorage()
        make_tracker(local_storage=local).register("Alice", "devgroup")
        assert make_tracker(local_storage=local, auth=RejectingAuth()).restore_session() is None

    def test_malformed_saved_group(self, make_tracker):
        local = MemoryLocalStorage({"fosdem_group": "dev/group", "fosdem_nickname": "Alice"})
        tracker = make_tracker(local_storage=local)
        assert tracker.restore_session() is None
        assert not tracker.get_state().is_logged_in

    def test_restore_starts_live_sync_when_schedule_loaded(self, make_tracker, schedule_xml):
        local = MemoryLocalStorage()
        make_tracker(local_storage=local).register("Alice", "devgroup")
        tracker = make_tracker(local_storage=local)
        tracker.load_schedule(schedule_xml)
        tracker.restore_session()
        assert tracker.get_nickname(derive_uid("devgroup", "alice")) == "Alice"


class TestLogout:
    """Tests for logout()."""

    def test_clears_everything_and_reloads(self, make_tracker, schedule_xml):
        reloads = []
        local = MemoryLocalStorage()
        tracker = make_tracker(local_storage=local, reload=lambda: reloads.append(True))
        tracker.load_schedule(schedule_xml)
        tracker.register("Alice", "devgroup")

        tracker.logout()

        state = tracker.get_state()
        assert not state.is_logged_in
        assert (state.current_user, state.group_name, state.nickname) == (None, None, None)
        assert state.all_users == {}
        assert local.get_item("fosdem_group") is None
        assert local.get_item("fosdem_nickname") is None
        assert reloads == [True]

    def test_stops_live_sync(self, make_tracker, schedule_xml):
        tracker = make_tracker()
        tracker.load_schedule(schedule_xml)
        tracker.register("Alice", "devgroup")
        tracker.logout()
        seen = []
        tracker.on(TrackerEvent.USERS_UPDATE, seen.append)

        make_tracker().register("Bob", "devgroup")

        assert seen == []
        assert tracker.get_state().all_users == {}

    def test_can_join_again(self, make_tracker, schedule_xml):
        tracker = make_tracker()
        tracker.load_schedule(schedule_xml)
        tracker.register("Alice", "devgroup")
        tracker.logout()
        tracker.register("Alice", "devgroup")
        assert tracker.get_nickname(derive_uid("devgroup", "alice")) == "Alice"

    def test_ends_the_anonymous_session(self, tracker):
        seen = []
        tracker.on(TrackerEvent.AUTH_STATE_CHANGE, seen.append)
        tracker.register("Alice", "devgroup")

        tracker.logout()
        tracker.register("Alice", "devgroup")

        assert len(seen) == 3
        assert seen[1] is None
        assert seen[2] != seen[0]
