"""Unit tests for domain primitives and the session context.

These test invariants that must hold at construction time.
Run with: pytest tests/test_domain.py -v
"""

import dataclasses

import pytest

from talks.domain import (
    AttendanceKind,
    FilterType,
    GroupName,
    GroupUser,
    Nickname,
    SessionContext,
    TalkFilter,
    Track,
    View,
)
from talks.domain.errors import DomainError, ErrorCode, InvalidInputError, NotJoinedError


class TestGroupName:
    """Tests for GroupName value object."""

    def test_trims_whitespace(self):
        assert GroupName.from_string("  devgroup ").value == "devgroup"

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_rejects_blank(self, raw):
        """A blank group raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            GroupName.from_string(raw)

    @pytest.mark.parametrize("raw", ["dev/group", "devgroup/attendance/keynote/going", "dev.group", "#dev", "$dev", "dev[1]"])
    def test_rejects_reserved_key_characters(self, raw):
        """A group becomes one store path segment, so separators and reserved characters are refused."""
        with pytest.raises(InvalidInputError):
            GroupName.from_string(raw)

    def test_accepts_ordinary_punctuation(self):
        assert GroupName.from_string("fosdem-2026_crew!").value == "fosdem-2026_crew!"


class TestNickname:
    """Tests for Nickname value object."""

    def test_preserves_case(self):
        assert str(Nickname.from_string(" Alice ")) == "Alice"

    def test_rejects_blank(self):
        with pytest.raises(InvalidInputError):
            Nickname.from_string("\t")

    def test_matches_ignores_case_and_padding(self):
        assert Nickname("Alice").matches(" alice ")

    def test_does_not_match_none(self):
        assert not Nickname("Alice").matches(None)


class TestEnums:
    """Tests for parsing enum-valued inputs."""

    def test_attendance_kind_parse(self):
        assert AttendanceKind.parse("here") is AttendanceKind.HERE

    def test_attendance_kind_parse_unknown(self):
        with pytest.raises(InvalidInputError):
            AttendanceKind.parse("maybe")

    def test_view_parse_accepts_member(self):
        assert View.parse(View.FRIENDS) is View.FRIENDS

    def test_view_parse_unknown(self):
        with pytest.raises(InvalidInputError):
            View.parse("calendar")

    def test_filter_from_parts(self):
        talk_filter = TalkFilter.from_parts("user", "user_1")
        assert talk_filter.type is FilterType.USER
        assert talk_filter.value == "user_1"

    def test_filter_from_parts_unknown_type(self):
        with pytest.raises(InvalidInputError):
            TalkFilter.from_parts("room", "Janson")


class TestDomainError:
    """Tests for the domain error hierarchy."""

    def test_str_includes_code(self):
        assert str(NotJoinedError()) == "NOT_JOINED: Please join a group first"

    def test_errors_are_domain_errors(self):
        error = InvalidInputError("bad")
        assert isinstance(error, DomainError)
        assert error.code is ErrorCode.INVALID_INPUT

    def test_errors_are_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            NotJoinedError().message = "changed"


class TestSessionContext:
    """Tests for SessionContext."""

    def test_starts_anonymous(self):
        context = SessionContext()
        assert not context.is_logged_in
        assert context.current_view is View.SCHEDULE
        assert context.current_filter == TalkFilter.none()

    def test_logged_in_needs_user_and_group(self):
        context = SessionContext(current_user="user_1")
        assert not context.is_logged_in
        context.group_name = "devgroup"
        assert context.is_logged_in

    def test_snapshot_is_detached(self):
        """Later changes to the context do not leak into a snapshot."""
        context = SessionContext(current_user="user_1", group_name="devgroup", schedule={"main": Track("main", "Main")})
        snapshot = context.snapshot()
        context.all_users["user_2"] = GroupUser(uid="user_2", nickname="Bob")
        context.schedule["rust"] = Track("rust", "Rust")
        assert snapshot.all_users == {}
        assert list(snapshot.schedule) == ["main"]
        assert snapshot.is_logged_in

    def test_snapshot_is_frozen(self):
        snapshot = SessionContext().snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.search_query = "rust"

    def test_clear_identity_keeps_schedule_and_view(self):
        context = SessionContext(
            current_user="user_1",
            group_name="devgroup",
            nickname="Alice",
            schedule={},
            current_view=View.MYPLAN,
            is_initialized=True,
        )
        context.clear_identity()
        assert not context.is_logged_in
        assert context.nickname is None
        assert not context.is_initialized
        assert context.schedule == {}
        assert context.current_view is View.MYPLAN
