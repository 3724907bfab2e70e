"""Group-scoped, typed access to the key-tree store.

Owns the store layout and the wire format:

    {root}/{group}/users/{uid}                          -> {nickname, lastSeen, createdAt, pinHash?}
    {root}/{group}/attendance/{talk}/{going|here}/{uid} -> true
"""

import logging
from typing import Any, Callable

from talks.domain.identity import Identity
from talks.domain.models import GroupUser
from talks.domain.value_objects import AttendanceKind
from talks.stores.interfaces import SERVER_TIMESTAMP, TreeStore, Unsubscribe

logger = logging.getLogger(__name__)

AttendanceTree = dict[str, dict[AttendanceKind, frozenset[str]]]


def user_from_wire(uid: str, data: Any) -> GroupUser | None:
    if not isinstance(data, dict):
        return None
    return GroupUser(
        uid=uid,
        nickname=data.get("nickname") or "",
        last_seen=data.get("lastSeen"),
        created_at=data.get("createdAt"),
        pin_hash=data.get("pinHash") or None,
    )


def users_from_wire(data: Any) -> dict[str, GroupUser]:
    users = {}
    for uid, record in (data or {}).items():
        user = user_from_wire(uid, record)
        if user is not None:
            users[uid] = user
    return users


def attendance_from_wire(data: Any) -> AttendanceTree:
    """Convert the raw attendance subtree, keeping only truthy markers of known kinds."""
    tree: AttendanceTree = {}
    for talk_slug, kinds in (data or {}).items():
        if not isinstance(kinds, dict):
            continue
        markers = {}
        for kind in AttendanceKind:
            uids = kinds.get(kind.value)
            if isinstance(uids, dict):
                present = frozenset(uid for uid, flag in uids.items() if flag)
                if present:
                    markers[kind] = present
        if markers:
            tree[talk_slug] = markers
    return tree


class AttendanceStore:
    """Typed reads, writes and subscriptions for one group."""

    def __init__(self, store: TreeStore, group: str, root: str = "groups") -> None:
        self._store = store
        self.group = group
        self._base = f"{root}/{group}"

    def _users_path(self, uid: str | None = None) -> str:
        return f"{self._base}/users/{uid}" if uid else f"{self._base}/users"

    def _marker_path(self, talk_slug: str, kind: AttendanceKind, uid: str) -> str:
        return f"{self._base}/attendance/{talk_slug}/{kind.value}/{uid}"

    def get_user(self, uid: str) -> GroupUser | None:
        return user_from_wire(uid, self._store.get(self._users_path(uid)))

    def get_nickname(self, uid: str) -> str | None:
        nickname = self._store.get(f"{self._users_path(uid)}/nickname")
        return nickname if isinstance(nickname, str) else None

    def create_user(self, identity: Identity) -> None:
        record: dict[str, Any] = {
            "nickname": identity.nickname,
            "createdAt": SERVER_TIMESTAMP,
            "lastSeen": SERVER_TIMESTAMP,
        }
        if identity.pin_hash:
            record["pinHash"] = identity.pin_hash
        self._store.set(self._users_path(identity.uid), record)
        logger.info("Created user %s in group %s", identity.uid, self.group)

    def touch_user(self, uid: str) -> None:
        self._store.update(self._users_path(uid), {"lastSeen": SERVER_TIMESTAMP})

    def has_marker(self, talk_slug: str, kind: AttendanceKind, uid: str) -> bool:
        return bool(self._store.get(self._marker_path(talk_slug, kind, uid)))

    def set_marker(self, talk_slug: str, kind: AttendanceKind, uid: str) -> None:
        self._store.set(self._marker_path(talk_slug, kind, uid), True)

    def remove_marker(self, talk_slug: str, kind: AttendanceKind, uid: str) -> None:
        self._store.remove(self._marker_path(talk_slug, kind, uid))

    def talks_marked(self, kind: AttendanceKind, uid: str) -> list[str]:
        """One-shot read of every talk where uid carries a kind marker."""
        tree = attendance_from_wire(self._store.get(f"{self._base}/attendance"))
        return [slug for slug, markers in tree.items() if uid in markers.get(kind, ())]

    def subscribe_users(self, callback: Callable[[dict[str, GroupUser]], None]) -> Unsubscribe:
        return self._store.subscribe(self._users_path(), lambda data: callback(users_from_wire(data)))

    def subscribe_attendance(self, callback: Callable[[AttendanceTree], None]) -> Unsubscribe:
        return self._store.subscribe(
            f"{self._base}/attendance",
            lambda data: callback(attendance_from_wire(data)),
        )
