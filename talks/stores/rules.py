"""Server-side group limits applied to writes under {root}/{group}/users.

Stores run ``check_write`` before applying a write, the same place a hosted
backend runs its validation hook. The core never calls these rules directly;
it only sees the resulting StoreRejectedError.
"""

import logging
from dataclasses import dataclass

from talks.conf import talk_settings
from talks.stores.interfaces import StoreRejectedError, TreeStore
from talks.stores.tree import split_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    """Whether a group can still take a new member."""

    available: bool
    reason: str
    user_count: int = 0
    max_users: int | None = None


@dataclass(frozen=True)
class GroupQuota:
    """Allowlist plus group and per-group member limits. Zero or None disables a limit."""

    root: str = "groups"
    max_groups: int | None = 10
    max_users_per_group: int | None = 50
    allowed_groups: frozenset[str] | None = None

    @classmethod
    def from_settings(cls) -> "GroupQuota":
        allowed = talk_settings.ALLOWED_GROUPS
        return cls(
            root=talk_settings.STORE_ROOT,
            max_groups=talk_settings.MAX_GROUPS,
            max_users_per_group=talk_settings.MAX_USERS_PER_GROUP,
            allowed_groups=frozenset(allowed) if allowed is not None else None,
        )

    def _user_target(self, path: str) -> tuple[str, str] | None:
        parts = split_path(path)
        if len(parts) < 4 or parts[0] != self.root or parts[2] != "users":
            return None
        return parts[1], parts[3]

    def _groups_with_users(self, store: TreeStore) -> set[str]:
        groups = store.get(self.root) or {}
        return {name for name, data in groups.items() if isinstance(data, dict) and data.get("users")}

    def check_write(self, store: TreeStore, path: str, value) -> None:
        """Raise StoreRejectedError when the write would break a limit.

        Only writes that add a new member are limited. Updates to a member
        already on record, and removals, always pass.
        """
        target = self._user_target(path)
        if target is None or value is None:
            return
        group, uid = target

        if self.allowed_groups is not None and group not in self.allowed_groups:
            logger.info("Rejected write to %s: group not in allowlist", path)
            raise StoreRejectedError(
                StoreRejectedError.PERMISSION_DENIED,
                "Group not allowed. Contact administrator.",
            )

        users = store.get(f"{self.root}/{group}/users") or {}
        if uid in users:
            return

        if self.max_groups and not users:
            if len(self._groups_with_users(store)) >= self.max_groups:
                logger.info("Rejected new group %s: %d groups allowed", group, self.max_groups)
                raise StoreRejectedError(
                    StoreRejectedError.RESOURCE_EXHAUSTED,
                    f"Maximum {self.max_groups} groups allowed.",
                )

        if self.max_users_per_group and len(users) >= self.max_users_per_group:
            logger.info("Rejected new user in %s: group is full", group)
            raise StoreRejectedError(
                StoreRejectedError.RESOURCE_EXHAUSTED,
                f"Maximum {self.max_users_per_group} users per group.",
            )

    def check_availability(self, store: TreeStore, group: str) -> Availability:
        if self.allowed_groups is not None and group not in self.allowed_groups:
            return Availability(available=False, reason="Group not in allowlist")

        users = store.get(f"{self.root}/{group}/users") or {}
        if not users:
            if self.max_groups and len(self._groups_with_users(store)) >= self.max_groups:
                return Availability(available=False, reason="Group limit reached")
            return Availability(available=True, reason="New group", max_users=self.max_users_per_group)

        if self.max_users_per_group and len(users) >= self.max_users_per_group:
            return Availability(
                available=False,
                reason="Group full",
                user_count=len(users),
                max_users=self.max_users_per_group,
            )
        return Availability(
            available=True,
            reason="Room available",
            user_count=len(users),
            max_users=self.max_users_per_group,
        )
