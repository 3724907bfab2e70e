"""Django ORM implementation of the TreeStore.

Each leaf is a TreeNode row keyed by its full path. Subscribers are notified
from the TreeNode post_save/post_delete signals (see talks/signals.py), so
edits made through the admin or the ORM directly reach them as well. Changes
made inside one store write are collected and delivered once, after the
write's transaction block completes.
"""

import itertools
import logging
import threading
import weakref
from typing import Any, Iterable

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from talks.models import TreeNode
from talks.stores.interfaces import StoreRejectedError, TreeStore, Unsubscribe, ValueCallback
from talks.stores.rules import GroupQuota
from talks.stores.tree import build_tree, flatten, join_path, normalize, overlaps, split_path

logger = logging.getLogger(__name__)

_live_stores: "weakref.WeakSet[DjangoTreeStore]" = weakref.WeakSet()


class _ChangeBatch(threading.local):
    def __init__(self) -> None:
        self.depth = 0
        self.paths: list[str] = []


_batch = _ChangeBatch()


def node_changed(path: str) -> None:
    """Record a changed leaf path, delivering now unless a store write is running."""
    if _batch.depth:
        _batch.paths.append(path)
    else:
        _deliver([path])


def _deliver(paths: list[str]) -> None:
    if not paths:
        return
    for store in list(_live_stores):
        store._notify(paths)


def _unavailable(exc: DatabaseError) -> StoreRejectedError:
    logger.error("Tree store database error: %s", exc)
    return StoreRejectedError(StoreRejectedError.UNAVAILABLE, str(exc))


def _epoch_ms() -> int:
    return int(timezone.now().timestamp() * 1000)


class DjangoTreeStore(TreeStore):
    """PostgreSQL/SQLite-backed key tree using Django ORM."""

    def __init__(self, rules: GroupQuota | None = None) -> None:
        self._rules = rules
        self._ids = itertools.count()
        self._subscriptions: dict[int, tuple[str, ValueCallback]] = {}
        _live_stores.add(self)

    def get(self, path: str) -> Any:
        base = join_path(*split_path(path))
        try:
            nodes = self._nodes(base)
        except DatabaseError as exc:
            raise _unavailable(exc) from exc
        return build_tree(base, [(node.path, node.value) for node in nodes])

    def set(self, path: str, value: Any) -> None:
        base = join_path(*split_path(path))
        value = normalize(value, _epoch_ms())
        if self._rules is not None:
            self._rules.check_write(self, base, value)
        self._apply(lambda: self._replace(base, value))

    def update(self, path: str, values: dict[str, Any]) -> None:
        base = join_path(*split_path(path))
        now = _epoch_ms()
        children = {join_path(base, *split_path(key)): normalize(child, now) for key, child in values.items()}
        if self._rules is not None:
            for child_path, child in children.items():
                self._rules.check_write(self, child_path, child)

        def write() -> None:
            for child_path, child in children.items():
                self._replace(child_path, child)

        self._apply(write)

    def remove(self, path: str) -> None:
        base = join_path(*split_path(path))
        self._apply(lambda: self._replace(base, None))

    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        base = join_path(*split_path(path))
        sub_id = next(self._ids)
        self._subscriptions[sub_id] = (base, callback)
        logger.debug("Subscribed to %s", base)
        callback(self.get(base))

        def unsubscribe() -> None:
            self._subscriptions.pop(sub_id, None)

        return unsubscribe

    def _nodes(self, base: str) -> list[TreeNode]:
        # LIKE is case-insensitive on some backends; re-check the prefix here.
        prefix = f"{base}/"
        candidates = TreeNode.objects.filter(Q(path=base) | Q(path__startswith=prefix))
        return [node for node in candidates if node.path == base or node.path.startswith(prefix)]

    def _replace(self, base: str, value: Any) -> None:
        parts = split_path(base)
        ancestors = ["/".join(parts[:depth]) for depth in range(1, len(parts))]
        stale = [node.pk for node in self._nodes(base)]
        TreeNode.objects.filter(Q(pk__in=stale) | Q(path__in=ancestors)).delete()
        for leaf_path, leaf in flatten(base, value):
            TreeNode.objects.create(path=leaf_path, value=leaf)

    def _apply(self, write) -> None:
        _batch.depth += 1
        try:
            with transaction.atomic():
                write()
        except Exception as exc:
            if _batch.depth == 1:
                _batch.paths.clear()
            if isinstance(exc, DatabaseError):
                raise _unavailable(exc) from exc
            raise
        finally:
            _batch.depth -= 1
        if not _batch.depth:
            paths, _batch.paths = _batch.paths, []
            _deliver(paths)

    def _notify(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        targets = [
            (sub_id, base, callback)
            for sub_id, (base, callback) in self._subscriptions.items()
            if any(overlaps(base, changed) for changed in paths)
        ]
        for sub_id, base, callback in targets:
            if sub_id in self._subscriptions:
                callback(self.get(base))
