"""In-process key-tree store.

Keeps the whole tree as nested dicts. Used by default and in tests; a single
instance can be shared by several trackers to simulate several devices
watching the same group.
"""

import copy
import itertools
import logging
import threading
import time
from typing import Any, Callable

from talks.stores.interfaces import TreeStore, Unsubscribe, ValueCallback
from talks.stores.rules import GroupQuota
from talks.stores.tree import delete_in, get_in, normalize, overlaps, set_in, split_path

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class MemoryTreeStore(TreeStore):
    """Nested-dict store with synchronous change delivery."""

    def __init__(self, rules: GroupQuota | None = None, clock: Callable[[], int] | None = None) -> None:
        self._lock = threading.RLock()
        self._root: dict[str, Any] = {}
        self._rules = rules
        self._clock = clock or _epoch_ms
        self._ids = itertools.count()
        # subscription id -> (path, callback), in subscription order
        self._subscriptions: dict[int, tuple[str, ValueCallback]] = {}

    def get(self, path: str) -> Any:
        with self._lock:
            return copy.deepcopy(get_in(self._root, split_path(path)))

    def set(self, path: str, value: Any) -> None:
        value = normalize(value, self._clock())
        if self._rules is not None:
            self._rules.check_write(self, path, value)
        with self._lock:
            self._write(split_path(path), value)
        self._notify(path)

    def update(self, path: str, values: dict[str, Any]) -> None:
        now = self._clock()
        children = {key: normalize(child, now) for key, child in values.items()}
        if self._rules is not None:
            for key, child in children.items():
                self._rules.check_write(self, f"{path}/{key}", child)
        parts = split_path(path)
        with self._lock:
            for key, child in children.items():
                self._write(parts + split_path(key), child)
        self._notify(path)

    def remove(self, path: str) -> None:
        with self._lock:
            delete_in(self._root, split_path(path))
        self._notify(path)

    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        split_path(path)
        with self._lock:
            sub_id = next(self._ids)
            self._subscriptions[sub_id] = (path, callback)
        logger.debug("Subscribed to %s", path)
        callback(self.get(path))

        def unsubscribe() -> None:
            with self._lock:
                self._subscriptions.pop(sub_id, None)

        return unsubscribe

    def _write(self, parts: list[str], value: Any) -> None:
        if value is None:
            delete_in(self._root, parts)
        else:
            set_in(self._root, parts, copy.deepcopy(value))

    def _notify(self, changed: str) -> None:
        with self._lock:
            targets = [
                (sub_id, path, callback)
                for sub_id, (path, callback) in self._subscriptions.items()
                if overlaps(path, changed)
            ]
        for sub_id, path, callback in targets:
            # a callback earlier in the list may have unsubscribed this one
            if sub_id in self._subscriptions:
                callback(self.get(path))
