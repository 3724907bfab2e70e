"""Local persistence for session restore hints."""

from django.core.cache import caches

from talks.stores.interfaces import LocalStorage


class CacheLocalStorage(LocalStorage):
    """Keeps hints in a Django cache. Use a file or database cache to survive restarts."""

    def __init__(self, alias: str = "default") -> None:
        self._cache = caches[alias]

    def get_item(self, key: str) -> str | None:
        return self._cache.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._cache.set(key, value, timeout=None)

    def remove_item(self, key: str) -> None:
        self._cache.delete(key)


class MemoryLocalStorage(LocalStorage):
    """Dict-backed storage for a single process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)
