"""Settings for the talks app.

Projects override any of these in a ``TALKS`` dict in their Django settings::

    TALKS = {
        "STORE_BACKEND": "talks.stores.django_store.DjangoTreeStore",
        "ENFORCE_QUOTA": True,
        "ALLOWED_GROUPS": ["devroom-crew"],
    }
"""

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

DEFAULTS = {
    "STORE_BACKEND": "talks.stores.memory_store.MemoryTreeStore",
    "AUTH_BACKEND": "talks.stores.auth.AnonymousAuth",
    "LOCAL_STORAGE_BACKEND": "talks.stores.local_storage.CacheLocalStorage",
    "STORE_ROOT": "groups",
    "LOCAL_STORAGE_PREFIX": "fosdem",
    # Ask for the PIN on reclaim whenever one is on file. Off keeps the
    # permissive behaviour existing groups rely on.
    "REQUIRE_PIN_WHEN_ON_FILE": False,
    "ENFORCE_QUOTA": False,
    "MAX_GROUPS": 10,
    "MAX_USERS_PER_GROUP": 50,
    "ALLOWED_GROUPS": None,
}


class TalkSettings:
    """Lazy view over ``settings.TALKS`` falling back to DEFAULTS."""

    def __init__(self, defaults: dict | None = None) -> None:
        self._defaults = defaults or DEFAULTS
        self._cached: dict = {}

    def __getattr__(self, name: str):
        if name not in self._defaults:
            raise AttributeError(f"Invalid talks setting: {name}")
        if name not in self._cached:
            user_settings = getattr(settings, "TALKS", {}) or {}
            self._cached[name] = user_settings.get(name, self._defaults[name])
        return self._cached[name]

    def reload(self) -> None:
        self._cached.clear()


talk_settings = TalkSettings()


@receiver(setting_changed)
def reload_talk_settings(*, setting: str, **kwargs) -> None:
    if setting == "TALKS":
        talk_settings.reload()
