from talks.stores.interfaces import (
    SERVER_TIMESTAMP,
    AuthProvider,
    AuthRejectedError,
    LocalStorage,
    StoreRejectedError,
    TreeStore,
)

__all__ = [
    "SERVER_TIMESTAMP",
    "AuthProvider",
    "AuthRejectedError",
    "LocalStorage",
    "StoreRejectedError",
    "TreeStore",
]
