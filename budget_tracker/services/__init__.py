"""Services package."""

from budget_tracker.services.identity import (
    AuthError,
    IdentityProvider,
    LocalIdentityProvider,
)
from budget_tracker.services.storage import (
    CacheError,
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryLocalCache,
    InMemoryRemoteStore,
    JsonFileCache,
    LocalCacheInterface,
    RemoteStoreInterface,
    StorageError,
    SyncError,
)

__all__ = [
    # Identity
    "AuthError",
    "IdentityProvider",
    "LocalIdentityProvider",
    # Storage
    "CacheError",
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    "InMemoryLocalCache",
    "InMemoryRemoteStore",
    "JsonFileCache",
    "LocalCacheInterface",
    "RemoteStoreInterface",
    "StorageError",
    "SyncError",
]
