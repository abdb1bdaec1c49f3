"""
Storage Services Package

Provides abstract interfaces and concrete implementations for both
storage tiers: the device-local cache and the per-user remote store.
"""

from budget_tracker.services.storage.interface import (
    CacheError,
    ConnectionError,
    LocalCacheInterface,
    RemoteStoreInterface,
    StorageError,
    SyncError,
)
from budget_tracker.services.storage.local_cache import JsonFileCache
from budget_tracker.services.storage.memory import (
    InMemoryLocalCache,
    InMemoryRemoteStore,
    RemoteRecord,
    UpsertCall,
)
from budget_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
)

__all__ = [
    # Interfaces
    "LocalCacheInterface",
    "RemoteStoreInterface",
    # Exceptions
    "CacheError",
    "ConnectionError",
    "StorageError",
    "SyncError",
    # Local cache
    "JsonFileCache",
    # In-memory implementations
    "InMemoryLocalCache",
    "InMemoryRemoteStore",
    "RemoteRecord",
    "UpsertCall",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
]
