"""
Abstract Storage Interfaces

DESIGN DECISION: The sync coordinator talks to two storage tiers
through abstract interfaces. This allows us to:
1. Swap Google Sheets for a managed database or a self-hosted API
2. Use in-memory storage for testing
3. Keep the sync protocol decoupled from any backend

Both tiers store the whole Store as one document. There is no
finer-grained schema: reads and writes are always atomic and full.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from budget_tracker.models.ledger import Store


class LocalCacheInterface(ABC):
    """
    Device-scoped persistence for the Store.

    Scoped to the device, not the identity: data entered before sign-in
    is still there at first sign-in and can seed the remote store.
    """

    @abstractmethod
    def read(self) -> Store:
        """
        Read the cached Store.

        Never raises. A missing or unreadable cache yields an empty Store.
        """
        pass

    @abstractmethod
    def write(self, store: Store) -> None:
        """
        Persist the full Store, synchronously and best-effort.

        Never raises. Storage and serialization failures are logged and
        the caller proceeds as if nothing was persisted this round.
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the cached Store from this device."""
        pass


class RemoteStoreInterface(ABC):
    """
    Remote persistence: one document per user identity.

    Each record is {user_id, data, updated_at}. Upserts replace the
    record for the user; a write whose updated_at is older than the
    stored one is ignored, so out-of-order arrival cannot roll data back.
    """

    @abstractmethod
    async def fetch_for_user(self, user_id: str) -> Optional[Store]:
        """
        Fetch a user's Store.

        Returns:
            The Store, or None if the user has no remote record yet

        Raises:
            SyncError: If the backend could not be reached or read
        """
        pass

    @abstractmethod
    async def upsert_for_user(
        self,
        user_id: str,
        store: Store,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """
        Create or replace a user's record.

        Args:
            user_id: Identity the record belongs to
            store: Full Store to write
            updated_at: When this state was produced (defaults to now, UTC)

        Raises:
            SyncError: If the write failed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CacheError(StorageError):
    """Local cache could not be read or written."""
    pass


class SyncError(StorageError):
    """A remote store operation failed."""
    pass


class ConnectionError(SyncError):
    """Could not connect to storage backend."""
    pass
