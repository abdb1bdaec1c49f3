"""
In-Memory Storage

Process-local implementations of both storage tiers. Used when no
remote backend is configured (the app still runs, nothing leaves the
process) and as the default collaborators in tests.

Both keep serialized JSON rather than live objects, so later edits to
a Store never leak into what was "persisted".
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from budget_tracker.models.ledger import Store
from budget_tracker.models.sync_event import utc_now
from budget_tracker.services.storage.interface import (
    LocalCacheInterface,
    RemoteStoreInterface,
)


logger = structlog.get_logger(__name__)


class InMemoryLocalCache(LocalCacheInterface):
    """Local cache held in a string attribute."""

    def __init__(self, initial: Optional[Store] = None):
        self._blob: Optional[str] = None
        if initial is not None:
            self.write(initial)

    def read(self) -> Store:
        if not self._blob:
            return Store()
        try:
            return Store.from_json(self._blob)
        except ValueError as e:
            logger.warning("cache_read_failed", error=str(e))
            return Store()

    def write(self, store: Store) -> None:
        try:
            self._blob = store.to_json()
        except (TypeError, ValueError) as e:
            logger.warning("cache_serialize_failed", error=str(e))

    def clear(self) -> None:
        self._blob = None


@dataclass
class RemoteRecord:
    """One row of the remote store."""
    user_id: str
    data: str
    updated_at: datetime


@dataclass
class UpsertCall:
    """An upsert as received, before last-write-wins is applied."""
    user_id: str
    store: Store
    updated_at: datetime
    applied: bool


class InMemoryRemoteStore(RemoteStoreInterface):
    """
    Remote store held in a dict keyed by user id.

    The most recent upserts are recorded in `calls`, including ones
    rejected as stale, so callers can observe exactly what was sent.
    Only the last `call_history_size` are kept.
    """

    def __init__(self, call_history_size: int = 100):
        if call_history_size < 0:
            raise ValueError("call_history_size must be >= 0")
        self._records: dict[str, RemoteRecord] = {}
        self.call_history_size = call_history_size
        self.calls: list[UpsertCall] = []

    def record_for(self, user_id: str) -> Optional[RemoteRecord]:
        return self._records.get(user_id)

    async def fetch_for_user(self, user_id: str) -> Optional[Store]:
        record = self._records.get(user_id)
        if record is None:
            return None
        return Store.from_json(record.data)

    async def upsert_for_user(
        self,
        user_id: str,
        store: Store,
        updated_at: Optional[datetime] = None,
    ) -> None:
        updated_at = updated_at or utc_now()
        existing = self._records.get(user_id)
        applied = existing is None or updated_at >= existing.updated_at

        self.calls.append(UpsertCall(
            user_id=user_id,
            store=store.copy_deep(),
            updated_at=updated_at,
            applied=applied,
        ))
        overflow = len(self.calls) - self.call_history_size
        if overflow > 0:
            del self.calls[:overflow]

        if not applied:
            logger.info(
                "remote_write_stale",
                user_id=user_id,
                updated_at=updated_at.isoformat(),
                stored_updated_at=existing.updated_at.isoformat(),
            )
            return

        self._records[user_id] = RemoteRecord(
            user_id=user_id,
            data=store.to_json(),
            updated_at=updated_at,
        )
