"""
Sync Coordinator

Keeps the in-memory Store, the device cache and the remote store in
step, and is the single entry point the UI uses to read and edit data.

STATES:
- ANONYMOUS: the Store is whatever the device cache holds; nothing
  is sent anywhere
- AUTHENTICATED(user_id): the Store belongs to user_id and edits are
  written through to the remote store

LOAD (on every sign-in):
1. Fetch the user's remote document
2. Found: adopt it and overwrite the device cache (remote wins)
3. Not found, device cache non-empty: seed the remote store with it once
4. Not found, device cache empty: start empty
5. Fetch failed: keep the device copy; the next edit's write heals it

WRITE (on every edit):
1. Apply the edit to the in-memory Store
2. Write the device cache immediately (never skipped, never delayed)
3. If signed in: (re)start the debounce timer; when edits stop for
   the debounce window, one remote write carries the latest state
4. Remote failures are logged, never raised to the editor
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, TypeVar

import structlog

from budget_tracker.aggregation import engine
from budget_tracker.audit import SyncEventLogger
from budget_tracker.config import get_settings
from budget_tracker.models.ledger import MonthRecord, Store, month_key
from budget_tracker.models.summary import CategoryBreakdown, MonthSummary, YearSummary
from budget_tracker.models.sync_event import SyncEventBuilder, utc_now
from budget_tracker.services.identity import IdentityProvider
from budget_tracker.services.storage import (
    LocalCacheInterface,
    RemoteStoreInterface,
    SyncError,
)
from budget_tracker.sync.debounce import Debouncer


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass
class SessionContext:
    """Everything bound to one identity: who, and their Store."""
    state: SessionState = SessionState.ANONYMOUS
    user_id: Optional[str] = None
    store: Store = field(default_factory=Store)


class SyncCoordinator:
    """
    Owns the active session and runs the load and write protocols.

    Edits made while signed in schedule remote writes on the running
    event loop, so mutate() must then be called from inside that loop.
    """

    def __init__(
        self,
        local_cache: LocalCacheInterface,
        remote_store: RemoteStoreInterface,
        event_logger: Optional[SyncEventLogger] = None,
        debounce_seconds: Optional[float] = None,
    ):
        self._cache = local_cache
        self._remote = remote_store
        self._events = event_logger or SyncEventLogger()
        if debounce_seconds is None:
            debounce_seconds = get_settings().sync.debounce_seconds
        self._debouncer = Debouncer(debounce_seconds)
        self._unsubscribe: Optional[Callable[[], None]] = None

        store = self._cache.read()
        self._session = SessionContext(store=store)
        self._events.log(SyncEventBuilder.local_loaded(None, len(store)))

    # =========================================================================
    # Session state
    # =========================================================================

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user_id

    @property
    def store(self) -> Store:
        """The live Store. Edit it through mutate() only."""
        return self._session.store

    @property
    def events(self) -> SyncEventLogger:
        return self._events

    @property
    def has_pending_remote_write(self) -> bool:
        return self._debouncer.pending or self._debouncer.in_flight > 0

    async def attach(self, identity_provider: IdentityProvider) -> None:
        """
        Follow an identity provider's session changes.

        Also catches up with a session the provider already has.
        """
        self.detach()
        self._unsubscribe = identity_provider.subscribe(self._on_identity_changed)
        await self._on_identity_changed(identity_provider.current_user())

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_identity_changed(self, user_id: Optional[str]) -> None:
        if user_id is None:
            await self.sign_out()
        else:
            await self.sign_in(user_id)

    async def sign_in(self, user_id: str) -> None:
        """Bind the session to user_id and run the load protocol."""
        if self._session.state is SessionState.AUTHENTICATED:
            if self._session.user_id == user_id:
                return
            await self.sign_out()

        # Until the remote answers, the device copy is what the user sees
        self._session = SessionContext(
            state=SessionState.AUTHENTICATED,
            user_id=user_id,
            store=self._cache.read(),
        )
        self._events.log(SyncEventBuilder.signed_in(user_id))
        await self._load(self._session)

    async def sign_out(self) -> None:
        """
        Return to anonymous.

        A write still waiting in the debounce window is sent right away
        for the identity it was made under. The device cache is kept.
        """
        if self._session.state is SessionState.ANONYMOUS:
            return

        previous = self._session.user_id
        self._debouncer.flush()
        self._session = SessionContext(store=self._cache.read())
        self._events.log(SyncEventBuilder.signed_out(previous))

    async def reload(self) -> None:
        """Re-run the load protocol for the signed-in user."""
        if self._session.state is not SessionState.AUTHENTICATED:
            self._session.store = self._cache.read()
            return
        self._debouncer.flush()
        await self._debouncer.drain()
        await self._load(self._session)

    async def _load(self, session: SessionContext) -> None:
        user_id = session.user_id
        local = session.store

        try:
            remote = await self._remote.fetch_for_user(user_id)
        except SyncError as e:
            self._events.log(SyncEventBuilder.remote_fetch_failed(user_id, str(e)))
            return

        if session is not self._session:
            # Identity changed while fetching; this result is for nobody
            logger.info("load_discarded", user_id=user_id)
            return

        if remote is not None:
            # Edits to the provisional device copy lose to the remote document
            if self._debouncer.cancel():
                logger.info("pending_write_dropped", user_id=user_id)
            session.store = remote
            self._cache.write(remote)
            self._events.log(SyncEventBuilder.remote_loaded(user_id, len(remote)))
        elif not local.is_empty:
            try:
                await self._remote.upsert_for_user(user_id, local.copy_deep(), utc_now())
            except SyncError as e:
                self._events.log(SyncEventBuilder.remote_seed_failed(user_id, str(e)))
            else:
                self._events.log(SyncEventBuilder.remote_seeded(user_id, len(local)))
        else:
            self._events.log(SyncEventBuilder.local_loaded(user_id, 0))

    # =========================================================================
    # Write protocol
    # =========================================================================

    def mutate(self, year: int, month_index: int, edit_fn: Callable[[MonthRecord], T]) -> T:
        """
        Apply an edit to one month and propagate it.

        The month record is created if it does not exist yet. If edit_fn
        raises, the exception propagates, nothing is persisted and a month
        that did not exist is not added to the Store.

        Returns:
            Whatever edit_fn returns
        """
        store = self._session.store
        key = month_key(year, month_index)
        record = store.get(key)
        result = edit_fn(record)
        store.root.setdefault(key, record)
        self._persist()
        return result

    def _persist(self) -> None:
        session = self._session
        self._cache.write(session.store)

        if session.state is SessionState.AUTHENTICATED:
            # Read the session's Store when the timer fires; a load may
            # have replaced it since
            async def write() -> None:
                await self._push(session.user_id, session.store)

            self._debouncer.schedule(write)

    async def _push(self, user_id: str, store: Store) -> None:
        updated_at = utc_now()
        try:
            await self._remote.upsert_for_user(user_id, store.copy_deep(), updated_at)
        except SyncError as e:
            self._events.log(SyncEventBuilder.remote_write_failed(user_id, str(e)))
        else:
            self._events.log(SyncEventBuilder.remote_write_succeeded(user_id, updated_at))

    def flush(self) -> bool:
        """Send a write still waiting in the debounce window right away."""
        return self._debouncer.flush()

    async def drain(self) -> None:
        """Wait for remote writes already sent to finish."""
        await self._debouncer.drain()

    async def close(self) -> None:
        """Flush, wait for outstanding writes, stop following the identity provider."""
        self.flush()
        await self.drain()
        self.detach()

    # =========================================================================
    # Consumer API
    # =========================================================================

    def get_month_record(self, year: int, month_index: int) -> MonthRecord:
        """A copy of one month's record; an untouched month is empty and is not created."""
        return self._session.store.get_month(year, month_index).model_copy(deep=True)

    def summarize_month(self, key: str) -> MonthSummary:
        return engine.summarize_month(self._session.store, key)

    def summarize_all_years(self, active_key: Optional[str] = None) -> list[YearSummary]:
        return engine.summarize_all_years(self._session.store, active_key)

    def summarize_category_breakdown(self, year: int, month_index: int) -> CategoryBreakdown:
        return engine.summarize_category_breakdown(self._session.store, year, month_index)
