"""
Component wiring for the Budget Tracker.

Builds the storage tiers, the sync coordinator and the identity
provider, and connects them. The front end only ever talks to the
objects returned from create_app_components().
"""

from typing import Optional

import structlog

from budget_tracker.audit import SyncEventLogger
from budget_tracker.config import get_settings
from budget_tracker.services.identity import IdentityProvider, LocalIdentityProvider
from budget_tracker.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryRemoteStore,
    JsonFileCache,
    LocalCacheInterface,
    RemoteStoreInterface,
)
from budget_tracker.sync import SyncCoordinator


logger = structlog.get_logger(__name__)


def create_remote_store(use_remote: bool = True) -> RemoteStoreInterface:
    """
    Google Sheets when configured, otherwise an in-memory store.

    The in-memory store keeps the sign-in flow working without
    credentials; its contents are lost when the process exits.
    """
    if use_remote:
        try:
            return GoogleSheetsRemoteStore(GoogleSheetsClient())
        except Exception as e:
            # Settings missing or invalid - continue without a real remote
            logger.warning("remote_store_not_configured", error=str(e))
    return InMemoryRemoteStore()


async def create_app_components(
    use_remote: bool = True,
    local_cache: Optional[LocalCacheInterface] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> tuple[SyncCoordinator, IdentityProvider]:
    """
    Factory function to create all application components.

    Must be awaited on the event loop the coordinator will run on,
    since debounced remote writes are scheduled there.

    Args:
        use_remote: Whether to try the Google Sheets remote store.
                    Set to False to run fully offline.

    Returns:
        (coordinator, identity_provider)
    """
    settings = get_settings()

    local_cache = local_cache or JsonFileCache(settings.cache.path)
    remote_store = create_remote_store(use_remote)
    event_logger = SyncEventLogger(settings.app.event_history_size)

    coordinator = SyncCoordinator(
        local_cache=local_cache,
        remote_store=remote_store,
        event_logger=event_logger,
        debounce_seconds=settings.sync.debounce_seconds,
    )

    identity_provider = identity_provider or LocalIdentityProvider()
    await coordinator.attach(identity_provider)

    logger.info(
        "app_components_created",
        remote_store=type(remote_store).__name__,
        cache=type(local_cache).__name__,
    )
    return coordinator, identity_provider
