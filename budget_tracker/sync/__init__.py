"""Sync package: session handling and debounced remote writes."""

from budget_tracker.sync.coordinator import SessionContext, SessionState, SyncCoordinator
from budget_tracker.sync.debounce import Debouncer

__all__ = [
    "Debouncer",
    "SessionContext",
    "SessionState",
    "SyncCoordinator",
]
