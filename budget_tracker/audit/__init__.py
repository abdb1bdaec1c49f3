"""Sync event logging package."""

from budget_tracker.audit.logger import SyncEventLogger

__all__ = ["SyncEventLogger"]
