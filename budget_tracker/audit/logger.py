"""
Sync Event Logger

DESIGN DECISION: Every load, seed and remote write is logged.
This provides:
1. Traceability of what reached the remote store and when
2. Debugging capability for partial syncs
3. A "last synced" status the UI can show without polling the backend

The logger keeps a bounded in-memory history, newest last.
"""

from collections import deque
from typing import Optional

import structlog

from budget_tracker.models.sync_event import SyncEvent, SyncEventType, SyncSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class SyncEventLogger:
    """
    Central sync event log.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory history (for status display)
    """

    def __init__(self, history_size: int = 50):
        self._history: deque[SyncEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("budget_tracker.sync")

    def log(self, event: SyncEvent) -> SyncEvent:
        """Record an event and return it."""
        self._history.append(event)

        log_dict = event.to_log_dict()
        if event.severity == SyncSeverity.ERROR:
            self._logger.error("sync_event", **log_dict)
        elif event.severity == SyncSeverity.WARNING:
            self._logger.warning("sync_event", **log_dict)
        elif event.severity == SyncSeverity.DEBUG:
            self._logger.debug("sync_event", **log_dict)
        else:
            self._logger.info("sync_event", **log_dict)

        return event

    @property
    def history(self) -> list[SyncEvent]:
        """Recorded events, oldest first."""
        return list(self._history)

    def last(
        self,
        event_type: Optional[SyncEventType] = None,
        user_id: Optional[str] = None,
    ) -> Optional[SyncEvent]:
        """Most recent event, optionally filtered by type and user."""
        for event in reversed(self._history):
            if event_type is not None and event.event_type != event_type:
                continue
            if user_id is not None and event.user_id != user_id:
                continue
            return event
        return None

    def last_remote_outcome(self, user_id: str) -> Optional[SyncEvent]:
        """
        Latest event that says whether the user's remote copy is current.

        A success or a seed means it is; a failed write, seed or fetch
        means the remote copy may be behind.
        """
        outcomes = {
            SyncEventType.REMOTE_LOADED,
            SyncEventType.REMOTE_SEEDED,
            SyncEventType.REMOTE_SEED_FAILED,
            SyncEventType.REMOTE_FETCH_FAILED,
            SyncEventType.REMOTE_WRITE_SUCCEEDED,
            SyncEventType.REMOTE_WRITE_FAILED,
        }
        for event in reversed(self._history):
            if event.user_id == user_id and event.event_type in outcomes:
                return event
        return None

    def clear(self) -> None:
        self._history.clear()
