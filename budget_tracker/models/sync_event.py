"""
Sync Event Models

Every load, seed and remote write the sync coordinator performs is
recorded as a SyncEvent. Events go to the structured log and to a
short in-memory history the UI reads to show "last synced" status.

Events are append-only; they never influence the data itself.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncEventType(str, Enum):
    """Types of events the sync coordinator records."""
    # Session
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"

    # Load protocol
    REMOTE_LOADED = "remote_loaded"
    REMOTE_SEEDED = "remote_seeded"
    REMOTE_SEED_FAILED = "remote_seed_failed"
    REMOTE_FETCH_FAILED = "remote_fetch_failed"
    LOCAL_LOADED = "local_loaded"

    # Write protocol
    REMOTE_WRITE_SUCCEEDED = "remote_write_succeeded"
    REMOTE_WRITE_FAILED = "remote_write_failed"


class SyncSeverity(str, Enum):
    """Severity level for sync events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """A single sync event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )
    event_type: SyncEventType
    severity: SyncSeverity = SyncSeverity.INFO
    user_id: Optional[str] = Field(
        default=None,
        description="Identity the event concerns; None while anonymous"
    )
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    @property
    def is_failure(self) -> bool:
        return self.severity in (SyncSeverity.WARNING, SyncSeverity.ERROR)

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class SyncEventBuilder:
    """
    Helper class to build sync events with common patterns.

    Usage:
        event = SyncEventBuilder.remote_loaded(user_id, month_count)
        event = SyncEventBuilder.remote_write_failed(user_id, str(e))
    """

    @staticmethod
    def signed_in(user_id: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SIGNED_IN,
            user_id=user_id,
            description="Session bound to identity",
        )

    @staticmethod
    def signed_out(user_id: Optional[str]) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SIGNED_OUT,
            user_id=user_id,
            description="Session returned to anonymous",
        )

    @staticmethod
    def remote_loaded(user_id: str, month_count: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_LOADED,
            user_id=user_id,
            description=f"Loaded {month_count} month(s) from remote store",
            details={"month_count": month_count},
        )

    @staticmethod
    def remote_seeded(user_id: str, month_count: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_SEEDED,
            user_id=user_id,
            description=f"Seeded remote store with {month_count} local month(s)",
            details={"month_count": month_count},
        )

    @staticmethod
    def remote_seed_failed(user_id: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_SEED_FAILED,
            severity=SyncSeverity.WARNING,
            user_id=user_id,
            description="Could not seed remote store from local data",
            error_message=error_message,
        )

    @staticmethod
    def remote_fetch_failed(user_id: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_FETCH_FAILED,
            severity=SyncSeverity.WARNING,
            user_id=user_id,
            description="Remote store unreachable, using local data",
            error_message=error_message,
        )

    @staticmethod
    def local_loaded(user_id: Optional[str], month_count: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.LOCAL_LOADED,
            user_id=user_id,
            description=f"Loaded {month_count} month(s) from device cache",
            details={"month_count": month_count},
        )

    @staticmethod
    def remote_write_succeeded(user_id: str, updated_at: datetime) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_WRITE_SUCCEEDED,
            user_id=user_id,
            description="Remote store updated",
            details={"updated_at": updated_at.isoformat()},
        )

    @staticmethod
    def remote_write_failed(user_id: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_WRITE_FAILED,
            severity=SyncSeverity.ERROR,
            user_id=user_id,
            description="Remote write failed; will retry on next edit",
            error_message=error_message,
        )
