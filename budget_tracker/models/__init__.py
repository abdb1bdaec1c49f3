"""
Data Models Package

This package contains all Pydantic models used in the Budget Tracker.
Persisted state lives in ledger; summaries and sync events are derived.
"""

from budget_tracker.models.ledger import (
    MONTH_KEY_PATTERN,
    UNCATEGORIZED,
    Expense,
    ExpenseCategory,
    MonthRecord,
    Store,
    Subscription,
    day_key,
    is_month_key,
    month_key,
    parse_month_key,
)
from budget_tracker.models.summary import (
    BudgetStatus,
    CategoryBreakdown,
    CategoryTotal,
    DayTotals,
    GrandTotals,
    MonthSummary,
    YearSummary,
    budget_status,
    remaining_percent,
)
from budget_tracker.models.sync_event import (
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
    SyncSeverity,
)

__all__ = [
    # Ledger
    "MONTH_KEY_PATTERN",
    "UNCATEGORIZED",
    "Expense",
    "ExpenseCategory",
    "MonthRecord",
    "Store",
    "Subscription",
    "day_key",
    "is_month_key",
    "month_key",
    "parse_month_key",
    # Summaries
    "BudgetStatus",
    "CategoryBreakdown",
    "CategoryTotal",
    "DayTotals",
    "GrandTotals",
    "MonthSummary",
    "YearSummary",
    "budget_status",
    "remaining_percent",
    # Sync events
    "SyncEvent",
    "SyncEventBuilder",
    "SyncEventType",
    "SyncSeverity",
]
