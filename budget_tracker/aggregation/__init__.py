"""Aggregation package: summaries derived from a Store on demand."""

from budget_tracker.aggregation.engine import (
    daily_average,
    day_totals,
    days_in_month,
    grand_totals,
    summarize_all_years,
    summarize_category_breakdown,
    summarize_month,
)

__all__ = [
    "daily_average",
    "day_totals",
    "days_in_month",
    "grand_totals",
    "summarize_all_years",
    "summarize_category_breakdown",
    "summarize_month",
]
