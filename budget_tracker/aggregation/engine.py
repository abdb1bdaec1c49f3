"""
Aggregation Engine

DESIGN DECISION: Summaries are computed, never stored.
Every function here is pure: it reads a Store and returns new summary
objects. Nothing is cached and nothing is written back, so the engine
can be called at any point of an editing session without coordination
and two calls on an unchanged Store always agree.

Keys that are not valid month keys are ignored. A month that was never
touched reads as an empty record (budget 0, no expenses, no
subscriptions).
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from budget_tracker.models.ledger import (
    UNCATEGORIZED,
    MonthRecord,
    Store,
    day_key,
    is_month_key,
    month_key,
    parse_month_key,
)
from budget_tracker.models.summary import (
    CategoryBreakdown,
    CategoryTotal,
    DayTotals,
    GrandTotals,
    MonthSummary,
    YearSummary,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _expenses_total(record: MonthRecord) -> Decimal:
    return sum(
        (expense.amount for expenses in record.expenses.values() for expense in expenses),
        ZERO,
    )


def _subscriptions_total(record: MonthRecord) -> Decimal:
    # Counts every subscription, including days the month doesn't have
    return sum((sub.amount for sub in record.subscriptions), ZERO)


def days_in_month(year: int, month_index: int) -> int:
    return calendar.monthrange(year, month_index + 1)[1]


def summarize_month(store: Store, key: str) -> MonthSummary:
    """
    Totals for one month.

    Raises:
        ValueError: If key is not a "YYYY-MM" month key
    """
    parsed = parse_month_key(key)
    if parsed is None:
        raise ValueError(f"Not a month key: {key!r}")
    year, month_index = parsed

    record = store.get(key)
    daily = _expenses_total(record)
    subs = _subscriptions_total(record)
    total_spent = daily + subs

    return MonthSummary(
        key=key,
        year=year,
        month_index=month_index,
        budget=record.budget,
        daily_expenses_total=daily,
        subscriptions_total=subs,
        total_spent=total_spent,
        remaining=record.budget - total_spent,
        has_data=record.budget > 0 or daily > 0 or subs > 0,
    )


def summarize_all_years(store: Store, active_key: Optional[str] = None) -> list[YearSummary]:
    """
    Year-by-year history, newest year first.

    Months without any data are left out, except active_key (the month
    being viewed), which is always listed even if it is still empty or
    not in the Store at all.
    """
    keys = set(store.month_keys())
    if active_key is not None and is_month_key(active_key):
        keys.add(active_key)

    by_year: dict[int, list[MonthSummary]] = {}
    for key in keys:
        summary = summarize_month(store, key)
        if not summary.has_data and key != active_key:
            continue
        by_year.setdefault(summary.year, []).append(summary)

    years = []
    for year, months in by_year.items():
        months.sort(key=lambda m: m.month_index)
        total_budget = sum((m.budget for m in months), ZERO)
        total_expenses = sum((m.daily_expenses_total for m in months), ZERO)
        total_subs = sum((m.subscriptions_total for m in months), ZERO)
        total_spent = total_expenses + total_subs
        years.append(YearSummary(
            year=year,
            months=months,
            total_budget=total_budget,
            total_expenses=total_expenses,
            total_subs=total_subs,
            total_spent=total_spent,
            remaining=total_budget - total_spent,
        ))

    years.sort(key=lambda y: y.year, reverse=True)
    return years


def grand_totals(years: Iterable[YearSummary]) -> GrandTotals:
    """Sums across year summaries (the footer of the history table)."""
    total_budget = total_expenses = total_subs = ZERO
    for year in years:
        total_budget += year.total_budget
        total_expenses += year.total_expenses
        total_subs += year.total_subs
    return GrandTotals(
        total_budget=total_budget,
        total_expenses=total_expenses,
        total_subs=total_subs,
        remaining=total_budget - total_expenses - total_subs,
    )


def summarize_category_breakdown(store: Store, year: int, month_index: int) -> CategoryBreakdown:
    """
    A month's daily expenses grouped by category, largest first.

    Untagged expenses go to the "uncategorized" bucket. Equal amounts
    keep the order in which their category was first seen.
    """
    key = month_key(year, month_index)
    record = store.get(key)

    totals: dict[str, Decimal] = {}
    for expenses in record.expenses.values():
        for expense in expenses:
            category = expense.category.value if expense.category else UNCATEGORIZED
            totals[category] = totals.get(category, ZERO) + expense.amount

    # sorted() is stable, which gives the first-seen tie order
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    total = sum(totals.values(), ZERO)
    largest = ranked[0][1] if ranked else ZERO

    categories = [
        CategoryTotal(
            category=category,
            amount=amount,
            percent_of_total=amount / total * HUNDRED if total > 0 else ZERO,
            bar_width=amount / largest * HUNDRED if largest > 0 else ZERO,
        )
        for category, amount in ranked
    ]
    return CategoryBreakdown(key=key, total=total, categories=categories)


def day_totals(store: Store, year: int, month_index: int) -> list[DayTotals]:
    """
    Per-day totals for every calendar day of a month.

    Subscriptions due on a day the month doesn't have (day 31 in April)
    have no cell here; they still count in summarize_month().
    """
    record = store.get(month_key(year, month_index))
    cells = []
    for day in range(1, days_in_month(year, month_index) + 1):
        key = day_key(year, month_index, day)
        expenses = record.expenses.get(key, [])
        subs = record.subscriptions_due(day)
        cells.append(DayTotals(
            day=day,
            key=key,
            expenses_total=sum((e.amount for e in expenses), ZERO),
            expense_count=len(expenses),
            subscriptions_total=sum((s.amount for s in subs), ZERO),
            subscription_count=len(subs),
        ))
    return cells


def daily_average(store: Store, year: int, month_index: int, today: date) -> Decimal:
    """
    Average daily expense of a month.

    For the current month the divisor is the days elapsed so far;
    for any other month it is the length of the month.
    """
    record = store.get(month_key(year, month_index))
    if (today.year, today.month - 1) == (year, month_index):
        elapsed = today.day
    else:
        elapsed = days_in_month(year, month_index)
    return _expenses_total(record) / elapsed
