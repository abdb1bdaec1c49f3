"""
Summary Models

Derived, never persisted. Built by the aggregation engine from a Store
snapshot and handed to whatever renders them.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BudgetStatus(str, Enum):
    """Status shown next to a month or a year."""
    NO_DATA = "no_data"
    UNDER_BUDGET = "under_budget"
    OVER_BUDGET = "over_budget"


def budget_status(has_data: bool, remaining: Decimal) -> BudgetStatus:
    if not has_data:
        return BudgetStatus.NO_DATA
    if remaining >= 0:
        return BudgetStatus.UNDER_BUDGET
    return BudgetStatus.OVER_BUDGET


def remaining_percent(budget: Decimal, remaining: Decimal) -> Decimal:
    """
    Share of the budget still available, clamped to 0..100.

    With no budget there is nothing to divide by; the bar is shown full.
    """
    if budget <= 0:
        return Decimal("100")
    pct = remaining / budget * 100
    return max(Decimal("0"), min(Decimal("100"), pct))


class MonthSummary(BaseModel):
    """Totals for one month."""
    model_config = ConfigDict(frozen=True)

    key: str
    year: int
    month_index: int = Field(ge=0, le=11)
    budget: Decimal
    daily_expenses_total: Decimal
    subscriptions_total: Decimal
    total_spent: Decimal
    remaining: Decimal
    has_data: bool

    @property
    def status(self) -> BudgetStatus:
        return budget_status(self.has_data, self.remaining)

    @property
    def remaining_percent(self) -> Decimal:
        return remaining_percent(self.budget, self.remaining)


class YearSummary(BaseModel):
    """Totals for the months of one year that carry data."""
    model_config = ConfigDict(frozen=True)

    year: int
    months: list[MonthSummary] = Field(default_factory=list)
    total_budget: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_subs: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")

    @property
    def has_data(self) -> bool:
        return self.total_budget > 0 or self.total_expenses > 0 or self.total_subs > 0

    @property
    def status(self) -> BudgetStatus:
        return budget_status(self.has_data, self.remaining)


class GrandTotals(BaseModel):
    """Sums across every year summary."""
    model_config = ConfigDict(frozen=True)

    total_budget: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_subs: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")


class CategoryTotal(BaseModel):
    """One bucket of a month's category breakdown."""
    model_config = ConfigDict(frozen=True)

    category: str
    amount: Decimal
    percent_of_total: Decimal = Field(
        ...,
        description="Share of the month's daily expenses, 0..100"
    )
    bar_width: Decimal = Field(
        ...,
        description="Amount relative to the largest bucket, 0..100"
    )


class CategoryBreakdown(BaseModel):
    """Daily expenses of one month grouped by category, largest first."""
    model_config = ConfigDict(frozen=True)

    key: str
    total: Decimal
    categories: list[CategoryTotal] = Field(default_factory=list)


class DayTotals(BaseModel):
    """What a calendar cell shows for one day."""
    model_config = ConfigDict(frozen=True)

    day: int = Field(ge=1, le=31)
    key: str
    expenses_total: Decimal
    expense_count: int
    subscriptions_total: Decimal
    subscription_count: int
