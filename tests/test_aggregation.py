"""Tests for the aggregation engine."""

import pytest
from datetime import date
from decimal import Decimal

from budget_tracker.aggregation import (
    daily_average,
    day_totals,
    days_in_month,
    grand_totals,
    summarize_all_years,
    summarize_category_breakdown,
    summarize_month,
)
from budget_tracker.models import (
    BudgetStatus,
    Expense,
    ExpenseCategory,
    Store,
    Subscription,
)


def make_store() -> Store:
    """2024-01 with data, 2024-02 touched but empty."""
    store = Store()
    january = store.month_for_update(2024, 0)
    january.set_budget(Decimal("1000"))
    january.add_expense("2024-01-01", Expense(name="Groceries", amount=Decimal("100")))
    january.add_subscription(Subscription(name="Music", amount=Decimal("50"), day=5))
    store.month_for_update(2024, 1)
    return store


class TestSummarizeMonth:
    """Tests for per-month totals."""

    def test_missing_month_is_empty(self):
        """Test that a month not in the Store has zero totals and no data."""
        summary = summarize_month(make_store(), "2031-07")
        assert summary.budget == Decimal("0")
        assert summary.daily_expenses_total == Decimal("0")
        assert summary.subscriptions_total == Decimal("0")
        assert summary.total_spent == Decimal("0")
        assert summary.remaining == Decimal("0")
        assert summary.has_data is False
        assert summary.status == BudgetStatus.NO_DATA

    def test_totals(self):
        """Test the sums for a month with data."""
        summary = summarize_month(make_store(), "2024-01")
        assert (summary.year, summary.month_index) == (2024, 0)
        assert summary.daily_expenses_total == Decimal("100")
        assert summary.subscriptions_total == Decimal("50")
        assert summary.total_spent == Decimal("150")
        assert summary.remaining == Decimal("850")
        assert summary.remaining_percent == Decimal("85")
        assert summary.status == BudgetStatus.UNDER_BUDGET

    def test_over_budget(self):
        """Test a month that spent more than its budget."""
        store = Store()
        record = store.month_for_update(2024, 2)
        record.set_budget(Decimal("100"))
        record.add_expense("2024-03-10", Expense(amount=Decimal("250")))
        summary = summarize_month(store, "2024-03")
        assert summary.remaining == Decimal("-150")
        assert summary.status == BudgetStatus.OVER_BUDGET

    def test_is_idempotent(self):
        """Test that repeated calls agree and leave the Store untouched."""
        store = make_store()
        before = store.to_json()
        assert summarize_month(store, "2024-01") == summarize_month(store, "2024-01")
        summarize_month(store, "2030-01")
        assert store.to_json() == before
        assert "2030-01" not in store

    def test_subscription_on_missing_day_counts(self):
        """Test that a day-31 subscription counts in a 30-day month."""
        store = Store()
        store.month_for_update(2024, 3).add_subscription(
            Subscription(name="Rent", amount=Decimal("9000"), day=31)
        )
        assert summarize_month(store, "2024-04").subscriptions_total == Decimal("9000")

    def test_rejects_non_month_key(self):
        """Test that a malformed key is an error."""
        with pytest.raises(ValueError):
            summarize_month(Store(), "2024-1")


class TestSummarizeAllYears:
    """Tests for the yearly history."""

    def test_year_example(self):
        """Test that empty months are left out and totals add up."""
        years = summarize_all_years(make_store())
        assert len(years) == 1
        year = years[0]
        assert year.year == 2024
        assert year.total_budget == Decimal("1000")
        assert year.total_expenses == Decimal("100")
        assert year.total_subs == Decimal("50")
        assert year.total_spent == Decimal("150")
        assert year.remaining == Decimal("850")
        assert [m.key for m in year.months] == ["2024-01"]

    def test_active_month_always_listed(self):
        """Test that the viewed month shows up even when empty or absent."""
        store = make_store()

        years = summarize_all_years(store, active_key="2024-02")
        assert [m.key for m in years[0].months] == ["2024-01", "2024-02"]

        years = summarize_all_years(store, active_key="2025-06")
        assert [y.year for y in years] == [2025, 2024]
        assert [m.key for m in years[0].months] == ["2025-06"]
        assert years[0].status == BudgetStatus.NO_DATA

    def test_order(self):
        """Test years newest first, months ascending."""
        store = Store()
        for year, month in [(2023, 11), (2024, 5), (2024, 0), (2022, 3)]:
            store.month_for_update(year, month).set_budget(Decimal("10"))
        years = summarize_all_years(store)
        assert [y.year for y in years] == [2024, 2023, 2022]
        assert [m.month_index for m in years[0].months] == [0, 5]

    def test_foreign_keys_ignored(self):
        """Test that keys that are not month keys are skipped."""
        store = Store.from_raw({
            "2024-01": {"budget": 10},
            "profile": {"budget": 999},
            "2024-13": {"budget": 999},
            "２０２４-０１": {"budget": 999},
        })
        years = summarize_all_years(store)
        assert [m.key for y in years for m in y.months] == ["2024-01"]
        assert years[0].total_budget == Decimal("10")

    def test_empty_store(self):
        """Test that an empty Store has no history."""
        assert summarize_all_years(Store()) == []

    def test_grand_totals(self):
        """Test sums across years."""
        store = make_store()
        store.month_for_update(2023, 6).set_budget(Decimal("500"))
        totals = grand_totals(summarize_all_years(store))
        assert totals.total_budget == Decimal("1500")
        assert totals.total_expenses == Decimal("100")
        assert totals.total_subs == Decimal("50")
        assert totals.remaining == Decimal("1350")


class TestCategoryBreakdown:
    """Tests for per-category grouping."""

    def test_example(self):
        """Test grouping, untagged bucket and ordering."""
        store = Store()
        record = store.month_for_update(2024, 0)
        record.add_expense("2024-01-01", Expense(amount=Decimal("100"), category=ExpenseCategory.FOOD))
        record.add_expense("2024-01-02", Expense(amount=Decimal("50"), category=ExpenseCategory.FOOD))
        record.add_expense("2024-01-02", Expense(amount=Decimal("25")))

        breakdown = summarize_category_breakdown(store, 2024, 0)
        assert [(c.category, c.amount) for c in breakdown.categories] == [
            ("food", Decimal("150")),
            ("uncategorized", Decimal("25")),
        ]
        assert breakdown.total == summarize_month(store, "2024-01").daily_expenses_total
        assert breakdown.categories[0].bar_width == Decimal("100")
        assert breakdown.categories[1].percent_of_total == Decimal("25") / Decimal("175") * 100

    def test_ties_keep_first_seen_order(self):
        """Test that equal amounts keep the order they were met in."""
        store = Store()
        record = store.month_for_update(2024, 0)
        record.add_expense("2024-01-01", Expense(amount=Decimal("10"), category="health"))
        record.add_expense("2024-01-01", Expense(amount=Decimal("10"), category="bills"))
        record.add_expense("2024-01-02", Expense(amount=Decimal("10"), category="food"))

        breakdown = summarize_category_breakdown(store, 2024, 0)
        assert [c.category for c in breakdown.categories] == ["health", "bills", "food"]

    def test_subscriptions_not_included(self):
        """Test that only daily expenses are broken down."""
        store = make_store()
        breakdown = summarize_category_breakdown(store, 2024, 0)
        assert breakdown.total == Decimal("100")

    def test_zero_amounts(self):
        """Test that zero totals do not divide by zero."""
        store = Store()
        store.month_for_update(2024, 0).add_expense("2024-01-01", Expense(name="Free sample"))
        breakdown = summarize_category_breakdown(store, 2024, 0)
        assert breakdown.categories[0].percent_of_total == Decimal("0")
        assert breakdown.categories[0].bar_width == Decimal("0")

    def test_empty_month(self):
        """Test a month with no expenses."""
        breakdown = summarize_category_breakdown(Store(), 2024, 0)
        assert breakdown.categories == []
        assert breakdown.total == Decimal("0")


class TestDayTotals:
    """Tests for the per-day calendar totals."""

    def test_one_cell_per_calendar_day(self):
        """Test month lengths, including leap years."""
        assert len(day_totals(Store(), 2024, 1)) == 29
        assert len(day_totals(Store(), 2023, 1)) == 28
        assert days_in_month(2024, 3) == 30

    def test_cells(self):
        """Test expense and subscription sums per day."""
        cells = day_totals(make_store(), 2024, 0)
        assert cells[0].key == "2024-01-01"
        assert cells[0].expenses_total == Decimal("100")
        assert cells[0].expense_count == 1
        assert cells[4].subscriptions_total == Decimal("50")
        assert cells[4].subscription_count == 1
        assert cells[1].expense_count == 0

    def test_out_of_range_subscription_has_no_cell(self):
        """Test that a day-31 subscription in April is not shown on any day."""
        store = Store()
        store.month_for_update(2024, 3).add_subscription(
            Subscription(name="Rent", amount=Decimal("9000"), day=31)
        )
        cells = day_totals(store, 2024, 3)
        assert sum(c.subscription_count for c in cells) == 0


class TestDailyAverage:
    """Tests for the average daily expense."""

    def test_current_month_uses_elapsed_days(self):
        """Test divisor for the month containing today."""
        average = daily_average(make_store(), 2024, 0, today=date(2024, 1, 10))
        assert average == Decimal("10")

    def test_past_month_uses_month_length(self):
        """Test divisor for any other month."""
        store = Store()
        store.month_for_update(2024, 3).add_expense("2024-04-01", Expense(amount=Decimal("300")))
        assert daily_average(store, 2024, 3, today=date(2024, 6, 1)) == Decimal("10")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
