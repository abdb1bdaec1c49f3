"""
Ledger Models for Budget Tracker

These models define the persisted state of the tracker:
a Store maps month keys ("YYYY-MM") to MonthRecords, and each
MonthRecord holds a budget, recurring subscriptions and per-day
expenses keyed by day keys ("YYYY-MM-DD").

DESIGN DECISION: Loading is tolerant, writing is strict.
Data on disk or in the remote sheet may be old, hand-edited or written
by another client. Missing fields take their defaults, unknown category
tags fall back to "other", and a bad entry is dropped with a warning
instead of failing its month or the whole load.
"""

import json
import re
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Iterator, Optional

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    RootModel,
    ValidationError,
    field_validator,
    model_validator,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# KEYS
# =============================================================================

MONTH_KEY_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}")


def month_key(year: int, month_index: int) -> str:
    """Build a "YYYY-MM" key from a year and a 0-based month index."""
    return f"{year:04d}-{month_index + 1:02d}"


def day_key(year: int, month_index: int, day: int) -> str:
    """Build a "YYYY-MM-DD" key from a year, 0-based month index and day."""
    return f"{month_key(year, month_index)}-{day:02d}"


def parse_month_key(key: str) -> Optional[tuple[int, int]]:
    """
    Split a month key into (year, 0-based month index).

    Returns None for anything that is not a valid month key,
    including well-shaped keys with a month outside 01..12.
    """
    if not isinstance(key, str) or not MONTH_KEY_PATTERN.fullmatch(key):
        return None
    year, month = key.split("-")
    month_index = int(month) - 1
    if not 0 <= month_index <= 11:
        return None
    return int(year), month_index


def is_month_key(key: str) -> bool:
    return parse_month_key(key) is not None


# =============================================================================
# ENUMS
# =============================================================================

class ExpenseCategory(str, Enum):
    """Tags an expense can carry."""
    FOOD = "food"
    TRANSPORT = "transport"
    BILLS = "bills"
    SHOPPING = "shopping"
    HEALTH = "health"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


# Breakdown bucket for expenses without a tag. Never stored.
UNCATEGORIZED = "uncategorized"


# Money: Decimal in memory, a plain JSON number on disk and on the wire.
Amount = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]


def _drop_nulls(data: Any) -> Any:
    """Let explicit nulls fall back to field defaults."""
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if v is not None}
    return data


# =============================================================================
# ENTITIES
# =============================================================================

class Expense(BaseModel):
    """A single spending entry on one day."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: str = Field(
        default="",
        description="What the money was spent on"
    )
    amount: Amount = Decimal("0")
    category: Optional[ExpenseCategory] = Field(
        default=None,
        description="Optional tag; untagged expenses are 'uncategorized' in breakdowns"
    )

    @model_validator(mode='before')
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # category=None is meaningful, keep it
        if isinstance(data, dict):
            return {
                k: v for k, v in data.items()
                if v is not None or k == "category"
            }
        return data

    @field_validator('category', mode='before')
    @classmethod
    def normalize_category(cls, v: Any) -> Optional[ExpenseCategory]:
        """Empty tags mean no category; unknown tags become OTHER."""
        if v is None or isinstance(v, ExpenseCategory):
            return v
        tag = str(v).strip().lower()
        if not tag or tag == UNCATEGORIZED:
            return None
        try:
            return ExpenseCategory(tag)
        except ValueError:
            return ExpenseCategory.OTHER


class Subscription(BaseModel):
    """
    A recurring monthly charge due on a given day.

    The day may not exist in every month (day 31 in a 30-day month).
    The subscription still counts toward that month's total.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: str = ""
    amount: Amount = Decimal("0")
    day: int = Field(
        default=1,
        ge=1,
        le=31,
        description="Day of month the charge is due"
    )
    paid: bool = False

    @model_validator(mode='before')
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)


class MonthRecord(BaseModel):
    """
    Budget, subscriptions and expenses for one calendar month.

    Expenses are keyed by day key. A day key is present only while
    it holds at least one expense.
    """
    model_config = ConfigDict(validate_assignment=True)

    budget: Amount = Decimal("0")
    subscriptions: list[Subscription] = Field(default_factory=list)
    expenses: dict[str, list[Expense]] = Field(default_factory=dict)

    @model_validator(mode='before')
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        data = _drop_nulls(data)
        if isinstance(data, dict) and isinstance(data.get("expenses"), dict):
            data = dict(data)
            data["expenses"] = {
                k: v for k, v in data["expenses"].items() if v is not None
            }
        return data

    @property
    def is_empty(self) -> bool:
        return (
            self.budget == 0
            and not self.subscriptions
            and not self.expenses
        )

    # -- read helpers ---------------------------------------------------------

    def expenses_on(self, day: str) -> list[Expense]:
        """Expenses recorded under a day key (empty list if none)."""
        return list(self.expenses.get(day, []))

    def subscriptions_due(self, day: int) -> list[Subscription]:
        """Subscriptions due on a day of month."""
        return [sub for sub in self.subscriptions if sub.day == day]

    # -- edits ----------------------------------------------------------------

    def set_budget(self, amount: Decimal) -> None:
        self.budget = amount

    def add_expense(self, day: str, expense: Expense) -> Expense:
        self.expenses.setdefault(day, []).append(expense)
        return expense

    def update_expense(self, day: str, index: int, **changes: Any) -> Expense:
        """
        Replace fields of an existing expense.

        Raises:
            KeyError: no expenses on that day
            IndexError: no expense at that position
            ValidationError: the changes are invalid
        """
        current = self.expenses[day][index]
        updated = Expense.model_validate({**current.model_dump(), **changes})
        self.expenses[day][index] = updated
        return updated

    def remove_expense(self, day: str, index: int) -> Expense:
        """Remove an expense; the day key goes away with its last expense."""
        removed = self.expenses[day].pop(index)
        if not self.expenses[day]:
            del self.expenses[day]
        return removed

    def add_subscription(self, subscription: Subscription) -> Subscription:
        self.subscriptions.append(subscription)
        return subscription

    def update_subscription(self, index: int, **changes: Any) -> Subscription:
        current = self.subscriptions[index]
        updated = Subscription.model_validate({**current.model_dump(), **changes})
        self.subscriptions[index] = updated
        return updated

    def remove_subscription(self, index: int) -> Subscription:
        return self.subscriptions.pop(index)


# =============================================================================
# TOLERANT LOADING
# =============================================================================

def _entries_from_raw(model: type[BaseModel], items: Any, month: str, field: str) -> list:
    """Validate a list of entries one by one, dropping the bad ones."""
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning("store_entries_dropped", month_key=month, field=field)
        return []

    kept = []
    for position, item in enumerate(items):
        try:
            kept.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "store_entry_dropped",
                month_key=month,
                field=field,
                position=position,
                error_count=e.error_count(),
            )
    return kept


def _month_from_raw(key: str, value: Any) -> Optional[MonthRecord]:
    """Build one MonthRecord, salvaging what validates."""
    if value is None:
        value = {}
    try:
        return MonthRecord.model_validate(value)
    except ValidationError as e:
        if not isinstance(value, dict):
            logger.warning("store_month_dropped", month_key=key, type=type(value).__name__)
            return None
        logger.info("store_month_salvaged", month_key=key, error_count=e.error_count())

    record = MonthRecord()
    budget = value.get("budget")
    if budget is not None:
        try:
            record.budget = budget
        except ValidationError:
            logger.warning("store_budget_reset", month_key=key, budget=repr(budget))

    record.subscriptions = _entries_from_raw(
        Subscription, value.get("subscriptions"), key, "subscriptions"
    )

    expenses = value.get("expenses")
    if expenses is not None and not isinstance(expenses, dict):
        logger.warning("store_entries_dropped", month_key=key, field="expenses")
        expenses = None
    for day, items in (expenses or {}).items():
        kept = _entries_from_raw(Expense, items, key, f"expenses.{day}")
        if kept:
            record.expenses[str(day)] = kept
    return record


class Store(RootModel[dict[str, MonthRecord]]):
    """
    The entire persisted state for one identity: month key -> MonthRecord.

    Two accessors on purpose:
    - get_month() reads, returning a fresh empty record for an
      untouched month without inserting it.
    - month_for_update() inserts-if-absent and returns the live record.
    """

    root: dict[str, MonthRecord] = Field(default_factory=dict)

    # -- mapping protocol -----------------------------------------------------

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, key: object) -> bool:
        return key in self.root

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def keys(self):
        return self.root.keys()

    def items(self):
        return self.root.items()

    @property
    def is_empty(self) -> bool:
        return not self.root

    def month_keys(self) -> list[str]:
        """Valid month keys in ascending order; foreign keys are skipped."""
        return sorted(key for key in self.root if is_month_key(key))

    # -- accessors ------------------------------------------------------------

    def get(self, key: str) -> MonthRecord:
        """Record under a month key, or a fresh empty record (not inserted)."""
        record = self.root.get(key)
        return record if record is not None else MonthRecord()

    def get_month(self, year: int, month_index: int) -> MonthRecord:
        return self.get(month_key(year, month_index))

    def month_for_update(self, year: int, month_index: int) -> MonthRecord:
        key = month_key(year, month_index)
        if key not in self.root:
            self.root[key] = MonthRecord()
        return self.root[key]

    def copy_deep(self) -> "Store":
        return self.model_copy(deep=True)

    # -- serialization --------------------------------------------------------

    def to_raw(self) -> dict[str, Any]:
        """JSON-ready mapping; expenses without a category omit the key."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        return json.dumps(self.to_raw(), ensure_ascii=False)

    @classmethod
    def from_raw(cls, data: Any) -> "Store":
        """
        Build a Store from decoded JSON, tolerating bad entries.

        Anything that is not a mapping yields an empty Store. Within a
        month, a bad budget falls back to zero and a bad expense or
        subscription is dropped; the rest of the month is kept. Only a
        month that is not a mapping at all is dropped. Every drop is logged.
        """
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("store_payload_not_a_mapping", type=type(data).__name__)
            return cls()

        months: dict[str, MonthRecord] = {}
        for key, value in data.items():
            record = _month_from_raw(str(key), value)
            if record is not None:
                months[str(key)] = record
        return cls(months)

    @classmethod
    def from_json(cls, text: str) -> "Store":
        """Parse JSON text; raises ValueError if it is not JSON at all."""
        return cls.from_raw(json.loads(text))
