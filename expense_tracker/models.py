"""Records and derived aggregate structures used by the tracker.

Records (``Expense``, ``Category``, ``Budget``, ``CategoryBudget``) are
immutable snapshots of what the store holds; stores hand back new
instances after every mutation.  Aggregates are plain read-only bundles
recomputed on demand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

UNCATEGORIZED = "Uncategorized"

DEFAULT_CATEGORIES: Tuple[str, ...] = (
    "Transport",
    "Entertainment",
    "Groceries",
    "Hobbies",
    "Subscriptions",
    "Utilities",
    "Healthcare",
    "Food",
)


@dataclass(frozen=True)
class Category:
    name: str
    id: Optional[int] = None


@dataclass(frozen=True)
class Expense:
    """A single spending record.

    Stores keep ``date`` as a naive wall-clock datetime: plain dates are
    read as midnight and timezone-aware values lose their offset on write.
    """

    amount: float
    category: Optional[Category]
    remarks: str
    date: Optional[datetime]
    emoji: str = ""
    id: Optional[int] = None

    @property
    def category_name(self) -> str:
        if self.category is None or not self.category.name:
            return UNCATEGORIZED
        return self.category.name


@dataclass(frozen=True)
class Budget:
    amount: float
    month: date  # first calendar day of the month
    id: Optional[int] = None


@dataclass(frozen=True)
class CategoryBudget:
    amount: float
    category: Category
    budget_id: int
    id: Optional[int] = None


class BudgetStatus(str, Enum):
    ON_TRACK = "on_track"
    WARNING = "warning"
    OVER_BUDGET = "over_budget"


@dataclass(frozen=True)
class CategoryAmount:
    category: str
    amount: float


@dataclass(frozen=True)
class DailySpending:
    date: datetime
    entries: Tuple[CategoryAmount, ...]

    @property
    def total(self) -> float:
        return sum(entry.amount for entry in self.entries)


@dataclass(frozen=True)
class WeeklySpending:
    start_date: datetime
    entries: Tuple[CategoryAmount, ...]

    @property
    def total(self) -> float:
        return sum(entry.amount for entry in self.entries)


@dataclass(frozen=True)
class CategoryBudgetProgress:
    category: str
    budgeted: float
    spent: float
    remaining: float
    progress: float
    status: BudgetStatus


@dataclass(frozen=True)
class MonthGrid:
    """Everything a calendar heat-map needs for one month."""

    month: date
    leading_blanks: int
    total_days: int
    trailing_blanks: int
    totals: Mapping[int, float]
    expenses: Mapping[int, Tuple[Expense, ...]]

    def total_for(self, day: int) -> float:
        return self.totals.get(day, 0.0)


@dataclass(frozen=True)
class Snapshot:
    """Read-only bundle of everything derived from the current month."""

    generated_at: datetime
    current_budget: Optional[Budget] = None
    category_budgets: Tuple[CategoryBudget, ...] = ()
    current_month_expenses: Tuple[Expense, ...] = ()
    total_spent: float = 0.0
    category_spending: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    daily_spending: Tuple[DailySpending, ...] = ()
    weekly_spending: Tuple[WeeklySpending, ...] = ()
    budget_progress: float = 1.0
    budget_status: BudgetStatus = BudgetStatus.OVER_BUDGET
    remaining_budget: float = 0.0
    category_progress: Tuple[CategoryBudgetProgress, ...] = ()
