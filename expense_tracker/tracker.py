"""Engine facade tying the store, aggregation and budgets together.

``ExpenseTracker`` holds no cached aggregates: every call to
:meth:`ExpenseTracker.refresh` fetches the current month again and returns
a fresh immutable :class:`~expense_tracker.models.Snapshot`.  Mutations
write through the store, commit with ``save()`` and then publish a change
event so listeners can refresh.

Storage failures follow two rules:

* a failed fetch is logged and treated as an empty result
* a failed ``save()`` is logged and not rolled back, so the store may show
  changes that were never made durable until the next successful save
"""

from __future__ import annotations

import logging
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

import numpy as np

try:
    from . import aggregation as agg
    from .budgeting import BudgetManager, category_progress, progress, remaining, status
    from .calendar_utils import grid_layout, month_bounds, resolve_first_weekday, trailing_blank_count
    from .events import DATA_CHANGED, DATA_CLEARED, EventBus
    from .fixtures import generate_random_expenses
    from .models import DEFAULT_CATEGORIES, Budget, Category, Expense, MonthGrid, Snapshot
    from .store import ExpenseStore, StoreError
    from .validation import ExpenseForm
except ImportError:  # pragma: no cover - fallback for direct execution
    import aggregation as agg
    from budgeting import BudgetManager, category_progress, progress, remaining, status
    from calendar_utils import grid_layout, month_bounds, resolve_first_weekday, trailing_blank_count
    from events import DATA_CHANGED, DATA_CLEARED, EventBus
    from fixtures import generate_random_expenses
    from models import DEFAULT_CATEGORIES, Budget, Category, Expense, MonthGrid, Snapshot
    from store import ExpenseStore, StoreError
    from validation import ExpenseForm

logger = logging.getLogger(__name__)


class ExpenseTracker:
    """Expense aggregation and budgeting engine.

    Args:
        store: Storage collaborator implementing ``ExpenseStore``.
        bus: Event bus for change notifications; a private one is created
            when omitted.
        first_weekday: Start of week buckets and calendar rows (0=Monday).
            Defaults to ``TRACKER_FIRST_WEEKDAY``.
        clock: Callable returning "now"; injectable for tests.
    """

    def __init__(
        self,
        store: ExpenseStore,
        bus: Optional[EventBus] = None,
        first_weekday: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.bus = bus or EventBus()
        self.first_weekday = resolve_first_weekday(first_weekday)
        self.clock = clock or datetime.now
        self.budgets = BudgetManager(store)
        self.create_default_categories_if_needed()

    # ------------------------------------------------------------------
    # Fetch helpers (fail closed)
    # ------------------------------------------------------------------

    def fetch_expenses(self, month) -> List[Expense]:
        """Expenses of the month containing ``month``, newest first."""
        bounds = month_bounds(month)
        if bounds is None:
            return []
        try:
            return self.store.fetch_expenses(*bounds)
        except StoreError:
            logger.exception("Error fetching expenses for %s", bounds[0].date())
            return []

    def fetch_categories(self) -> List[Category]:
        try:
            return self.store.fetch_categories()
        except StoreError:
            logger.exception("Error fetching categories")
            return []

    def current_budget(self, now: Optional[datetime] = None) -> Optional[Budget]:
        return self.budgets.resolve_current(now or self.clock())

    def save(self) -> bool:
        """Commit pending changes; failures are logged, never rolled back."""
        try:
            self.store.save()
        except StoreError:
            logger.exception("Error saving changes")
            return False
        return True

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def refresh(self, now: Optional[datetime] = None) -> Snapshot:
        now = now or self.clock()
        budget = self.budgets.resolve_current(now)
        lines = self.budgets.category_budgets(budget)
        expenses = self.fetch_expenses(now)

        total = agg.total_amount(expenses)
        spending = agg.by_category(expenses)
        budget_amount = budget.amount if budget else None
        ratio = progress(total, budget_amount)

        return Snapshot(
            generated_at=now,
            current_budget=budget,
            category_budgets=tuple(lines),
            current_month_expenses=tuple(expenses),
            total_spent=total,
            category_spending=MappingProxyType(dict(spending)),
            daily_spending=tuple(agg.by_day(expenses)),
            weekly_spending=tuple(agg.by_week(expenses, self.first_weekday)),
            budget_progress=ratio,
            budget_status=status(ratio),
            remaining_budget=remaining(total, budget_amount),
            category_progress=tuple(category_progress(lines, spending)),
        )

    def month_grid(self, month) -> Optional[MonthGrid]:
        """Calendar heat-map data for the month containing ``month``."""
        bounds = month_bounds(month)
        if bounds is None:
            return None
        expenses = self.fetch_expenses(month)
        leading, total_days = grid_layout(month, self.first_weekday)
        expenses_grid = agg.daily_expenses_grid(month, expenses)
        return MonthGrid(
            month=bounds[0].date(),
            leading_blanks=leading,
            total_days=total_days,
            trailing_blanks=trailing_blank_count(leading, total_days),
            totals=MappingProxyType(agg.daily_totals_grid(month, expenses)),
            expenses=MappingProxyType({day: tuple(items) for day, items in expenses_grid.items()}),
        )

    def expenses_by_category(self, month=None, search: str = "", scope=agg.SearchScope.ALL) -> Dict[str, List[Expense]]:
        """Category sections for a list view, optionally filtered by a search term."""
        expenses = self.fetch_expenses(month or self.clock())
        return agg.group_by_category(agg.search_expenses(expenses, search, scope))

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def add_expense(
        self,
        amount: float,
        category: Optional[Category],
        remarks: str,
        date: Optional[datetime],
        emoji: str = "",
    ) -> Expense:
        expense = self.store.create_expense(Expense(
            amount=amount, category=category, remarks=remarks, date=date, emoji=emoji,
        ))
        self.save()
        self._notify(DATA_CHANGED, action="add", expense_id=expense.id)
        return expense

    def update_expense(
        self,
        expense: Expense,
        amount: float,
        category: Optional[Category],
        remarks: str,
        date: Optional[datetime],
        emoji: str = "",
    ) -> Expense:
        """Replace every field of ``expense``."""
        updated = self.store.update_expense(Expense(
            amount=amount, category=category, remarks=remarks, date=date, emoji=emoji, id=expense.id,
        ))
        self.save()
        self._notify(DATA_CHANGED, action="update", expense_id=updated.id)
        return updated

    def delete_expense(self, expense: Expense) -> None:
        self.store.delete_expense(expense)
        self.save()
        self._notify(DATA_CHANGED, action="delete", expense_id=expense.id)

    def submit_expense(self, form: ExpenseForm) -> Expense:
        """Validate a form and add or update the expense it describes.

        Raises:
            ValidationError: Before anything reaches the store.
        """
        expense = form.to_expense(default_date=self.clock())
        if form.expense_id is None:
            return self.add_expense(expense.amount, expense.category, expense.remarks, expense.date, expense.emoji)
        return self.update_expense(expense, expense.amount, expense.category, expense.remarks, expense.date, expense.emoji)

    def clear_all_expenses(self) -> int:
        removed = self.store.clear_all_expenses()
        self.save()
        logger.info("Cleared %d expenses", removed)
        self._notify(DATA_CLEARED, scope="expenses")
        return removed

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(self, name: str) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValueError("category name must not be empty")
        category = self.store.create_category(name)
        self.save()
        return category

    def create_default_categories_if_needed(self) -> List[Category]:
        """Seed the default categories when none exist; returns what was created.

        Seeding is skipped when the categories cannot be read.
        """
        try:
            existing = self.store.fetch_categories()
        except StoreError:
            logger.exception("Error fetching categories, default categories not seeded")
            return []
        if existing:
            return []
        created = [self.store.create_category(name) for name in DEFAULT_CATEGORIES]
        self.save()
        logger.info("Seeded %d default categories", len(created))
        return created

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def update_budget(
        self,
        amount: float,
        category_budgets: Mapping[str, float],
        now: Optional[datetime] = None,
    ) -> Budget:
        budget = self.budgets.ensure_and_update(amount, category_budgets, now or self.clock())
        self._notify(DATA_CHANGED, action="budget", budget_id=budget.id)
        return budget

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def clear_all_data(self) -> None:
        """Delete every expense, category and budget, then re-seed the default categories."""
        self.store.clear_all_expenses()
        self.store.clear_all_categories()
        self.store.clear_all_budgets()
        self.save()
        logger.info("Cleared all data")
        self.create_default_categories_if_needed()
        self._notify(DATA_CLEARED, scope="all")

    def generate_random_expenses(
        self,
        now: Optional[datetime] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> List[Expense]:
        """Store random expenses for every category in the current month."""
        drafts = generate_random_expenses(self.fetch_categories(), now or self.clock(), rng)
        created = [self.store.create_expense(draft) for draft in drafts]
        self.save()
        logger.info("Generated %d random expenses", len(created))
        self._notify(DATA_CHANGED, action="generate", count=len(created))
        return created

    def _notify(self, name: str, **payload) -> None:
        self.bus.publish(name, payload)
