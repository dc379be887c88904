"""Monthly budget resolution, replace-all updates and progress classification.

A month has at most one :class:`Budget`.  Updating it always rewrites the
whole set of :class:`CategoryBudget` lines: every existing line of that
budget is deleted and one fresh line per current category is created,
with ``0`` for categories missing from the submitted mapping.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd

try:
    from .calendar_utils import month_bounds
    from .models import Budget, BudgetStatus, CategoryBudget, CategoryBudgetProgress
    from .store import ExpenseStore, StoreError
except ImportError:  # pragma: no cover - fallback for direct execution
    from calendar_utils import month_bounds
    from models import Budget, BudgetStatus, CategoryBudget, CategoryBudgetProgress
    from store import ExpenseStore, StoreError

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = 0.7
OVER_BUDGET_THRESHOLD = 0.9


def progress(total_spent: float, budget_amount: Optional[float]) -> float:
    """Share of the budget consumed, clamped to ``[0, 1]``.

    A missing or zero budget counts as fully consumed.
    """
    if budget_amount is None or budget_amount <= 0:
        return 1.0
    return max(0.0, min(total_spent / budget_amount, 1.0))


def status(ratio: float) -> BudgetStatus:
    if ratio < WARNING_THRESHOLD:
        return BudgetStatus.ON_TRACK
    if ratio < OVER_BUDGET_THRESHOLD:
        return BudgetStatus.WARNING
    return BudgetStatus.OVER_BUDGET


def remaining(total_spent: float, budget_amount: Optional[float]) -> float:
    """Budget left to spend; negative once overspent."""
    return (budget_amount or 0.0) - total_spent


def category_progress(
    category_budgets: Sequence[CategoryBudget],
    category_spending: Mapping[str, float],
) -> List[CategoryBudgetProgress]:
    """One progress row per budget line, in the order of ``category_budgets``."""
    rows = []
    for line in category_budgets:
        spent = float(category_spending.get(line.category.name, 0.0))
        ratio = progress(spent, line.amount)
        rows.append(CategoryBudgetProgress(
            category=line.category.name,
            budgeted=line.amount,
            spent=spent,
            remaining=remaining(spent, line.amount),
            progress=ratio,
            status=status(ratio),
        ))
    return rows


def budget_summary_frame(
    category_budgets: Sequence[CategoryBudget],
    category_spending: Mapping[str, float],
) -> pd.DataFrame:
    """Tabular version of :func:`category_progress`.

    Columns: Category, Budget, Spent, Remaining, Progress, Status.
    """
    columns = ['Category', 'Budget', 'Spent', 'Remaining', 'Progress', 'Status']
    rows = [
        {
            'Category': row.category,
            'Budget': row.budgeted,
            'Spent': row.spent,
            'Remaining': row.remaining,
            'Progress': row.progress,
            'Status': row.status.value,
        }
        for row in category_progress(category_budgets, category_spending)
    ]
    return pd.DataFrame(rows, columns=columns)


class BudgetManager:
    """Resolve and rewrite the budget of the current month through a store."""

    def __init__(self, store: ExpenseStore):
        self.store = store

    def resolve_current(self, now: datetime) -> Optional[Budget]:
        """The budget whose month is the first day of ``now``'s month, if any.

        Fetch failures are logged and reported as "no budget".
        """
        try:
            return self.store.fetch_current_budget(now)
        except StoreError:
            logger.exception("Failed to fetch budget for %s", now)
            return None

    def category_budgets(self, budget: Optional[Budget]) -> List[CategoryBudget]:
        if budget is None:
            return []
        try:
            return self.store.fetch_category_budgets(budget)
        except StoreError:
            logger.exception("Failed to fetch category budgets for budget %s", budget.id)
            return []

    def ensure_and_update(
        self,
        amount: float,
        per_category_amounts: Mapping[str, float],
        now: Optional[datetime] = None,
    ) -> Budget:
        """Create or update this month's budget and replace all of its category lines.

        Args:
            amount: Overall monthly cap.
            per_category_amounts: Category name to cap; categories missing
                here get a ``0`` line, names that are not categories are ignored.
            now: Reference moment, defaults to the current time.

        Returns:
            The stored budget.

        Raises:
            ValueError: For negative amounts.
            StoreError: When a read or write fails.  Reads happen first, so a
                failed read leaves the stored budget untouched.
        """
        now = now or datetime.now()
        if amount < 0:
            raise ValueError("budget amount must not be negative")
        negatives = sorted(name for name, value in per_category_amounts.items() if value < 0)
        if negatives:
            raise ValueError(f"category budgets must not be negative: {', '.join(negatives)}")

        bounds = month_bounds(now)
        if bounds is None:
            raise ValueError(f"cannot resolve month for {now!r}")

        # Read everything up front so a failed read aborts before any write
        budget = self.store.fetch_current_budget(now)
        existing = self.store.fetch_category_budgets(budget) if budget is not None else []
        categories = self.store.fetch_categories()

        if budget is None:
            budget = self.store.create_budget(amount, bounds[0].date())
            self._save()
        else:
            budget = self.store.update_budget_amount(budget, amount)

        for line in existing:
            self.store.delete_category_budget(line)

        created: Dict[str, float] = {}
        for category in categories:
            line_amount = float(per_category_amounts.get(category.name, 0.0))
            self.store.create_category_budget(line_amount, category, budget)
            created[category.name] = line_amount

        self._save()
        logger.info("Budget updated: %.2f for %s, categories: %s", amount, budget.month.isoformat(), created)
        return budget

    def _save(self) -> bool:
        try:
            self.store.save()
        except StoreError:
            logger.exception("Failed to save budget changes")
            return False
        return True
