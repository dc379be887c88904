#!/usr/bin/env python3
"""Print category, daily and budget totals for one month."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from expense_tracker import ExpenseTracker, SQLiteExpenseStore
from expense_tracker import aggregation as agg
from expense_tracker.budgeting import budget_summary_frame
from expense_tracker.config import get_db_path
from expense_tracker.log import setup_logger


def main(db_path: str, month: datetime) -> int:
    setup_logger("month_summary")

    with SQLiteExpenseStore(db_path) as store:
        tracker = ExpenseTracker(store)
        snapshot = tracker.refresh(now=month)
        grid = tracker.month_grid(month)

    if not snapshot.current_month_expenses:
        print(f"No expenses recorded for {month:%B %Y}.")
        return 0

    print(f"{month:%B %Y}: {len(snapshot.current_month_expenses)} expenses, total ${snapshot.total_spent:,.2f}")

    print("\nBy category:")
    for name, amount in sorted(snapshot.category_spending.items(), key=lambda item: -item[1]):
        print(f"  {name:<16} ${amount:>10,.2f}")

    print("\nBy day:")
    for day in range(1, grid.total_days + 1):
        if day in grid.totals:
            print(f"  {day:>2}  ${grid.total_for(day):>10,.2f}")

    print("\nBy week:")
    for week in snapshot.weekly_spending:
        print(f"  {week.start_date:%Y-%m-%d}  ${week.total:>10,.2f}")

    if snapshot.current_budget is None:
        print("\nNo budget set for this month.")
    else:
        print(
            f"\nBudget ${snapshot.current_budget.amount:,.2f}: "
            f"{snapshot.budget_progress:.0%} used, status {snapshot.budget_status.value}, "
            f"${snapshot.remaining_budget:,.2f} remaining"
        )
        frame = budget_summary_frame(snapshot.category_budgets, snapshot.category_spending)
        if not frame.empty:
            print(frame.to_string(index=False))

    top = agg.group_by_category(snapshot.current_month_expenses)
    print(f"\nCategories with expenses: {', '.join(sorted(top))}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Show a monthly spending summary.')
    parser.add_argument('--db', default=get_db_path(), help='SQLite database file')
    parser.add_argument('--month', default=None, help='Month as YYYY-MM (defaults to the current month)')
    args = parser.parse_args()
    target = datetime.strptime(args.month, '%Y-%m') if args.month else datetime.now()
    raise SystemExit(main(args.db, target))
