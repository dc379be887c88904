#!/usr/bin/env python3
"""Fill the expense database with random expenses for the current month."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

import numpy as np

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from expense_tracker import ExpenseTracker, SQLiteExpenseStore
from expense_tracker.config import ensure_data_directories, get_db_path
from expense_tracker.log import setup_logger


def main(db_path: str, seed: Optional[int] = None) -> int:
    logger = setup_logger("seed_demo_data")
    ensure_data_directories()

    with SQLiteExpenseStore(db_path) as store:
        tracker = ExpenseTracker(store)
        created = tracker.generate_random_expenses(rng=np.random.default_rng(seed))
        snapshot = tracker.refresh()

    logger.info("Inserted %d expenses into %s", len(created), db_path)
    print(f"Total spent this month: ${snapshot.total_spent:,.2f}")
    for name, amount in sorted(snapshot.category_spending.items()):
        print(f"  - {name}: ${amount:,.2f}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Generate random demo expenses for the current month.')
    parser.add_argument('--db', default=get_db_path(), help='SQLite database file')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data')
    args = parser.parse_args()
    raise SystemExit(main(args.db, seed=args.seed))
