"""Top‑level package for the expense tracker engine.

This file makes the directory a Python package and exposes
convenient names.  The primary modules are:

* ``calendar_utils`` – month/week/day bucketing and calendar grid layout
* ``aggregation`` – totals and groupings derived from expense records
* ``budgeting`` – monthly budgets, replace-all category lines and progress
* ``store`` – the storage protocol plus in-memory and SQLite adapters
* ``tracker`` – the ``ExpenseTracker`` facade that produces snapshots

A minimal session looks like:

```python
from expense_tracker import ExpenseTracker, SQLiteExpenseStore

tracker = ExpenseTracker(SQLiteExpenseStore("data/tracker.db"))
snapshot = tracker.refresh()
```
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import calendar_utils  # noqa: F401  # re-exported for convenience
from .events import DATA_CHANGED, DATA_CLEARED, EventBus
from .models import BudgetStatus, Snapshot
from .store import InMemoryExpenseStore, SQLiteExpenseStore, StoreError
from .tracker import ExpenseTracker
from .validation import ExpenseForm, ValidationError

__all__ = [
    "aggregation",
    "calendar_utils",
    "DATA_CHANGED",
    "DATA_CLEARED",
    "EventBus",
    "BudgetStatus",
    "Snapshot",
    "InMemoryExpenseStore",
    "SQLiteExpenseStore",
    "StoreError",
    "ExpenseTracker",
    "ExpenseForm",
    "ValidationError",
]
