"""Record store adapters.

The engine talks to storage exclusively through the :class:`ExpenseStore`
protocol.  Two adapters are provided:

* :class:`InMemoryExpenseStore` – dict backed, used by tests and demos
* :class:`SQLiteExpenseStore` – a single-file SQLite database

Adapters raise :class:`StoreError` for every storage failure.  Mutations
are staged and only made durable by :meth:`ExpenseStore.save`.
"""

from __future__ import annotations

import itertools
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Union

import pandas as pd

try:
    from .calendar_utils import month_bounds, normalize_date, start_of_day
    from .models import Budget, Category, CategoryBudget, Expense
except ImportError:  # pragma: no cover - fallback for direct execution
    from calendar_utils import month_bounds, normalize_date, start_of_day
    from models import Budget, Category, CategoryBudget, Expense


class StoreError(RuntimeError):
    """Raised when the storage backend cannot complete an operation."""


class ExpenseStore(Protocol):
    def fetch_expenses(self, start: datetime, end: datetime) -> List[Expense]:
        """Expenses dated on any day from ``start`` to ``end`` inclusive, newest first."""
        ...

    def fetch_all_expenses(self) -> List[Expense]: ...

    def fetch_categories(self) -> List[Category]:
        """All categories sorted by name."""
        ...

    def fetch_current_budget(self, now: datetime) -> Optional[Budget]: ...

    def fetch_category_budgets(self, budget: Budget) -> List[CategoryBudget]:
        """Lines attached to ``budget`` sorted by category name."""
        ...

    def create_expense(self, expense: Expense) -> Expense: ...

    def update_expense(self, expense: Expense) -> Expense: ...

    def delete_expense(self, expense: Expense) -> None: ...

    def clear_all_expenses(self) -> int: ...

    def create_category(self, name: str) -> Category: ...

    def clear_all_categories(self) -> int: ...

    def create_budget(self, amount: float, month: date) -> Budget: ...

    def update_budget_amount(self, budget: Budget, amount: float) -> Budget: ...

    def clear_all_budgets(self) -> int: ...

    def create_category_budget(self, amount: float, category: Category, budget: Budget) -> CategoryBudget: ...

    def delete_category_budget(self, category_budget: CategoryBudget) -> None: ...

    def save(self) -> None: ...


def _current_month(now: datetime) -> date:
    bounds = month_bounds(now)
    if bounds is None:
        raise StoreError(f"Cannot resolve month for {now!r}")
    return bounds[0].date()


def _day_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Half-open ``[first_day, day_after_last)`` window for day-granular range queries."""
    return start_of_day(start), start_of_day(end) + timedelta(days=1)


def _sort_key_desc(expense: Expense):
    # Undated records sort after every dated one
    return (expense.date is not None, expense.date or datetime.min, expense.id or 0)


def _check_amount(amount: float, what: str) -> None:
    # Mirrors the ``amount >= 0`` CHECK constraints of the SQLite schema
    if amount < 0:
        raise StoreError(f"{what} amount must not be negative, got {amount}")


def _stored_date(value: Any) -> Optional[datetime]:
    """Naive wall-clock datetime as stored; plain dates become midnight."""
    moment = normalize_date(value)
    if moment is not None and moment.tzinfo is not None:
        moment = moment.replace(tzinfo=None)
    return moment


def _stored_expense(expense: Expense) -> Expense:
    _check_amount(expense.amount, "Expense")
    return replace(expense, date=_stored_date(expense.date))


class InMemoryExpenseStore:
    """Dict-backed store.  ``save`` only counts commits."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._expenses: Dict[int, Expense] = {}
        self._categories: Dict[int, Category] = {}
        self._budgets: Dict[int, Budget] = {}
        self._category_budgets: Dict[int, CategoryBudget] = {}
        self.commits = 0

    # -- expenses ---------------------------------------------------------

    def fetch_expenses(self, start: datetime, end: datetime) -> List[Expense]:
        lower, upper = _day_window(_stored_date(start), _stored_date(end))
        matches = [
            expense for expense in self._expenses.values()
            if expense.date is not None and lower <= expense.date < upper
        ]
        return sorted(matches, key=_sort_key_desc, reverse=True)

    def fetch_all_expenses(self) -> List[Expense]:
        return sorted(self._expenses.values(), key=_sort_key_desc, reverse=True)

    def create_expense(self, expense: Expense) -> Expense:
        stored = replace(_stored_expense(expense), id=next(self._ids))
        self._expenses[stored.id] = stored
        return stored

    def update_expense(self, expense: Expense) -> Expense:
        if expense.id not in self._expenses:
            raise StoreError(f"Unknown expense id {expense.id!r}")
        stored = _stored_expense(expense)
        self._expenses[expense.id] = stored
        return stored

    def delete_expense(self, expense: Expense) -> None:
        if self._expenses.pop(expense.id, None) is None:
            raise StoreError(f"Unknown expense id {expense.id!r}")

    def clear_all_expenses(self) -> int:
        removed = len(self._expenses)
        self._expenses.clear()
        return removed

    # -- categories -------------------------------------------------------

    def fetch_categories(self) -> List[Category]:
        return sorted(self._categories.values(), key=lambda c: c.name)

    def create_category(self, name: str) -> Category:
        if any(existing.name == name for existing in self._categories.values()):
            raise StoreError(f"Category {name!r} already exists")
        category = Category(name=name, id=next(self._ids))
        self._categories[category.id] = category
        return category

    def clear_all_categories(self) -> int:
        removed = len(self._categories)
        self._categories.clear()
        self._category_budgets.clear()
        for expense_id, expense in list(self._expenses.items()):
            if expense.category is not None:
                self._expenses[expense_id] = replace(expense, category=None)
        return removed

    # -- budgets ----------------------------------------------------------

    def fetch_current_budget(self, now: datetime) -> Optional[Budget]:
        month = _current_month(now)
        for budget in self._budgets.values():
            if budget.month == month:
                return budget
        return None

    def fetch_category_budgets(self, budget: Budget) -> List[CategoryBudget]:
        lines = [line for line in self._category_budgets.values() if line.budget_id == budget.id]
        return sorted(lines, key=lambda line: line.category.name)

    def create_budget(self, amount: float, month: date) -> Budget:
        _check_amount(amount, "Budget")
        if any(existing.month == month for existing in self._budgets.values()):
            raise StoreError(f"A budget for {month.isoformat()} already exists")
        budget = Budget(amount=amount, month=month, id=next(self._ids))
        self._budgets[budget.id] = budget
        return budget

    def update_budget_amount(self, budget: Budget, amount: float) -> Budget:
        _check_amount(amount, "Budget")
        if budget.id not in self._budgets:
            raise StoreError(f"Unknown budget id {budget.id!r}")
        updated = replace(self._budgets[budget.id], amount=amount)
        self._budgets[budget.id] = updated
        return updated

    def clear_all_budgets(self) -> int:
        removed = len(self._budgets)
        self._budgets.clear()
        self._category_budgets.clear()
        return removed

    def create_category_budget(self, amount: float, category: Category, budget: Budget) -> CategoryBudget:
        _check_amount(amount, "Category budget")
        if budget.id not in self._budgets:
            raise StoreError(f"Unknown budget id {budget.id!r}")
        line = CategoryBudget(amount=amount, category=category, budget_id=budget.id, id=next(self._ids))
        self._category_budgets[line.id] = line
        return line

    def delete_category_budget(self, category_budget: CategoryBudget) -> None:
        if self._category_budgets.pop(category_budget.id, None) is None:
            raise StoreError(f"Unknown category budget id {category_budget.id!r}")

    def save(self) -> None:
        self.commits += 1


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS expenses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    amount REAL NOT NULL CHECK (amount >= 0),
    category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
    remarks TEXT NOT NULL DEFAULT '',
    expense_date TEXT,
    emoji TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    amount REAL NOT NULL CHECK (amount >= 0),
    month TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS category_budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    amount REAL NOT NULL CHECK (amount >= 0),
    category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    budget_id INTEGER NOT NULL REFERENCES budgets(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS ix_expense_date ON expenses (expense_date);
CREATE INDEX IF NOT EXISTS ix_category_budget_budget ON category_budgets (budget_id);
"""

_EXPENSE_SELECT = (
    "SELECT e.id, e.amount, e.remarks, e.expense_date, e.emoji, "
    "e.category_id, c.name AS category_name "
    "FROM expenses e LEFT JOIN categories c ON c.id = e.category_id"
)


def _to_iso(value: Any) -> Optional[str]:
    moment = _stored_date(value)
    if moment is None:
        return None
    return moment.isoformat()


def _optional_int(value: Any) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


class SQLiteExpenseStore:
    """SQLite adapter.

    One connection is held for the lifetime of the store; writes stay in
    the open transaction until :meth:`save` commits them, and reads on the
    same connection already see them.

    Args:
        db_path: Database file, or ``":memory:"``.  Parent directories are
            created on demand.
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self.db_path)
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open expense database at {self.db_path}: {exc}") from exc

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        try:
            yield self._conn.cursor()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLiteExpenseStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- expenses ---------------------------------------------------------

    def _query_expenses(self, where: str = "", params: Optional[List[Any]] = None) -> List[Expense]:
        sql = _EXPENSE_SELECT
        if where:
            sql += " WHERE " + where
        sql += " ORDER BY e.expense_date IS NULL, e.expense_date DESC, e.id DESC"
        try:
            df = pd.read_sql_query(sql, self._conn, params=params or [])
        except (sqlite3.Error, pd.errors.DatabaseError) as exc:
            raise StoreError(f"Failed to fetch expenses: {exc}") from exc

        if df.empty:
            return []
        df['expense_date'] = pd.to_datetime(df['expense_date'], errors='coerce', format='ISO8601')

        expenses: List[Expense] = []
        for row in df.itertuples(index=False):
            category_id = _optional_int(row.category_id)
            category = Category(name=row.category_name, id=category_id) if category_id is not None else None
            expenses.append(Expense(
                amount=float(row.amount),
                category=category,
                remarks=row.remarks or "",
                date=None if pd.isna(row.expense_date) else row.expense_date.to_pydatetime(),
                emoji=row.emoji or "",
                id=int(row.id),
            ))
        return expenses

    def fetch_expenses(self, start: datetime, end: datetime) -> List[Expense]:
        lower, upper = _day_window(_stored_date(start), _stored_date(end))
        return self._query_expenses(
            "e.expense_date >= ? AND e.expense_date < ?",
            [lower.isoformat(), upper.isoformat()],
        )

    def fetch_all_expenses(self) -> List[Expense]:
        return self._query_expenses()

    def create_expense(self, expense: Expense) -> Expense:
        with self._cursor() as cur:
            cur.execute(
                "INSERT INTO expenses (amount, category_id, remarks, expense_date, emoji) VALUES (?, ?, ?, ?, ?)",
                (
                    expense.amount,
                    expense.category.id if expense.category else None,
                    expense.remarks,
                    _to_iso(expense.date),
                    expense.emoji,
                ),
            )
            return replace(expense, id=cur.lastrowid, date=_stored_date(expense.date))

    def update_expense(self, expense: Expense) -> Expense:
        with self._cursor() as cur:
            cur.execute(
                "UPDATE expenses SET amount = ?, category_id = ?, remarks = ?, expense_date = ?, emoji = ? WHERE id = ?",
                (
                    expense.amount,
                    expense.category.id if expense.category else None,
                    expense.remarks,
                    _to_iso(expense.date),
                    expense.emoji,
                    expense.id,
                ),
            )
            if cur.rowcount == 0:
                raise StoreError(f"Unknown expense id {expense.id!r}")
        return replace(expense, date=_stored_date(expense.date))

    def delete_expense(self, expense: Expense) -> None:
        with self._cursor() as cur:
            cur.execute("DELETE FROM expenses WHERE id = ?", (expense.id,))
            if cur.rowcount == 0:
                raise StoreError(f"Unknown expense id {expense.id!r}")

    def clear_all_expenses(self) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM expenses")
            return cur.rowcount

    # -- categories -------------------------------------------------------

    def fetch_categories(self) -> List[Category]:
        with self._cursor() as cur:
            rows = cur.execute("SELECT id, name FROM categories ORDER BY name").fetchall()
        return [Category(name=name, id=cid) for cid, name in rows]

    def create_category(self, name: str) -> Category:
        with self._cursor() as cur:
            cur.execute("INSERT INTO categories (name) VALUES (?)", (name,))
            return Category(name=name, id=cur.lastrowid)

    def clear_all_categories(self) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM categories")
            return cur.rowcount

    # -- budgets ----------------------------------------------------------

    def fetch_current_budget(self, now: datetime) -> Optional[Budget]:
        month = _current_month(now)
        with self._cursor() as cur:
            row = cur.execute(
                "SELECT id, amount, month FROM budgets WHERE month = ? LIMIT 1",
                (month.isoformat(),),
            ).fetchone()
        if row is None:
            return None
        return Budget(amount=float(row[1]), month=date.fromisoformat(row[2]), id=row[0])

    def fetch_category_budgets(self, budget: Budget) -> List[CategoryBudget]:
        with self._cursor() as cur:
            rows = cur.execute(
                "SELECT cb.id, cb.amount, c.id, c.name FROM category_budgets cb "
                "JOIN categories c ON c.id = cb.category_id "
                "WHERE cb.budget_id = ? ORDER BY c.name",
                (budget.id,),
            ).fetchall()
        return [
            CategoryBudget(amount=float(amount), category=Category(name=name, id=cid), budget_id=budget.id, id=line_id)
            for line_id, amount, cid, name in rows
        ]

    def create_budget(self, amount: float, month: date) -> Budget:
        with self._cursor() as cur:
            cur.execute("INSERT INTO budgets (amount, month) VALUES (?, ?)", (amount, month.isoformat()))
            return Budget(amount=amount, month=month, id=cur.lastrowid)

    def update_budget_amount(self, budget: Budget, amount: float) -> Budget:
        with self._cursor() as cur:
            cur.execute("UPDATE budgets SET amount = ? WHERE id = ?", (amount, budget.id))
            if cur.rowcount == 0:
                raise StoreError(f"Unknown budget id {budget.id!r}")
        return replace(budget, amount=amount)

    def clear_all_budgets(self) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM budgets")
            return cur.rowcount

    def create_category_budget(self, amount: float, category: Category, budget: Budget) -> CategoryBudget:
        with self._cursor() as cur:
            cur.execute(
                "INSERT INTO category_budgets (amount, category_id, budget_id) VALUES (?, ?, ?)",
                (amount, category.id, budget.id),
            )
            return CategoryBudget(amount=amount, category=category, budget_id=budget.id, id=cur.lastrowid)

    def delete_category_budget(self, category_budget: CategoryBudget) -> None:
        with self._cursor() as cur:
            cur.execute("DELETE FROM category_budgets WHERE id = ?", (category_budget.id,))
            if cur.rowcount == 0:
                raise StoreError(f"Unknown category budget id {category_budget.id!r}")

    def save(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to commit changes: {exc}") from exc
