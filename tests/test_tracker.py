from __future__ import annotations

from datetime import date, datetime

import numpy as np
import pytest

from expense_tracker import DATA_CHANGED, DATA_CLEARED, ExpenseTracker
from expense_tracker.models import DEFAULT_CATEGORIES, BudgetStatus
from expense_tracker.store import InMemoryExpenseStore, SQLiteExpenseStore, StoreError
from expense_tracker.validation import ExpenseForm, ValidationError

NOW = datetime(2024, 1, 20, 12, 0)


def _tracker(store=None):
    tracker = ExpenseTracker(store or InMemoryExpenseStore(), first_weekday=0, clock=lambda: NOW)
    events = []
    tracker.bus.subscribe(DATA_CHANGED, events.append)
    tracker.bus.subscribe(DATA_CLEARED, events.append)
    return tracker, events


def _category(tracker, name):
    return next(c for c in tracker.fetch_categories() if c.name == name)


def test_default_categories_seeded_once() -> None:
    store = InMemoryExpenseStore()
    tracker, _ = _tracker(store)
    assert sorted(c.name for c in tracker.fetch_categories()) == sorted(DEFAULT_CATEGORIES)

    # A second tracker on the same store does not duplicate them
    ExpenseTracker(store)
    assert len(store.fetch_categories()) == len(DEFAULT_CATEGORIES)


def test_existing_categories_are_not_reseeded() -> None:
    store = InMemoryExpenseStore()
    store.create_category("Rent")
    ExpenseTracker(store)
    assert [c.name for c in store.fetch_categories()] == ["Rent"]


def test_category_fetch_failure_skips_seeding(monkeypatch, caplog) -> None:
    store = InMemoryExpenseStore()
    store.create_category("Rent")

    def broken():
        raise StoreError("database is locked")

    with monkeypatch.context() as patch:
        patch.setattr(store, "fetch_categories", broken)
        with caplog.at_level("ERROR"):
            ExpenseTracker(store)

    assert "default categories not seeded" in caplog.text
    assert [c.name for c in store.fetch_categories()] == ["Rent"]


def test_negative_expense_rejected_by_store() -> None:
    tracker, events = _tracker()
    with pytest.raises(StoreError):
        tracker.add_expense(-5.0, _category(tracker, "Food"), "Refund", NOW)
    assert tracker.refresh().total_spent == 0
    assert events == []


def test_refresh_snapshot_scenario() -> None:
    tracker, _ = _tracker()
    food = _category(tracker, "Food")
    transport = _category(tracker, "Transport")
    tracker.add_expense(10.0, food, "Lunch", datetime(2024, 1, 1, 12))
    tracker.add_expense(5.0, transport, "Bus", datetime(2024, 1, 1, 8))
    tracker.add_expense(20.0, food, "Dinner", datetime(2024, 1, 3, 19))
    tracker.add_expense(99.0, food, "Last month", datetime(2023, 12, 31, 19))

    snapshot = tracker.refresh()

    assert snapshot.total_spent == pytest.approx(35.0)
    assert dict(snapshot.category_spending) == {"Food": 30.0, "Transport": 5.0}
    assert [e.amount for e in snapshot.current_month_expenses] == [20.0, 10.0, 5.0]
    assert [d.date for d in snapshot.daily_spending] == [datetime(2024, 1, 1), datetime(2024, 1, 3)]
    assert len(snapshot.weekly_spending) == 1
    # no budget yet: fully consumed
    assert snapshot.current_budget is None
    assert snapshot.budget_progress == 1.0
    assert snapshot.budget_status is BudgetStatus.OVER_BUDGET
    assert snapshot.category_budgets == ()


def test_snapshot_is_read_only() -> None:
    tracker, _ = _tracker()
    snapshot = tracker.refresh()
    with pytest.raises(TypeError):
        snapshot.category_spending["Food"] = 1.0
    with pytest.raises(AttributeError):
        snapshot.total_spent = 10.0


def test_budget_update_flows_into_snapshot() -> None:
    tracker, events = _tracker()
    food = _category(tracker, "Food")
    tracker.add_expense(75.0, food, "Groceries run", datetime(2024, 1, 5, 10))

    budget = tracker.update_budget(100.0, {"Food": 80.0})
    snapshot = tracker.refresh()

    assert budget.month == date(2024, 1, 1)
    assert snapshot.current_budget.amount == 100.0
    assert snapshot.budget_progress == pytest.approx(0.75)
    assert snapshot.budget_status is BudgetStatus.WARNING
    assert snapshot.remaining_budget == pytest.approx(25.0)
    assert len(snapshot.category_budgets) == len(DEFAULT_CATEGORIES)
    food_row = next(row for row in snapshot.category_progress if row.category == "Food")
    assert food_row.budgeted == 80.0
    assert food_row.spent == 75.0
    assert events[-1].payload["action"] == "budget"


def test_budget_update_twice_keeps_one_line_per_category() -> None:
    tracker, _ = _tracker()
    tracker.update_budget(100.0, {"Food": 50.0})
    tracker.update_budget(100.0, {"Food": 50.0})
    assert len(tracker.refresh().category_budgets) == len(DEFAULT_CATEGORIES)


def test_mutations_publish_data_changed() -> None:
    tracker, events = _tracker()
    food = _category(tracker, "Food")

    expense = tracker.add_expense(10.0, food, "Lunch", datetime(2024, 1, 2, 12), "🍔")
    updated = tracker.update_expense(expense, 11.0, food, "Brunch", datetime(2024, 1, 2, 11), "🍳")
    tracker.delete_expense(updated)

    assert [e.name for e in events] == [DATA_CHANGED] * 3
    assert [e.payload["action"] for e in events] == ["add", "update", "delete"]
    assert tracker.refresh().current_month_expenses == ()


def test_update_expense_replaces_all_fields() -> None:
    tracker, _ = _tracker()
    food = _category(tracker, "Food")
    transport = _category(tracker, "Transport")
    expense = tracker.add_expense(10.0, food, "Lunch", datetime(2024, 1, 2, 12), "🍔")

    tracker.update_expense(expense, 4.0, transport, "Bus", datetime(2024, 1, 9, 8), "🚌")

    [stored] = tracker.refresh().current_month_expenses
    assert (stored.amount, stored.category.name, stored.remarks, stored.emoji) == (4.0, "Transport", "Bus", "🚌")
    assert stored.id == expense.id


def test_clear_all_expenses_publishes_data_cleared() -> None:
    tracker, events = _tracker()
    food = _category(tracker, "Food")
    tracker.add_expense(10.0, food, "Lunch", datetime(2024, 1, 2, 12))

    assert tracker.clear_all_expenses() == 1
    assert events[-1].name == DATA_CLEARED
    assert tracker.refresh().total_spent == 0


def test_clear_all_data_reseeds_categories() -> None:
    tracker, events = _tracker()
    tracker.create_category("Pets")
    tracker.update_budget(100.0, {"Pets": 10.0})
    tracker.add_expense(10.0, _category(tracker, "Pets"), "Food bowl", datetime(2024, 1, 2, 12))

    tracker.clear_all_data()
    snapshot = tracker.refresh()

    assert sorted(c.name for c in tracker.fetch_categories()) == sorted(DEFAULT_CATEGORIES)
    assert snapshot.current_budget is None
    assert snapshot.current_month_expenses == ()
    assert events[-1].name == DATA_CLEARED
    assert events[-1].payload == {"scope": "all"}


def test_create_category_rejects_blank_names() -> None:
    tracker, _ = _tracker()
    with pytest.raises(ValueError):
        tracker.create_category("   ")


def test_fetch_failure_yields_empty_snapshot(monkeypatch) -> None:
    store = InMemoryExpenseStore()
    tracker, _ = _tracker(store)
    tracker.add_expense(10.0, _category(tracker, "Food"), "Lunch", datetime(2024, 1, 2, 12))

    def broken(*args, **kwargs):
        raise StoreError("database is locked")

    monkeypatch.setattr(store, "fetch_expenses", broken)
    monkeypatch.setattr(store, "fetch_current_budget", broken)

    snapshot = tracker.refresh()
    assert snapshot.current_month_expenses == ()
    assert snapshot.total_spent == 0
    assert snapshot.current_budget is None


def test_save_failure_is_logged_and_not_rolled_back(monkeypatch, caplog) -> None:
    # Accepted inconsistency: the store keeps the change even though the
    # commit failed, so the next refresh shows data that is not durable.
    store = InMemoryExpenseStore()
    tracker, events = _tracker(store)

    def broken_save():
        raise StoreError("disk full")

    monkeypatch.setattr(store, "save", broken_save)
    with caplog.at_level("ERROR"):
        expense = tracker.add_expense(10.0, _category(tracker, "Food"), "Lunch", datetime(2024, 1, 2, 12))

    assert "Error saving changes" in caplog.text
    assert expense.id is not None
    assert tracker.refresh().total_spent == pytest.approx(10.0)
    assert events[-1].name == DATA_CHANGED


def test_sqlite_save_failure_keeps_displayed_state(tmp_path, monkeypatch) -> None:
    store = SQLiteExpenseStore(tmp_path / "tracker.db")
    tracker, _ = _tracker(store)

    def broken_save():
        raise StoreError("disk full")

    monkeypatch.setattr(store, "save", broken_save)
    tracker.add_expense(10.0, _category(tracker, "Food"), "Lunch", datetime(2024, 1, 2, 12))
    assert tracker.refresh().total_spent == pytest.approx(10.0)
    store.close()

    reopened = SQLiteExpenseStore(tmp_path / "tracker.db")
    try:
        assert reopened.fetch_all_expenses() == []
    finally:
        reopened.close()


def test_submit_expense_validates_before_storing() -> None:
    store = InMemoryExpenseStore()
    tracker, events = _tracker(store)

    with pytest.raises(ValidationError) as excinfo:
        tracker.submit_expense(ExpenseForm(amount=0, remarks="", category=None))

    assert len(excinfo.value.errors) == 3
    assert store.fetch_all_expenses() == []
    assert events == []


def test_submit_expense_adds_then_updates() -> None:
    tracker, _ = _tracker()
    food = _category(tracker, "Food")

    created = tracker.submit_expense(ExpenseForm(amount=12.5, remarks="  Pizza  ", category=food, emoji="🍕"))
    assert created.remarks == "Pizza"
    assert created.date == NOW

    form = ExpenseForm.from_expense(created)
    form.amount = 15.0
    updated = tracker.submit_expense(form)

    assert updated.id == created.id
    assert [e.amount for e in tracker.refresh().current_month_expenses] == [15.0]


def test_month_grid() -> None:
    tracker, _ = _tracker()
    food = _category(tracker, "Food")
    tracker.add_expense(10.0, food, "Lunch", datetime(2024, 1, 1, 12))
    tracker.add_expense(5.0, food, "Snack", datetime(2024, 1, 1, 16))
    tracker.add_expense(20.0, food, "Dinner", datetime(2024, 1, 31, 23, 30))

    grid = tracker.month_grid(datetime(2024, 1, 15))

    assert grid.month == date(2024, 1, 1)
    # January 2024 starts on a Monday
    assert (grid.leading_blanks, grid.total_days, grid.trailing_blanks) == (0, 31, 4)
    assert dict(grid.totals) == {1: 15.0, 31: 20.0}
    assert grid.total_for(2) == 0.0
    assert sorted(grid.expenses) == [1, 31]
    assert len(grid.expenses[1]) == 2


def test_month_grid_invalid_reference() -> None:
    tracker, _ = _tracker()
    assert tracker.month_grid("not a month") is None


def test_expenses_by_category_with_search() -> None:
    tracker, _ = _tracker()
    tracker.add_expense(10.0, _category(tracker, "Food"), "Lunch", datetime(2024, 1, 1, 12))
    tracker.add_expense(5.0, _category(tracker, "Transport"), "Bus fare", datetime(2024, 1, 2, 8))

    assert sorted(tracker.expenses_by_category()) == ["Food", "Transport"]
    assert list(tracker.expenses_by_category(search="bus")) == ["Transport"]
    assert tracker.expenses_by_category(search="transport", scope="remarks") == {}


def test_generate_random_expenses() -> None:
    tracker, events = _tracker()

    created = tracker.generate_random_expenses(rng=np.random.default_rng(11))
    snapshot = tracker.refresh()

    assert len(created) == len(snapshot.current_month_expenses)
    assert len(created) >= 4 * len(DEFAULT_CATEGORIES)
    assert set(snapshot.category_spending) == set(DEFAULT_CATEGORIES)
    assert events[-1].payload == {"action": "generate", "count": len(created)}
