"""Random but schema-valid expenses for demos and manual testing.

Not a statistical model: every draw is uniform over the ranges below.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

try:
    from .calendar_utils import days_in_month
    from .models import Category, Expense
except ImportError:  # pragma: no cover - fallback for direct execution
    from calendar_utils import days_in_month
    from models import Category, Expense

MIN_DAYS = 5
MAX_DAYS = 15
MIN_EXPENSES_PER_CATEGORY = 4
MAX_EXPENSES_PER_CATEGORY = 13
HOUR_RANGE = (8, 22)
AMOUNT_RANGE = (5.0, 150.0)

CATEGORY_EMOJIS: Dict[str, List[str]] = {
    "Transport": ["🚗", "🚕", "🚌", "🚇", "⛽️", "🛵", "🚞"],
    "Entertainment": ["🎮", "🎬", "🎭", "🎟️", "🎪", "🎨", "🎯"],
    "Groceries": ["🛒", "🍎", "🥦", "🍞", "🥛", "🍽️", "🥑"],
    "Hobbies": ["📚", "🎸", "🏀", "⚽️", "🎣", "🧩", "🎲"],
    "Subscriptions": ["📺", "🎵", "📱", "💻", "📰", "🎙️", "🎬"],
    "Utilities": ["💡", "💧", "🔥", "📶", "📡", "🔌", "🧹"],
    "Healthcare": ["💊", "🩹", "🧴", "🦷", "👓", "🧬", "🏥"],
    "Food": ["🍔", "🍕", "🍣", "🍜", "🍲", "🍷", "🍹", "☕️", "🍦", "🍳"],
}

CATEGORY_REMARKS: Dict[str, List[str]] = {
    "Transport": [
        "Filled up the tank", "Train ticket", "Bus fare", "Taxi ride",
        "Car maintenance", "Parking fee", "Toll road", "Subway pass",
    ],
    "Entertainment": [
        "Movie night", "Video game", "Concert tickets", "Theater show",
        "Museum entry", "Amusement park", "Streaming service", "Sports event",
    ],
    "Groceries": [
        "Weekly groceries", "Fresh produce", "Pantry staples", "Grocery delivery",
        "Farmers market", "Bulk shopping", "Specialty foods", "Snacks",
    ],
    "Hobbies": [
        "New book", "Art supplies", "Musical equipment", "Sports gear",
        "Photography equipment", "Craft supplies", "Gardening tools", "Workshop materials",
    ],
    "Subscriptions": [
        "Monthly subscription", "Annual membership", "Streaming service", "Magazine subscription",
        "Software license", "App purchase", "Cloud storage", "Online courses",
    ],
    "Utilities": [
        "Electricity bill", "Water bill", "Gas bill", "Internet service",
        "Phone bill", "Waste management", "Home insurance", "Security service",
    ],
    "Healthcare": [
        "Doctor's visit", "Prescription", "Vitamins & supplements", "Dental care",
        "Eye care", "Therapy session", "Medical equipment", "Insurance copay",
    ],
    "Food": [
        "Lunch with friends", "Dinner out", "Coffee break", "Pizza delivery", "Sushi restaurant",
        "Brunch with family", "Restaurant tip", "Fast food", "Food delivery", "Ice cream shop",
    ],
}

DEFAULT_EMOJIS = ["💰", "💸", "💵", "💳", "🧾", "📊", "📝"]

DEFAULT_REMARKS = [
    "Miscellaneous purchase",
    "Online purchase",
    "Shopping",
    "Monthly expense",
    "Regular purchase",
    "Gift for someone",
    "Necessary expense",
    "",
]


def category_emojis(category_name: str) -> List[str]:
    return CATEGORY_EMOJIS.get(category_name) or DEFAULT_EMOJIS


def category_remarks(category_name: str) -> List[str]:
    return CATEGORY_REMARKS.get(category_name) or DEFAULT_REMARKS


def _pick(options: Sequence[str], rng: np.random.Generator) -> str:
    return options[int(rng.integers(len(options)))]


def random_emoji(category_name: str, rng: Optional[np.random.Generator] = None) -> str:
    return _pick(category_emojis(category_name), rng or np.random.default_rng())


def random_remark(category_name: str, rng: Optional[np.random.Generator] = None) -> str:
    return _pick(category_remarks(category_name), rng or np.random.default_rng())


def choose_days(year: int, month: int, rng: np.random.Generator) -> List[int]:
    """Pick between 5 and ``min(15, days in month)`` distinct days, sorted."""
    total_days = days_in_month(year, month)
    upper = min(MAX_DAYS, total_days)
    count = int(rng.integers(MIN_DAYS, upper, endpoint=True))
    days = rng.choice(np.arange(1, total_days + 1), size=count, replace=False)
    return sorted(int(day) for day in days)


def random_amount(rng: np.random.Generator) -> float:
    low, high = AMOUNT_RANGE
    return round(float(rng.uniform(low, high)), 2)


def generate_random_expenses(
    categories: Sequence[Category],
    now: Optional[datetime] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[Expense]:
    """Build unsaved expenses for the month containing ``now``.

    One set of days is drawn per call and shared by every category; each
    category then gets 4 to 13 records on those days between 08:00 and
    22:59.
    """
    now = now or datetime.now()
    rng = rng or np.random.default_rng()
    days = choose_days(now.year, now.month, rng)

    expenses: List[Expense] = []
    for category in categories:
        if not category.name:
            continue
        count = int(rng.integers(MIN_EXPENSES_PER_CATEGORY, MAX_EXPENSES_PER_CATEGORY, endpoint=True))
        for _ in range(count):
            moment = datetime(
                now.year,
                now.month,
                days[int(rng.integers(len(days)))],
                int(rng.integers(HOUR_RANGE[0], HOUR_RANGE[1], endpoint=True)),
                int(rng.integers(0, 59, endpoint=True)),
            )
            expenses.append(Expense(
                amount=random_amount(rng),
                category=category,
                remarks=random_remark(category.name, rng),
                date=moment,
                emoji=random_emoji(category.name, rng),
            ))
    return expenses
