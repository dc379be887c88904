"""Aggregation of expense records into totals, groupings and calendar grids.

All functions are pure: they take a list of :class:`~expense_tracker.models.Expense`
records (already fetched for some range) and return new structures.  The
heavy lifting is done on a small pandas DataFrame built by
:func:`expenses_frame`.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

try:
    from .calendar_utils import DAYS_IN_WEEK, day_index, in_month, month_bounds, resolve_first_weekday
    from .models import CategoryAmount, DailySpending, Expense, WeeklySpending
except ImportError:  # pragma: no cover - fallback for direct execution
    from calendar_utils import DAYS_IN_WEEK, day_index, in_month, month_bounds, resolve_first_weekday
    from models import CategoryAmount, DailySpending, Expense, WeeklySpending

FRAME_COLUMNS = ['date', 'category', 'amount']


class SearchScope(str, Enum):
    ALL = "all"
    REMARKS = "remarks"
    CATEGORY = "category"


def expenses_frame(records: Iterable[Expense]) -> pd.DataFrame:
    """Build a DataFrame with one row per record.

    ``date`` is coerced to datetime (NaT for undated records) and
    ``category`` already carries the "Uncategorized" label for records
    without a category.
    """
    rows = [
        {
            'date': record.date,
            'category': record.category_name,
            'amount': float(record.amount),
        }
        for record in records
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0.0)
    return df


def total_amount(records: Iterable[Expense]) -> float:
    df = expenses_frame(records)
    if df.empty:
        return 0.0
    return float(df['amount'].sum())


def by_category(records: Iterable[Expense]) -> Dict[str, float]:
    """Sum amounts per category name.  Key order carries no meaning."""
    df = expenses_frame(records)
    if df.empty:
        return {}
    grouped = df.groupby('category', sort=False)['amount'].sum()
    return {str(name): float(total) for name, total in grouped.items()}


def _category_entries(group: pd.DataFrame) -> Tuple[CategoryAmount, ...]:
    sums = group.groupby('category', sort=True)['amount'].sum()
    return tuple(CategoryAmount(category=str(name), amount=float(total)) for name, total in sums.items())


def _bucketed(df: pd.DataFrame, bucket: pd.Series) -> List[Tuple[datetime, Tuple[CategoryAmount, ...]]]:
    working = df.assign(bucket=bucket)
    result = []
    for key, group in working.groupby('bucket', sort=True):
        result.append((pd.Timestamp(key).to_pydatetime(), _category_entries(group)))
    return result


def by_day(records: Iterable[Expense]) -> List[DailySpending]:
    """Group by calendar day, then by category; ascending by day.

    Undated records are dropped.
    """
    df = expenses_frame(records).dropna(subset=['date'])
    if df.empty:
        return []
    days = df['date'].dt.normalize()
    return [DailySpending(date=day, entries=entries) for day, entries in _bucketed(df, days)]


def by_week(records: Iterable[Expense], first_weekday: Optional[int] = None) -> List[WeeklySpending]:
    """Group by week start (see ``calendar_utils.week_bucket``), then by category."""
    df = expenses_frame(records).dropna(subset=['date'])
    if df.empty:
        return []
    weekday = resolve_first_weekday(first_weekday)
    days = df['date'].dt.normalize()
    offsets = (days.dt.weekday - weekday) % DAYS_IN_WEEK
    week_starts = days - pd.to_timedelta(offsets, unit='D')
    return [WeeklySpending(start_date=start, entries=entries) for start, entries in _bucketed(df, week_starts)]


def daily_totals(records: Iterable[Expense]) -> List[Tuple[datetime, float]]:
    """``(day, total)`` pairs ascending by day, for bar/line charts."""
    return [(spending.date, spending.total) for spending in by_day(records)]


def _month_records(month, records: Iterable[Expense]) -> Optional[List[Expense]]:
    if month_bounds(month) is None:
        return None
    return [record for record in records if in_month(record.date, month)]


def daily_totals_grid(month, records: Iterable[Expense]) -> Dict[int, float]:
    """Map day-of-month to total spent for records inside ``month``.

    Days without expenses are absent; look them up with ``.get(day, 0.0)``.
    """
    scoped = _month_records(month, records)
    if not scoped:
        return {}
    df = expenses_frame(scoped)
    grouped = df.groupby(df['date'].dt.day)['amount'].sum()
    return {int(day): float(total) for day, total in grouped.items()}


def daily_expenses_grid(month, records: Iterable[Expense]) -> Dict[int, List[Expense]]:
    """Map day-of-month to the records of that day, keeping input order."""
    scoped = _month_records(month, records)
    if not scoped:
        return {}
    grid: Dict[int, List[Expense]] = {}
    for record in scoped:
        grid.setdefault(day_index(record.date), []).append(record)
    return grid


def group_by_category(records: Iterable[Expense]) -> Dict[str, List[Expense]]:
    """Records per category name, each list newest first (undated last)."""
    grouped: Dict[str, List[Expense]] = {}
    for record in records:
        grouped.setdefault(record.category_name, []).append(record)
    for name, items in grouped.items():
        dated = sorted((r for r in items if r.date is not None), key=lambda r: r.date, reverse=True)
        grouped[name] = dated + [r for r in items if r.date is None]
    return grouped


def search_expenses(
    records: Sequence[Expense],
    text: str,
    scope: SearchScope = SearchScope.ALL,
) -> List[Expense]:
    """Case-insensitive substring search on remarks and/or category name."""
    needle = (text or '').strip().lower()
    if not needle:
        return list(records)

    scope = SearchScope(scope)
    matches = []
    for record in records:
        in_remarks = needle in (record.remarks or '').lower()
        in_category = record.category is not None and needle in (record.category.name or '').lower()
        if scope is SearchScope.REMARKS:
            hit = in_remarks
        elif scope is SearchScope.CATEGORY:
            hit = in_category
        else:
            hit = in_remarks or in_category
        if hit:
            matches.append(record)
    return matches
