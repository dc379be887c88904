"""Month, week and day bucketing helpers.

Weekdays follow Python's convention (0 = Monday ... 6 = Sunday).  Every
week-sensitive helper accepts an explicit ``first_weekday`` and falls back
to ``config.FIRST_WEEKDAY``.

Reference dates that cannot be normalized never raise: the month helpers
return ``None`` (or an empty layout) so callers can render nothing instead
of crashing.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple

import pandas as pd

try:
    from .config import FIRST_WEEKDAY
except ImportError:  # pragma: no cover - fallback for direct execution
    from config import FIRST_WEEKDAY

DAYS_IN_WEEK = 7


def normalize_date(value: Any) -> Optional[datetime]:
    """Coerce ``value`` to a ``datetime`` or return ``None``."""
    if value is None or value is pd.NaT or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        ts = pd.to_datetime(value, errors='coerce')
    except (TypeError, ValueError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve_first_weekday(first_weekday: Optional[int]) -> int:
    weekday = FIRST_WEEKDAY if first_weekday is None else first_weekday
    if not 0 <= weekday <= 6:
        raise ValueError(f"first_weekday must be between 0 and 6, got {weekday}")
    return weekday


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(reference: Any) -> Optional[Tuple[datetime, datetime]]:
    """Return ``(start, end)`` of the month containing ``reference``.

    Both bounds are local midnight: ``start`` on the first day, ``end`` on
    the last day.  The end bound is inclusive at day granularity, see
    :func:`in_month`.
    """
    ref = normalize_date(reference)
    if ref is None:
        return None
    start = start_of_day(ref).replace(day=1)
    end = start.replace(day=days_in_month(start.year, start.month))
    return start, end


def in_month(value: Any, reference: Any) -> bool:
    """True when ``value`` falls on any day of the month containing ``reference``."""
    moment = normalize_date(value)
    bounds = month_bounds(reference)
    if moment is None or bounds is None:
        return False
    start, end = bounds
    return start.date() <= moment.date() <= end.date()


def week_bucket(value: Any, first_weekday: Optional[int] = None) -> Optional[datetime]:
    """Return local midnight of the first day of the week containing ``value``."""
    moment = normalize_date(value)
    if moment is None:
        return None
    weekday = resolve_first_weekday(first_weekday)
    day = start_of_day(moment)
    offset = (day.weekday() - weekday) % DAYS_IN_WEEK
    return day - timedelta(days=offset)


def day_index(value: Any) -> Optional[int]:
    """Day-of-month number (1..N) used as a calendar grid key."""
    moment = normalize_date(value)
    if moment is None:
        return None
    return moment.day


def grid_layout(month: Any, first_weekday: Optional[int] = None) -> Tuple[int, int]:
    """Return ``(leading_blank_count, total_days)`` for a month grid.

    ``leading_blank_count`` (0..6) is the number of empty cells placed before
    day 1 so that weekday columns line up with ``first_weekday``.
    """
    bounds = month_bounds(month)
    if bounds is None:
        return 0, 0
    start, end = bounds
    weekday = resolve_first_weekday(first_weekday)
    leading = (start.weekday() - weekday) % DAYS_IN_WEEK
    return leading, end.day


def trailing_blank_count(leading_blanks: int, total_days: int) -> int:
    """Number of empty cells needed after the last day to finish the final row."""
    return (DAYS_IN_WEEK - (leading_blanks + total_days) % DAYS_IN_WEEK) % DAYS_IN_WEEK
