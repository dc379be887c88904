from __future__ import annotations

from datetime import date, datetime

import pandas as pd
import pytest

from expense_tracker import calendar_utils as cu


def test_month_bounds_regular_month() -> None:
    start, end = cu.month_bounds(datetime(2024, 4, 17, 15, 30))
    assert start == datetime(2024, 4, 1)
    assert end == datetime(2024, 4, 30)


def test_month_bounds_leap_february() -> None:
    assert cu.month_bounds(date(2024, 2, 10))[1] == datetime(2024, 2, 29)
    assert cu.month_bounds(date(2023, 2, 10))[1] == datetime(2023, 2, 28)


def test_month_bounds_december() -> None:
    start, end = cu.month_bounds("2023-12-31T23:59:59")
    assert start == datetime(2023, 12, 1)
    assert end == datetime(2023, 12, 31)


@pytest.mark.parametrize("value", [None, "", "not a date", pd.NaT])
def test_unparseable_reference_fails_closed(value) -> None:
    assert cu.month_bounds(value) is None
    assert cu.grid_layout(value) == (0, 0)
    assert cu.week_bucket(value) is None
    assert cu.day_index(value) is None


def test_in_month_includes_whole_last_day() -> None:
    assert cu.in_month(datetime(2024, 1, 31, 22, 15), datetime(2024, 1, 5))
    assert cu.in_month(datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 5))
    assert not cu.in_month(datetime(2024, 2, 1, 0, 0), datetime(2024, 1, 5))
    assert not cu.in_month(None, datetime(2024, 1, 5))


def test_week_bucket_monday_start() -> None:
    # 2024-01-03 is a Wednesday
    assert cu.week_bucket(datetime(2024, 1, 3, 18, 0), first_weekday=0) == datetime(2024, 1, 1)
    assert cu.week_bucket(datetime(2024, 1, 1, 9, 0), first_weekday=0) == datetime(2024, 1, 1)


def test_week_bucket_sunday_start_crosses_year() -> None:
    # Week containing Tuesday 2024-01-02 starts on Sunday 2023-12-31
    assert cu.week_bucket(datetime(2024, 1, 2), first_weekday=6) == datetime(2023, 12, 31)


def test_week_bucket_rejects_bad_weekday() -> None:
    with pytest.raises(ValueError):
        cu.week_bucket(datetime(2024, 1, 2), first_weekday=7)


def test_day_index() -> None:
    assert cu.day_index(datetime(2024, 3, 9, 23, 59)) == 9


def test_grid_layout_known_month() -> None:
    # September 2024 starts on a Sunday
    assert cu.grid_layout(date(2024, 9, 1), first_weekday=0) == (6, 30)
    assert cu.grid_layout(date(2024, 9, 1), first_weekday=6) == (0, 30)


@pytest.mark.parametrize("first_weekday", range(7))
def test_grid_layout_fills_whole_weeks_over_four_years(first_weekday: int) -> None:
    months = pd.date_range("2023-01-01", "2026-12-01", freq="MS")
    assert any(m.month == 2 and m.year == 2024 for m in months)
    for month in months:
        leading, total = cu.grid_layout(month, first_weekday=first_weekday)
        trailing = cu.trailing_blank_count(leading, total)
        assert 0 <= leading <= 6
        assert 0 <= trailing <= 6
        assert total == cu.days_in_month(month.year, month.month)
        assert (leading + total + trailing) % 7 == 0
