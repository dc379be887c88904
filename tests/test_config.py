from __future__ import annotations

import logging

import pytest

from expense_tracker import config
from expense_tracker.log import setup_logger


def test_parse_first_weekday() -> None:
    assert config._parse_first_weekday("6") == 6
    with pytest.raises(ValueError):
        config._parse_first_weekday("7")
    with pytest.raises(ValueError):
        config._parse_first_weekday("sunday")


def test_default_first_weekday_is_valid() -> None:
    assert 0 <= config.FIRST_WEEKDAY <= 6


def test_db_path_is_a_database_file() -> None:
    assert config.get_db_path().endswith(".db")


def test_setup_logger_level_fallback(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    logger = setup_logger("expense_tracker.test", level="nonsense")
    setup_logger("expense_tracker.test", level="debug")

    assert logger.name == "expense_tracker.test"
    assert [call["level"] for call in calls] == [logging.INFO, logging.DEBUG]
    assert all(call["force"] for call in calls)
