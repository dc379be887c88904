"""Configuration management for the expense tracker.

This module centralizes all configuration values including paths,
calendar defaults, and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in expense_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("TRACKER_DATA_DIR", _PROJECT_ROOT / "data"))

# Database
DB_PATH = Path(
    os.getenv("TRACKER_DB_PATH", DATA_DIR / "tracker.db")
).resolve()

LOG_LEVEL = os.getenv("TRACKER_LOG_LEVEL", "INFO")


def _parse_first_weekday(raw: str) -> int:
    """Parse a weekday number using Python's convention (0=Monday ... 6=Sunday)."""
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"TRACKER_FIRST_WEEKDAY must be an integer, got {raw!r}") from None
    if not 0 <= value <= 6:
        raise ValueError(f"TRACKER_FIRST_WEEKDAY must be between 0 and 6, got {value}")
    return value


# First column of calendar grids and start of week buckets
FIRST_WEEKDAY = _parse_first_weekday(os.getenv("TRACKER_FIRST_WEEKDAY", "0"))


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)


def get_db_path() -> str:
    """Get the database path as a string."""
    return str(DB_PATH)
