"""Logging setup for the expense tracker.

Library modules only ever call ``logging.getLogger(__name__)``; handlers,
format and level are configured once by the entry point through
:func:`setup_logger`.
"""

from __future__ import annotations

import logging
import sys
from logging import Logger, StreamHandler
from typing import Dict, Optional

try:
    from .config import LOG_LEVEL
except ImportError:  # pragma: no cover - fallback for direct execution
    from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOG_LEVELS: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logger(name: str = "expense_tracker", level: Optional[str] = None) -> Logger:
    """Configure root logging and return a named logger.

    Args:
        name: Logger name, usually ``__name__`` of the calling script.
        level: Level name such as ``"DEBUG"`` or ``"error"``. Defaults to
            ``TRACKER_LOG_LEVEL``; unknown names fall back to INFO.

    Returns:
        The configured logger.
    """
    log_level = _LOG_LEVELS.get((level or LOG_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[StreamHandler(sys.stdout)],
        force=True,
    )

    return logging.getLogger(name)
