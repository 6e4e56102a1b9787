"""Configuration management for the money board.

This module centralizes path configuration and environment variable
overrides. Tunable defaults (default buckets, forecast knobs) live in the
JSON files of :mod:`money_board.settings`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

# Base project root - assumes this file is in money_board/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directory
DATA_DIR = Path(os.getenv("MONEY_BOARD_DATA_DIR", _PROJECT_ROOT / "data"))

# Persisted ledger (buckets + entries + recurrence month key)
STORE_PATH = Path(
    os.getenv("MONEY_BOARD_STORE_PATH", DATA_DIR / "money_board.json")
).resolve()

# Suggested file name for the Data page download
EXPORT_FILENAME = "money-control-board-data.json"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, STORE_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


# Logging for the app process (Streamlit runs pages in its own process)
LOG_LEVEL_ENV = "MONEY_BOARD_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Attach a stream handler to the ``money_board`` logger.

    Args:
        level: Level name or number; defaults to ``MONEY_BOARD_LOG_LEVEL``
               (``INFO`` when unset or not a known level name)

    Returns:
        The configured package logger. Calling this again only updates
        the level; a second handler is never added.
    """
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    package_logger = logging.getLogger("money_board")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    return package_logger
