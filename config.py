# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Centralized configuration for environment variables."""

import os
from pathlib import Path

DATA_DIR_ENV = "SCOREBOOK_DATA_DIR"
MAX_INNINGS_ENV = "SCOREBOOK_MAX_INNINGS"
LOG_LEVEL_ENV = "SCOREBOOK_LOG_LEVEL"

DEFAULT_MAX_INNINGS = 7  # amateur games are scheduled for seven innings
DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data" / "store"


def get_data_dir() -> Path:
    """Return the directory backing the JSON record store."""
    value = os.environ.get(DATA_DIR_ENV, "")
    return Path(value) if value else DEFAULT_DATA_DIR


def get_max_innings() -> int:
    """Return the scheduled number of innings, falling back to the default
    when the variable is unset or not a positive integer."""
    raw = os.environ.get(MAX_INNINGS_ENV, "")
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_MAX_INNINGS
    return value if value > 0 else DEFAULT_MAX_INNINGS


def get_log_level() -> str:
    """Return the logging level name for entry points."""
    return os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
