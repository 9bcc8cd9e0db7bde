"""
Configuration module for Daybook.

Contains constants, settings, and configuration values used throughout the application.
"""

import os
from pathlib import Path

# Version
VERSION = "0.1.0"

# Application paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOG_DIR = PROJECT_ROOT / "logs"

# Database configuration
DEFAULT_DB_PATH = DATA_DIR / "daybook.db"
DB_TIMEOUT = 10.0  # seconds

# Finance categories seeded when the category collection is first created
DEFAULT_FINANCE_CATEGORIES = (
    "meal",
    "transport",
    "salary",
    "entertainment",
    "shopping",
)

# Statistics
RECENT_SERIES_DAYS = 7

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "daybook.log"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_db_path() -> Path:
    """Get the store path, honouring the DAYBOOK_DB_PATH override."""
    override = os.getenv("DAYBOOK_DB_PATH")
    if override:
        return Path(override).expanduser()
    return DEFAULT_DB_PATH


def get_log_level():
    """Get the configured log level."""
    import logging

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(os.getenv("LOG_LEVEL", LOG_LEVEL).upper(), logging.INFO)
