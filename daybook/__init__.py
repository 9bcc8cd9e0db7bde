"""
Daybook - local diary and expense record store

An embedded SQLite store for diary entries and finance records, with
versioned schema migration and spending statistics.
"""

from .config import VERSION
from .db import (
    ConnectionManager,
    DiaryEntry,
    FinanceCategory,
    FinanceRecord,
    RecordRepository,
    SchemaMigrator,
)
from .exceptions import (
    DaybookError,
    StorageError,
    StoreConnectionError,
    ValidationError,
)
from .services import DailyTotal, DaybookService, FinanceStats, StatsService

__version__ = VERSION

__all__ = [
    "ConnectionManager",
    "DailyTotal",
    "DaybookError",
    "DaybookService",
    "DiaryEntry",
    "FinanceCategory",
    "FinanceRecord",
    "FinanceStats",
    "RecordRepository",
    "SchemaMigrator",
    "StatsService",
    "StorageError",
    "StoreConnectionError",
    "ValidationError",
]
