"""
Database module for the Daybook store.

This module provides the storage layer for the diary and finance records,
including connection management, schema migration and keyed CRUD.

Structure:
- connection.py: Connection manager and transaction scope
- schema.py: Versioned collection declarations and the schema migrator
- models.py: Record models (DiaryEntry, FinanceCategory, FinanceRecord)
- repository.py: Generic keyed/indexed CRUD over collections
"""

from .connection import Connection, ConnectionManager
from .models import DiaryEntry, FinanceCategory, FinanceRecord
from .repository import RecordRepository
from .schema import (
    MIGRATIONS,
    SCHEMA_VERSION,
    CollectionSchema,
    IndexSchema,
    Migration,
    SchemaMigrator,
    get_user_version,
)

__all__ = [
    # Connection
    "Connection",
    "ConnectionManager",
    # Models
    "DiaryEntry",
    "FinanceCategory",
    "FinanceRecord",
    # Repository
    "RecordRepository",
    # Schema
    "CollectionSchema",
    "IndexSchema",
    "MIGRATIONS",
    "Migration",
    "SCHEMA_VERSION",
    "SchemaMigrator",
    "get_user_version",
]
