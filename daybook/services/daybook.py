"""
Daybook service: the operations offered to the diary and expense front ends.

Each operation validates its input, then passes through to the repository
(or the stats service) over the shared store connection. Validation happens
before any transaction is opened, so rejected input never touches the store.
"""

import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

from daybook.db.connection import ConnectionManager
from daybook.db.models import DiaryEntry, FinanceCategory, FinanceRecord
from daybook.db.repository import RecordRepository
from daybook.exceptions import ValidationError

from .stats import FinanceStats, StatsService

logger = logging.getLogger(__name__)

ENTRIES = "entries"
FINANCE_CATEGORIES = "financeCategories"
FINANCE_RECORDS = "financeRecords"

DateLike = Union[date, str]


def normalize_date(value: DateLike) -> str:
    """Return ``value`` as an ISO calendar day string."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()).isoformat()
        except ValueError:
            pass
    raise ValidationError(f"Invalid date, expected YYYY-MM-DD: {value!r}")


def parse_amount(value: Any) -> float:
    """Return ``value`` as a finite, non-negative float."""
    if isinstance(value, bool):
        raise ValidationError(f"Amount must be numeric, got {value!r}")
    try:
        amount = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(f"Amount must be numeric, got {value!r}") from None
    if not math.isfinite(amount):
        raise ValidationError(f"Amount must be finite, got {value!r}")
    if amount < 0:
        raise ValidationError(f"Amount must be >= 0, got {value!r}")
    return amount


def require_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must not be empty")
    return value


class DaybookService:
    """Entry point for saving and loading diary and finance data."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        manager: Optional[ConnectionManager] = None,
    ):
        """
        Initialize the service.

        Args:
            db_path: Path to the store file (ignored when manager is given)
            manager: Connection manager to share with other services
        """
        self.manager = manager or ConnectionManager(db_path)
        self._repository: Optional[RecordRepository] = None

    async def repository(self) -> RecordRepository:
        """Repository over the (lazily opened) store connection."""
        connection = await self.manager.open()
        if self._repository is None or self._repository.connection is not connection:
            self._repository = RecordRepository(connection, self.manager.migrator)
        return self._repository

    async def close(self):
        await self.manager.close()
        self._repository = None

    async def __aenter__(self) -> "DaybookService":
        await self.manager.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # =========================================================================
    # Diary
    # =========================================================================

    async def save_diary_entry(self, date: DateLike, category: str, text: str) -> DiaryEntry:
        """
        Save the entry for (date, category), replacing any earlier one.

        Raises:
            ValidationError: If date, category or text is invalid
        """
        entry = DiaryEntry(
            date=normalize_date(date),
            category=require_text(category, "category").strip(),
            text=require_text(text, "text"),
        )
        repo = await self.repository()
        await repo.put(ENTRIES, entry.to_dict())
        logger.info(f"Saved diary entry {entry.date}/{entry.category}")
        return entry

    async def load_diary_entries(self, date: DateLike) -> list[DiaryEntry]:
        """Get all diary entries for a day (one per category at most)."""
        day = normalize_date(date)
        repo = await self.repository()
        rows = await repo.get_all_by_index(ENTRIES, "date", day)
        return [DiaryEntry.from_row(row) for row in rows]

    # =========================================================================
    # Finance records
    # =========================================================================

    async def save_finance_record(
        self,
        category: str,
        amount: Any,
        note: Optional[str] = "",
        date: Optional[DateLike] = None,
    ) -> FinanceRecord:
        """
        Record a new amount; every call creates a new record.

        Args:
            category: Free-form category label
            amount: Non-negative number (numeric strings are accepted)
            note: Optional note
            date: Day of the record (defaults to today)

        Raises:
            ValidationError: If the amount, category or date is invalid
        """
        record = FinanceRecord(
            id=None,
            date=normalize_date(date if date is not None else datetime.now().date()),
            category=require_text(category, "category").strip(),
            amount=parse_amount(amount),
            note=note or "",
        )
        repo = await self.repository()
        row = record.to_dict()
        row.pop("id")
        record.id = await repo.add(FINANCE_RECORDS, row)
        logger.info(
            f"Saved finance record {record.id}: {record.amount} on {record.date} "
            f"({record.category})"
        )
        return record

    async def load_finance_records(self, date: DateLike) -> list[FinanceRecord]:
        """Get all finance records for a day."""
        day = normalize_date(date)
        repo = await self.repository()
        rows = await repo.get_all_by_index(FINANCE_RECORDS, "date", day)
        return [FinanceRecord.from_row(row) for row in rows]

    # =========================================================================
    # Finance categories
    # =========================================================================

    async def list_finance_categories(self) -> list[FinanceCategory]:
        """Get every category, oldest first. Names may repeat."""
        repo = await self.repository()
        rows = await repo.get_all(FINANCE_CATEGORIES)
        return sorted((FinanceCategory.from_row(row) for row in rows), key=lambda c: c.id)

    async def add_finance_category(self, name: str) -> FinanceCategory:
        """Add a category. Duplicate names are allowed."""
        category = FinanceCategory(id=None, name=require_text(name, "name").strip())
        repo = await self.repository()
        category.id = await repo.add(FINANCE_CATEGORIES, {"name": category.name})
        logger.info(f"Added finance category {category.id}: {category.name}")
        return category

    async def delete_finance_category(self, category_id: int) -> bool:
        """
        Delete a category by id.

        Finance records that use the category's name are left as they are.
        Deleting an unknown id is a no-op.

        Returns:
            True if a category was deleted
        """
        repo = await self.repository()
        return await repo.delete_by_key(FINANCE_CATEGORIES, category_id)

    # =========================================================================
    # Stats
    # =========================================================================

    async def compute_stats(self, today: Optional[DateLike] = None) -> FinanceStats:
        """Daily/weekly/monthly totals and the 7-day series for ``today``."""
        reference = date.fromisoformat(normalize_date(today)) if today is not None else None
        repo = await self.repository()
        return await StatsService(repo).compute_stats(reference)
