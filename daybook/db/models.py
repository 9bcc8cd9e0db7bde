"""
Record models for the Daybook store.

Defines the plain value records persisted in the diary and finance
collections. Records travel to and from the repository as dictionaries;
dates are ISO calendar days and timestamps are ISO-8601 strings on disk.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class DiaryEntry:
    """
    A diary entry for one category on one day.

    Identity is the (date, category) pair: saving the same pair again
    replaces the earlier entry.
    """

    date: str  # YYYY-MM-DD
    category: str
    text: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "date": self.date,
            "category": self.category,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_row(cls, row: dict) -> "DiaryEntry":
        """Create a DiaryEntry from a stored record."""
        return cls(
            date=row["date"],
            category=row["category"],
            text=row["text"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )


@dataclass
class FinanceCategory:
    """
    A user-visible finance category label.

    Names are not unique; two categories may share a name.
    """

    id: Optional[int]
    name: str

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_row(cls, row: dict) -> "FinanceCategory":
        """Create a FinanceCategory from a stored record."""
        return cls(id=row["id"], name=row["name"])


@dataclass
class FinanceRecord:
    """
    A single expense or income record.

    Every save creates a new record; records are never merged or updated.
    `category` is a free-form label, not a reference to FinanceCategory.id.
    """

    id: Optional[int]
    date: str  # YYYY-MM-DD
    category: str
    amount: float
    note: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "date": self.date,
            "category": self.category,
            "amount": self.amount,
            "note": self.note,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_row(cls, row: dict) -> "FinanceRecord":
        """Create a FinanceRecord from a stored record."""
        return cls(
            id=row["id"],
            date=row["date"],
            category=row["category"],
            amount=row["amount"],
            note=row["note"] or "",
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )
