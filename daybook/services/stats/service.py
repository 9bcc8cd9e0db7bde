"""
Stats service for finance totals.

Provides functionality for:
- Daily, week-to-date and month-to-date spending totals
- A fixed-length series of recent daily totals for charting
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

import pandas as pd

from daybook.config import RECENT_SERIES_DAYS
from daybook.db.repository import RecordRepository

logger = logging.getLogger(__name__)

FINANCE_RECORDS = "financeRecords"


@dataclass
class DailyTotal:
    """Total amount recorded on one calendar day."""

    date: date
    total: float

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "total": self.total}


@dataclass
class FinanceStats:
    """Aggregated totals relative to a reference day."""

    today: date
    daily_total: float
    weekly_total: float  # Since the most recent Sunday, inclusive
    monthly_total: float  # Since the first of the month, inclusive
    recent_series: list[DailyTotal]  # Oldest first, always RECENT_SERIES_DAYS long

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "today": self.today.isoformat(),
            "daily_total": self.daily_total,
            "weekly_total": self.weekly_total,
            "monthly_total": self.monthly_total,
            "recent_series": [point.to_dict() for point in self.recent_series],
        }


def week_start(for_date: date) -> date:
    """Most recent Sunday on or before ``for_date``."""
    # date.weekday(): Monday=0 ... Sunday=6
    return for_date - timedelta(days=(for_date.weekday() + 1) % 7)


def month_start(for_date: date) -> date:
    return for_date.replace(day=1)


def bucket_by_date(records: list[dict]) -> dict[date, float]:
    """Sum ``amount`` per calendar day."""
    if not records:
        return {}

    df = pd.DataFrame(records, columns=["date", "amount"])
    totals = df.groupby("date")["amount"].sum()
    return {date.fromisoformat(day): float(total) for day, total in totals.items()}


class StatsService:
    """Service for computing finance totals from the full record set."""

    def __init__(self, repository: RecordRepository):
        """
        Initialize the stats service.

        Args:
            repository: Repository used for the full finance record scan
        """
        self.repository = repository

    async def compute_stats(self, today: Optional[date] = None) -> FinanceStats:
        """
        Compute daily, weekly and monthly totals and the recent series.

        Every call rescans all finance records.

        Args:
            today: Reference day (defaults to today)

        Returns:
            FinanceStats for the reference day
        """
        if today is None:
            today = date.today()

        records = await self.repository.get_all(FINANCE_RECORDS)
        buckets = bucket_by_date(records)

        since_week = week_start(today)
        since_month = month_start(today)

        weekly_total = sum(total for day, total in buckets.items() if day >= since_week)
        monthly_total = sum(total for day, total in buckets.items() if day >= since_month)

        recent_series = [
            DailyTotal(date=day, total=buckets.get(day, 0.0))
            for day in (
                today - timedelta(days=offset)
                for offset in range(RECENT_SERIES_DAYS - 1, -1, -1)
            )
        ]

        stats = FinanceStats(
            today=today,
            daily_total=buckets.get(today, 0.0),
            weekly_total=float(weekly_total),
            monthly_total=float(monthly_total),
            recent_series=recent_series,
        )
        logger.debug(
            f"Computed stats for {today}: {len(records)} records, "
            f"{len(buckets)} day buckets"
        )
        return stats
