from .service import (
    DailyTotal,
    FinanceStats,
    StatsService,
    bucket_by_date,
    month_start,
    week_start,
)

__all__ = [
    "DailyTotal",
    "FinanceStats",
    "StatsService",
    "bucket_by_date",
    "month_start",
    "week_start",
]
