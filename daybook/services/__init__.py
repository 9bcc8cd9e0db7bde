from .daybook import DaybookService, normalize_date, parse_amount
from .stats import DailyTotal, FinanceStats, StatsService

__all__ = [
    "DailyTotal",
    "DaybookService",
    "FinanceStats",
    "StatsService",
    "normalize_date",
    "parse_amount",
]
