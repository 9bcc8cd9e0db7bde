"""Tests for daybook.services.stats: daily/weekly/monthly totals."""

from datetime import date

import pytest

from daybook.services.stats import (
    StatsService,
    bucket_by_date,
    month_start,
    week_start,
)


class TestWindows:
    """Tests for the aggregate window boundaries."""

    def test_week_starts_on_previous_sunday(self):
        # 2025-01-08 is a Wednesday
        assert week_start(date(2025, 1, 8)) == date(2025, 1, 5)

    def test_week_start_on_sunday_is_same_day(self):
        assert week_start(date(2025, 1, 5)) == date(2025, 1, 5)

    def test_week_start_on_saturday(self):
        assert week_start(date(2025, 1, 11)) == date(2025, 1, 5)

    def test_week_can_cross_month_boundary(self):
        # 2025-03-01 is a Saturday
        assert week_start(date(2025, 3, 1)) == date(2025, 2, 23)

    def test_month_start(self):
        assert month_start(date(2025, 1, 31)) == date(2025, 1, 1)


class TestBucketByDate:
    """Tests for grouping records into per-day totals."""

    def test_empty(self):
        assert bucket_by_date([]) == {}

    def test_sums_amounts_per_day(self):
        records = [
            {"id": 1, "date": "2025-01-01", "amount": 10.0},
            {"id": 2, "date": "2025-01-01", "amount": 2.5},
            {"id": 3, "date": "2025-01-02", "amount": 20.0},
        ]
        assert bucket_by_date(records) == {
            date(2025, 1, 1): 12.5,
            date(2025, 1, 2): 20.0,
        }


class TestComputeStats:
    """Tests for StatsService.compute_stats over stored records."""

    async def _seed(self, service, rows):
        for day, amount in rows:
            await service.save_finance_record("meal", amount, date=day)

    @pytest.mark.asyncio
    async def test_reference_example(self, service):
        await self._seed(
            service, [("2025-01-01", 10), ("2025-01-02", 20), ("2025-01-08", 5)]
        )

        stats = await service.compute_stats(date(2025, 1, 8))

        assert stats.daily_total == 5
        assert stats.weekly_total == 5
        assert stats.monthly_total == 35

    @pytest.mark.asyncio
    async def test_recent_series_is_complete_and_ascending(self, service):
        await self._seed(
            service, [("2025-01-01", 10), ("2025-01-02", 20), ("2025-01-08", 5)]
        )

        stats = await service.compute_stats(date(2025, 1, 8))

        assert [p.date for p in stats.recent_series] == [
            date(2025, 1, d) for d in range(2, 9)
        ]
        assert [p.total for p in stats.recent_series] == [20, 0, 0, 0, 0, 0, 5]

    @pytest.mark.asyncio
    async def test_empty_store_gives_zeros(self, service):
        stats = await service.compute_stats(date(2025, 6, 15))

        assert stats.daily_total == 0
        assert stats.weekly_total == 0
        assert stats.monthly_total == 0
        assert len(stats.recent_series) == 7
        assert all(p.total == 0 for p in stats.recent_series)

    @pytest.mark.asyncio
    async def test_same_day_records_are_summed(self, service):
        await self._seed(service, [("2025-02-10", 3), ("2025-02-10", 4.5)])

        stats = await service.compute_stats(date(2025, 2, 10))

        assert stats.daily_total == 7.5
        assert stats.recent_series[-1].total == 7.5

    @pytest.mark.asyncio
    async def test_previous_month_excluded_from_month_but_in_week(self, service):
        # 2025-03-01 is a Saturday; its week starts 2025-02-23
        await self._seed(service, [("2025-02-27", 8), ("2025-03-01", 2)])

        stats = await service.compute_stats(date(2025, 3, 1))

        assert stats.weekly_total == 10
        assert stats.monthly_total == 2

    @pytest.mark.asyncio
    async def test_each_call_rescans(self, service):
        today = date(2025, 4, 9)
        assert (await service.compute_stats(today)).daily_total == 0

        await self._seed(service, [("2025-04-09", 12)])

        assert (await service.compute_stats(today)).daily_total == 12

    @pytest.mark.asyncio
    async def test_direct_service_use(self, repository):
        await repository.add(
            "financeRecords",
            {
                "date": "2025-01-08",
                "category": "salary",
                "amount": 100.0,
                "note": "",
                "timestamp": "2025-01-08T09:00:00",
            },
        )

        stats = await StatsService(repository).compute_stats(date(2025, 1, 8))

        assert stats.to_dict()["daily_total"] == 100.0
        assert stats.to_dict()["recent_series"][-1] == {
            "date": "2025-01-08",
            "total": 100.0,
        }
