"""Tests for daybook.services.daybook: the inbound save/load operations."""

import math
from datetime import date, datetime
from decimal import Decimal

import pytest

from daybook.config import DEFAULT_FINANCE_CATEGORIES
from daybook.exceptions import ValidationError
from daybook.services.daybook import DaybookService, normalize_date, parse_amount


class TestValidators:
    """Tests for input normalization helpers."""

    def test_normalize_date_accepts_date_and_string(self):
        assert normalize_date(date(2025, 1, 8)) == "2025-01-08"
        assert normalize_date(datetime(2025, 1, 8, 23, 59)) == "2025-01-08"
        assert normalize_date(" 2025-01-08 ") == "2025-01-08"

    @pytest.mark.parametrize("value", ["2025-13-01", "yesterday", "", None, 20250108])
    def test_normalize_date_rejects_garbage(self, value):
        with pytest.raises(ValidationError):
            normalize_date(value)

    def test_parse_amount_accepts_numbers(self):
        assert parse_amount(0) == 0.0
        assert parse_amount(12) == 12.0
        assert parse_amount("12.50") == 12.5
        assert parse_amount(Decimal("3.25")) == 3.25

    @pytest.mark.parametrize(
        "value", [-1, "-0.01", "abc", "", None, True, math.nan, math.inf, [1]]
    )
    def test_parse_amount_rejects_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_amount(value)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_amount("abc")


class TestDiary:
    """Tests for diary entries."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, service):
        saved = await service.save_diary_entry("2025-01-01", "work", "shipped it")

        loaded = await service.load_diary_entries("2025-01-01")

        assert loaded == [saved]

    @pytest.mark.asyncio
    async def test_resave_overwrites(self, service):
        await service.save_diary_entry("2025-01-01", "work", "a")
        await service.save_diary_entry("2025-01-01", "work", "b")

        loaded = await service.load_diary_entries(date(2025, 1, 1))

        assert [entry.text for entry in loaded] == ["b"]

    @pytest.mark.asyncio
    async def test_one_entry_per_category_per_day(self, service):
        await service.save_diary_entry("2025-01-01", "work", "a")
        await service.save_diary_entry("2025-01-01", "life", "b")
        await service.save_diary_entry("2025-01-02", "work", "c")

        loaded = await service.load_diary_entries("2025-01-01")

        assert sorted(e.category for e in loaded) == ["life", "work"]

    @pytest.mark.asyncio
    async def test_category_is_trimmed_into_the_key(self, service):
        await service.save_diary_entry("2025-01-01", " work ", "a")
        await service.save_diary_entry("2025-01-01", "work", "b")

        loaded = await service.load_diary_entries("2025-01-01")

        assert [(e.category, e.text) for e in loaded] == [("work", "b")]

    @pytest.mark.asyncio
    async def test_empty_day(self, service):
        assert await service.load_diary_entries("2030-01-01") == []

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self, service):
        with pytest.raises(ValidationError, match="text"):
            await service.save_diary_entry("2025-01-01", "work", "   ")
        assert await service.load_diary_entries("2025-01-01") == []


class TestFinanceRecords:
    """Tests for finance records."""

    @pytest.mark.asyncio
    async def test_save_and_load_round_trip(self, service):
        saved = await service.save_finance_record(
            "meal", 12.5, "noodles", date="2025-01-08"
        )

        loaded = await service.load_finance_records("2025-01-08")

        assert saved.id is not None
        assert loaded == [saved]

    @pytest.mark.asyncio
    async def test_identical_saves_create_two_records(self, service):
        first = await service.save_finance_record("meal", 10, date="2025-01-08")
        second = await service.save_finance_record("meal", 10, date="2025-01-08")

        loaded = await service.load_finance_records("2025-01-08")

        assert first.id != second.id
        assert sorted(r.id for r in loaded) == sorted([first.id, second.id])

    @pytest.mark.asyncio
    async def test_date_defaults_to_today(self, service):
        record = await service.save_finance_record("transport", 3)
        assert record.date == date.today().isoformat()

    @pytest.mark.asyncio
    async def test_note_is_optional(self, service):
        record = await service.save_finance_record("meal", 1, None, date="2025-01-08")
        loaded = await service.load_finance_records("2025-01-08")
        assert record.note == ""
        assert loaded[0].note == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [-5, "abc", math.nan])
    async def test_invalid_amount_writes_nothing(self, service, amount):
        with pytest.raises(ValidationError):
            await service.save_finance_record("meal", amount, date="2025-01-08")

        assert await service.load_finance_records("2025-01-08") == []

    @pytest.mark.asyncio
    async def test_category_is_free_form(self, service):
        record = await service.save_finance_record("not-a-category", 1, date="2025-01-08")
        assert record.category == "not-a-category"

    @pytest.mark.asyncio
    async def test_category_is_trimmed(self, service):
        record = await service.save_finance_record(" meal ", 1, date="2025-01-08")
        category = await service.add_finance_category(" meal ")

        assert record.category == category.name == "meal"


class TestFinanceCategories:
    """Tests for finance categories."""

    @pytest.mark.asyncio
    async def test_defaults_are_seeded(self, service):
        categories = await service.list_finance_categories()
        assert [c.name for c in categories] == list(DEFAULT_FINANCE_CATEGORIES)

    @pytest.mark.asyncio
    async def test_duplicate_names_are_allowed(self, service):
        first = await service.add_finance_category("meal")

        categories = await service.list_finance_categories()

        assert first.id not in {c.id for c in categories[:5]}
        assert [c.name for c in categories].count("meal") == 2

    @pytest.mark.asyncio
    async def test_delete_does_not_cascade(self, service):
        category = await service.add_finance_category("travel")
        await service.save_finance_record("travel", 80, date="2025-01-08")

        assert await service.delete_finance_category(category.id) is True

        records = await service.load_finance_records("2025-01-08")
        assert [r.category for r in records] == ["travel"]
        assert "travel" not in [c.name for c in await service.list_finance_categories()]

    @pytest.mark.asyncio
    async def test_delete_missing_id_is_noop(self, service):
        before = await service.list_finance_categories()

        assert await service.delete_finance_category(9999) is False
        assert await service.list_finance_categories() == before

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.add_finance_category("")


class TestLifecycle:
    """Tests for service lifecycle."""

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, db_path):
        async with DaybookService(db_path) as service:
            await service.save_diary_entry("2025-01-01", "work", "persisted")
            await service.save_finance_record("meal", 9, date="2025-01-01")

        async with DaybookService(db_path) as service:
            entries = await service.load_diary_entries("2025-01-01")
            records = await service.load_finance_records("2025-01-01")
            categories = await service.list_finance_categories()

        assert [e.text for e in entries] == ["persisted"]
        assert [r.amount for r in records] == [9.0]
        assert len(categories) == len(DEFAULT_FINANCE_CATEGORIES)

    @pytest.mark.asyncio
    async def test_services_can_share_a_manager(self, manager):
        writer = DaybookService(manager=manager)
        reader = DaybookService(manager=manager)

        await writer.save_diary_entry("2025-01-01", "work", "shared")

        assert [e.text for e in await reader.load_diary_entries("2025-01-01")] == [
            "shared"
        ]
