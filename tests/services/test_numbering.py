"""
Tests for quote numbers and project versions.
"""

from datetime import datetime, timezone

import pytest

from quoteflow.models.quote import Quote, QuoteSequence
from quoteflow.services.numbering import (
    QuoteNumberAllocator,
    VersionResolver,
    format_quote_number,
    parse_quote_number,
)


def fixed_clock(year):
    return lambda: datetime(year, 3, 1, 9, 30, tzinfo=timezone.utc)


class TestQuoteNumberFormat:

    def test_format_pads_to_four_digits(self):
        assert format_quote_number(2026, 7) == "Q2026-0007"

    def test_format_keeps_large_sequences(self):
        assert format_quote_number(2026, 12345) == "Q2026-12345"

    def test_parse(self):
        assert parse_quote_number("Q2026-0042") == (2026, 42)

    @pytest.mark.parametrize("value", ["", "2026-0042", "Q26-0001", "Q2026-", "INV2026-0001"])
    def test_parse_rejects_other_formats(self, value):
        assert parse_quote_number(value) is None


class TestQuoteNumberAllocator:

    @pytest.mark.asyncio
    async def test_first_number_of_year(self, test_db):
        allocator = QuoteNumberAllocator(test_db, fixed_clock(2026))

        number = await allocator.allocate()
        await test_db.commit()

        assert number == "Q2026-0001"

    @pytest.mark.asyncio
    async def test_numbers_strictly_increase(self, test_db):
        allocator = QuoteNumberAllocator(test_db, fixed_clock(2026))

        numbers = []
        for _ in range(3):
            numbers.append(await allocator.allocate())
            await test_db.commit()

        assert numbers == ["Q2026-0001", "Q2026-0002", "Q2026-0003"]

    @pytest.mark.asyncio
    async def test_sequence_is_per_year(self, test_db):
        await QuoteNumberAllocator(test_db, fixed_clock(2025)).allocate()
        await QuoteNumberAllocator(test_db, fixed_clock(2025)).allocate()
        await test_db.commit()

        number = await QuoteNumberAllocator(test_db, fixed_clock(2026)).allocate()

        assert number == "Q2026-0001"

    @pytest.mark.asyncio
    async def test_seeds_from_highest_existing_number(self, test_db, sample_client):
        test_db.add_all([
            Quote(client_id=sample_client.id, quote_number="Q2026-0003", version=1),
            Quote(client_id=sample_client.id, quote_number="Q2026-0007", version=1),
            Quote(client_id=sample_client.id, quote_number="Q2025-0050", version=1),
        ])
        await test_db.commit()

        number = await QuoteNumberAllocator(test_db, fixed_clock(2026)).allocate()
        await test_db.commit()

        assert number == "Q2026-0008"
        sequence = await test_db.get(QuoteSequence, "Q2026")
        assert sequence.value == 8

    @pytest.mark.asyncio
    async def test_rolled_back_allocation_is_not_consumed(self, test_db):
        allocator = QuoteNumberAllocator(test_db, fixed_clock(2026))
        await allocator.allocate()
        await test_db.commit()

        await allocator.allocate()
        await test_db.rollback()

        assert await allocator.allocate() == "Q2026-0002"


class TestVersionResolver:

    @pytest.mark.asyncio
    async def test_no_project_is_version_one(self, test_db):
        assert await VersionResolver(test_db).next_version(None) == 1

    @pytest.mark.asyncio
    async def test_first_version_of_project(self, test_db, sample_project):
        assert await VersionResolver(test_db).next_version(sample_project.id) == 1

    @pytest.mark.asyncio
    async def test_next_after_highest(self, test_db, sample_client, sample_project):
        test_db.add_all([
            Quote(client_id=sample_client.id, project_id=sample_project.id, quote_number="Q2026-0001", version=1),
            Quote(client_id=sample_client.id, project_id=sample_project.id, quote_number="Q2026-0002", version=4),
        ])
        await test_db.commit()

        assert await VersionResolver(test_db).next_version(sample_project.id) == 5
