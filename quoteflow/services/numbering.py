"""
Quote identity: yearly quote numbers and per-project versions.

Quote numbers look like ``Q2026-0042``. The sequence for a year lives in a
``quote_sequences`` row that is incremented with a single UPDATE ... RETURNING,
so two requests in the same transaction window can never read the same
value. The first allocation of a year seeds the row from the highest number
already issued that year.

Versions are ``1 + max(version)`` per project. Concurrent resolutions for the
same project are caught by the (project_id, version) unique constraint; the
quote service retries the whole write on IntegrityError.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quoteflow.models.quote import Quote, QuoteSequence

logger = logging.getLogger(__name__)

QUOTE_NUMBER_PREFIX = "Q"
QUOTE_NUMBER_RE = re.compile(r"^Q(\d{4})-(\d+)$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_quote_number(year: int, seq: int) -> str:
    return f"{QUOTE_NUMBER_PREFIX}{year}-{seq:04d}"


def parse_quote_number(quote_number: str) -> Optional[tuple[int, int]]:
    """Return (year, seq) or None when the number is not in Q{year}-{seq} form."""
    match = QUOTE_NUMBER_RE.match(quote_number or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class QuoteNumberAllocator:
    """Assigns year-scoped sequential quote numbers."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    @staticmethod
    def scope_for(year: int) -> str:
        return f"{QUOTE_NUMBER_PREFIX}{year}"

    async def allocate(self) -> str:
        """Reserve the next number for the current year (caller commits)."""
        year = self.clock().year
        scope = self.scope_for(year)

        result = await self.db.execute(
            update(QuoteSequence)
            .where(QuoteSequence.scope == scope)
            .values(value=QuoteSequence.value + 1)
            .returning(QuoteSequence.value)
            .execution_options(synchronize_session=False)
        )
        seq = result.scalar_one_or_none()

        if seq is None:
            seq = await self.highest_issued(year) + 1
            self.db.add(QuoteSequence(scope=scope, value=seq))
            # A concurrent first allocation fails here with IntegrityError
            await self.db.flush()
            logger.info("Started quote sequence %s at %d", scope, seq)

        return format_quote_number(year, seq)

    async def highest_issued(self, year: int) -> int:
        """Highest sequence already used by a stored quote for ``year``."""
        result = await self.db.execute(
            select(Quote.quote_number).where(
                Quote.quote_number.like(f"{QUOTE_NUMBER_PREFIX}{year}-%")
            )
        )
        highest = 0
        for number in result.scalars():
            parsed = parse_quote_number(number)
            if parsed and parsed[0] == year:
                highest = max(highest, parsed[1])
        return highest


class VersionResolver:
    """Per-project revision numbers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def next_version(self, project_id: Optional[str]) -> int:
        if project_id is None:
            return 1
        result = await self.db.execute(
            select(func.max(Quote.version)).where(Quote.project_id == project_id)
        )
        return (result.scalar() or 0) + 1
