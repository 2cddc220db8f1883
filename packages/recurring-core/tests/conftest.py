"""Shared fixtures for recurring_core tests."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from recurring_core.db.alerts import AlertDB
from recurring_protocols import Ticket

REFERENCE_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for analysis runs."""
    return REFERENCE_NOW


@pytest.fixture
def make_ticket():
    """Factory for tickets created relative to the reference time."""
    counter = itertools.count(1)

    def _make(
        category: str = "NETWORK",
        priority: str = "LOW",
        user: str = "user1",
        days_ago: float = 1.0,
        tags: tuple[str, ...] = (),
        title: str = "Brak internetu w biurze",
        description: str = "Sieć nie działa od rana",
        ticket_id: str | None = None,
    ) -> Ticket:
        n = next(counter)
        return Ticket(
            id=ticket_id or f"T{n:03d}",
            title=title,
            description=description,
            category=category,
            priority=priority,
            created_at=REFERENCE_NOW - timedelta(days=days_ago, minutes=n),
            created_by_user_id=user,
            tag_ids=frozenset(tags),
        )

    return _make


@pytest_asyncio.fixture
async def db(tmp_path):
    """AlertDB on a fresh database file."""
    async with AlertDB(tmp_path / "alerts.db") as database:
        yield database
