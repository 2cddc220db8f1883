"""Tests for the ticket type and snapshot reader protocol."""

import dataclasses
from datetime import datetime, timezone

import pytest

from recurring_protocols import Ticket, TicketSnapshotReaderProtocol


def _ticket(**overrides) -> Ticket:
    values = dict(
        id="T1",
        title="Drukarka nie drukuje",
        description="Zacina się papier",
        category="HARDWARE",
        priority="MEDIUM",
        created_at=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
        created_by_user_id="anna",
    )
    values.update(overrides)
    return Ticket(**values)


class ListReader:
    """Minimal reader implementing the protocol."""

    async def list_tickets_created_since(self, window_start: datetime) -> list[Ticket]:
        return []


class IncompleteReader:
    """Reader missing the protocol method."""

    async def list_tickets(self) -> list[Ticket]:
        return []


class TestTicket:
    """Tests for the Ticket dataclass."""

    def test_text_joins_title_and_description(self):
        assert _ticket().text == "Drukarka nie drukuje Zacina się papier"

    def test_tags_default_empty(self):
        assert _ticket().tag_ids == frozenset()

    def test_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            _ticket().title = "changed"

    def test_hashable(self):
        assert len({_ticket(), _ticket()}) == 1


class TestTicketSnapshotReaderProtocol:
    """Tests for runtime protocol checks."""

    def test_reader_is_protocol(self):
        assert isinstance(ListReader(), TicketSnapshotReaderProtocol)

    def test_incomplete_reader_is_not_protocol(self):
        assert not isinstance(IncompleteReader(), TicketSnapshotReaderProtocol)
