"""
Ticket snapshot protocol and ticket types.

The TicketSnapshotReaderProtocol defines the read-only interface to the
helpdesk ticket store. Ticket represents one support ticket as seen by the
analysis engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

TicketId = str
"""Unique identifier of a helpdesk ticket."""

UserId = str
"""Unique identifier of a helpdesk user (ticket author or acting agent)."""


@dataclass(frozen=True)
class Ticket:
    """
    A support ticket from the helpdesk store.

    Tickets are immutable from the analysis engine's point of view. The
    engine never writes tickets back; it only groups them.

    Attributes:
        id: Ticket identifier.
        title: Short ticket subject line.
        description: Free-text body of the ticket.
        category: Ticket category (e.g., "NETWORK", "HARDWARE"). Always set.
        priority: Ticket priority (e.g., "LOW", "HIGH"). Always set.
        created_at: When the ticket was filed (timezone-aware).
        created_by_user_id: Identifier of the user who filed the ticket.
        tag_ids: Identifiers of tags attached to the ticket. May be empty.
    """

    id: TicketId
    title: str
    description: str
    category: str
    priority: str
    created_at: datetime
    created_by_user_id: UserId
    tag_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def text(self) -> str:
        """Title and description joined for keyword extraction."""
        return f"{self.title} {self.description}"


@runtime_checkable
class TicketSnapshotReaderProtocol(Protocol):
    """
    Protocol for read-only access to helpdesk tickets.

    Implementations wrap whatever owns ticket persistence (the helpdesk
    REST API, a replica database, fixtures in tests). A call returns a
    complete snapshot or raises; partial results are never returned.

    Implementations should raise SnapshotUnavailableError (from
    recurring_core.errors) when the ticket source cannot be reached so the
    analysis run can abort without touching alerts.
    """

    async def list_tickets_created_since(self, window_start: datetime) -> list[Ticket]:
        """
        List tickets created at or after window_start.

        Args:
            window_start: Inclusive lower bound on Ticket.created_at.

        Returns:
            All matching tickets, in any order.
        """
        ...
