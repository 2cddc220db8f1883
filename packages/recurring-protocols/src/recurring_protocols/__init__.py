"""
Protocol definitions for the recurring issue detection engine.

This package provides the interface between the engine and the helpdesk
that owns ticket persistence. It has zero dependencies on other
recurring-* packages.

Key protocols:
- TicketSnapshotReaderProtocol: Read-only access to recent tickets

Key types:
- Ticket: A support ticket as seen by the engine
- TicketId, UserId: Identifier aliases
"""

from recurring_protocols.ticket import (
    Ticket,
    TicketId,
    TicketSnapshotReaderProtocol,
    UserId,
)

__all__ = [
    # Protocols
    "TicketSnapshotReaderProtocol",
    # Data types
    "Ticket",
    "TicketId",
    "UserId",
]
