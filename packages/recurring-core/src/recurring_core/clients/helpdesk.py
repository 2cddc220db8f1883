"""
Helpdesk REST API client for ticket snapshots.

This module provides the HelpdeskTicketClient class, the production
TicketSnapshotReaderProtocol implementation. It reads the helpdesk's
ticket listing (GET /api/tickets) and converts entries to Ticket values.

Key design decisions:
- Uses injected httpx.AsyncClient (base_url and auth configured by caller)
- Validates payloads with Pydantic before converting to Ticket
- Category and priority are upper-cased; the listing returns them lowercase
- Closed tickets are left out of the snapshot
- Any transport, HTTP or payload error becomes SnapshotUnavailableError,
  so a run never continues on a partial snapshot
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from recurring_core.errors import SnapshotUnavailableError
from recurring_protocols import Ticket

TICKETS_PATH = "/api/tickets"


class TicketTagPayload(BaseModel):
    """Tag entry inside a ticket listing item."""

    id: int | str
    name: str = ""


class TicketPayload(BaseModel):
    """Single item of the helpdesk ticket listing."""

    model_config = ConfigDict(populate_by_name=True)

    id: int | str
    title: str
    description: str | None = None
    status: str = ""
    priority: str
    category: str
    created_by: str = Field(alias="createdBy")
    created_at: datetime = Field(alias="createdAt")
    tags: list[TicketTagPayload] = Field(default_factory=list)

    def to_ticket(self) -> Ticket:
        """Convert to the engine's Ticket type."""
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Ticket(
            id=str(self.id),
            title=self.title,
            description=self.description or "",
            category=self.category.upper(),
            priority=self.priority.upper(),
            created_at=created_at,
            created_by_user_id=self.created_by,
            tag_ids=frozenset(str(tag.id) for tag in self.tags),
        )


@dataclass
class HelpdeskTicketClient:
    """
    Helpdesk API client with injected httpx client.

    The httpx.AsyncClient should be pre-configured with the helpdesk base_url
    and an Authorization header.

    Example:
        async with httpx.AsyncClient(base_url="http://helpdesk:4000") as http:
            reader = HelpdeskTicketClient(http=http)
            tickets = await reader.list_tickets_created_since(window_start)
    """

    http: httpx.AsyncClient
    excluded_statuses: frozenset[str] = field(default_factory=lambda: frozenset({"closed"}))

    async def list_tickets_created_since(self, window_start: datetime) -> list[Ticket]:
        """
        Fetch tickets created at or after window_start.

        Args:
            window_start: Inclusive lower bound on created_at

        Returns:
            Tickets in the window, closed tickets excluded

        Raises:
            SnapshotUnavailableError: On transport, HTTP or payload errors
        """
        source = f"{self.http.base_url}{TICKETS_PATH}"
        try:
            response = await self.http.get(
                TICKETS_PATH,
                params={"createdSince": window_start.isoformat(), "archived": "false"},
            )
            response.raise_for_status()
            items = response.json()
        except httpx.HTTPError as e:
            raise SnapshotUnavailableError(source, str(e)) from e
        except ValueError as e:
            raise SnapshotUnavailableError(source, f"invalid JSON: {e}") from e

        if not isinstance(items, list):
            raise SnapshotUnavailableError(source, "expected a JSON array of tickets")

        try:
            payloads = [TicketPayload.model_validate(item) for item in items]
        except PydanticValidationError as e:
            raise SnapshotUnavailableError(source, f"invalid ticket payload: {e}") from e

        tickets = []
        for payload in payloads:
            if payload.status.lower() in self.excluded_statuses:
                continue
            ticket = payload.to_ticket()
            if ticket.created_at >= window_start:
                tickets.append(ticket)
        return tickets


def create_helpdesk_http_client(
    base_url: str,
    token: str | None = None,
    timeout_seconds: float = 30.0,
) -> httpx.AsyncClient:
    """Build an httpx.AsyncClient for the helpdesk API."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout_seconds)
