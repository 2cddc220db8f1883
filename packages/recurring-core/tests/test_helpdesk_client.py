"""Tests for HelpdeskTicketClient using httpx.MockTransport."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from recurring_core.clients.helpdesk import HelpdeskTicketClient, create_helpdesk_http_client
from recurring_core.errors import SnapshotUnavailableError
from recurring_protocols import TicketSnapshotReaderProtocol

WINDOW_START = datetime(2026, 2, 13, 12, 0, tzinfo=timezone.utc)


def _ticket_json(ticket_id=1, status="open", created_at="2026-03-10T08:15:00.000Z", **overrides):
    item = {
        "id": ticket_id,
        "title": "Brak internetu",
        "description": "Sieć nie działa w pokoju 204",
        "status": status,
        "priority": "high",
        "category": "network",
        "createdBy": "anna.kowalska",
        "tags": [{"id": 3, "name": "VPN", "color": "#ff0000"}],
        "createdAt": created_at,
    }
    item.update(overrides)
    return item


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://helpdesk")


class TestProtocolCompliance:
    """HelpdeskTicketClient satisfies the snapshot protocol."""

    @pytest.mark.asyncio
    async def test_is_snapshot_reader(self):
        async with _client(lambda request: httpx.Response(200, json=[])) as http:
            assert isinstance(HelpdeskTicketClient(http=http), TicketSnapshotReaderProtocol)


class TestListTickets:
    """Tests for list_tickets_created_since()."""

    @pytest.mark.asyncio
    async def test_converts_listing(self):
        async with _client(lambda request: httpx.Response(200, json=[_ticket_json()])) as http:
            tickets = await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

        assert len(tickets) == 1
        ticket = tickets[0]
        assert ticket.id == "1"
        assert ticket.category == "NETWORK"
        assert ticket.priority == "HIGH"
        assert ticket.created_by_user_id == "anna.kowalska"
        assert ticket.tag_ids == frozenset({"3"})
        assert ticket.created_at == datetime(2026, 3, 10, 8, 15, tzinfo=timezone.utc)
        assert ticket.text == "Brak internetu Sieć nie działa w pokoju 204"

    @pytest.mark.asyncio
    async def test_sends_window_start(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        async with _client(handler) as http:
            await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

        assert seen[0].url.path == "/api/tickets"
        assert seen[0].url.params["createdSince"] == WINDOW_START.isoformat()

    @pytest.mark.asyncio
    async def test_closed_and_old_tickets_dropped(self):
        items = [
            _ticket_json(1),
            _ticket_json(2, status="closed"),
            _ticket_json(3, created_at="2026-01-01T00:00:00Z"),
            _ticket_json(4, status="resolved"),
        ]
        async with _client(lambda request: httpx.Response(200, json=items)) as http:
            tickets = await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

        assert [t.id for t in tickets] == ["1", "4"]

    @pytest.mark.asyncio
    async def test_missing_description_and_tags(self):
        item = _ticket_json(description=None, tags=[])
        async with _client(lambda request: httpx.Response(200, json=[item])) as http:
            tickets = await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

        assert tickets[0].description == ""
        assert tickets[0].tag_ids == frozenset()

    @pytest.mark.asyncio
    async def test_naive_timestamp_treated_as_utc(self):
        item = _ticket_json(created_at="2026-03-10T08:15:00")
        async with _client(lambda request: httpx.Response(200, json=[item])) as http:
            tickets = await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

        assert tickets[0].created_at.tzinfo is not None


class TestSnapshotErrors:
    """Every failure mode raises SnapshotUnavailableError."""

    @pytest.mark.asyncio
    async def test_server_error(self):
        async with _client(lambda request: httpx.Response(500, text="boom")) as http:
            with pytest.raises(SnapshotUnavailableError) as exc_info:
                await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

        assert "helpdesk" in exc_info.value.source

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as http:
            with pytest.raises(SnapshotUnavailableError, match="connection refused"):
                await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with _client(lambda request: httpx.Response(200, text="<html>")) as http:
            with pytest.raises(SnapshotUnavailableError, match="invalid JSON"):
                await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

    @pytest.mark.asyncio
    async def test_non_list_body(self):
        body = {"tickets": [_ticket_json()]}
        async with _client(lambda request: httpx.Response(200, json=body)) as http:
            with pytest.raises(SnapshotUnavailableError, match="JSON array"):
                await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)

    @pytest.mark.asyncio
    async def test_invalid_item(self):
        item = _ticket_json()
        del item["title"]
        async with _client(lambda request: httpx.Response(200, content=json.dumps([item]))) as http:
            with pytest.raises(SnapshotUnavailableError, match="invalid ticket payload"):
                await HelpdeskTicketClient(http=http).list_tickets_created_since(WINDOW_START)


class TestCreateHttpClient:
    """Tests for create_helpdesk_http_client()."""

    @pytest.mark.asyncio
    async def test_bearer_token(self):
        async with create_helpdesk_http_client("http://helpdesk:4000", token="secret") as http:
            assert http.headers["Authorization"] == "Bearer secret"
            assert str(http.base_url).startswith("http://helpdesk:4000")

    @pytest.mark.asyncio
    async def test_no_token(self):
        async with create_helpdesk_http_client("http://helpdesk:4000") as http:
            assert "Authorization" not in http.headers
