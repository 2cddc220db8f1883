"""Clients for external services."""

from recurring_core.clients.helpdesk import HelpdeskTicketClient, create_helpdesk_http_client

__all__ = ["HelpdeskTicketClient", "create_helpdesk_http_client"]
