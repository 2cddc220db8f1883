"""HTTP API for recurring alerts."""

from .alerts import alerts_router, get_alert_service
from .main import create_app

__all__ = ["alerts_router", "create_app", "get_alert_service"]
