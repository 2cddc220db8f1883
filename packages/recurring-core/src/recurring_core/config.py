"""Environment-based configuration for the recurring issue engine."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Recurring issue engine configuration.

    All settings can be overridden via environment variables with
    RECURRING_ prefix. For example:
        RECURRING_WINDOW_DAYS=14
        RECURRING_HELPDESK_URL=http://helpdesk:4000
    """

    # Analysis
    window_days: int = Field(default=30, gt=0)
    min_occurrences: int = Field(default=3, gt=0)
    keyword_top_n: int = Field(default=8, gt=0)

    # Scheduling
    analysis_interval_hours: float = Field(default=24.0, gt=0)
    initial_delay_seconds: float = Field(default=30.0, ge=0)

    # Storage
    db_path: Path = Path.home() / ".recurring" / "alerts.db"

    # Ticket source
    helpdesk_url: str = "http://localhost:4000"
    helpdesk_token: str | None = None
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = {"env_prefix": "RECURRING_"}


settings = Settings()
