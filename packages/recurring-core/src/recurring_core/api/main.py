"""FastAPI application for the recurring issue engine."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from recurring_core.alerts.lifecycle import AlertLifecycle
from recurring_core.analysis.analyzer import RecurringIssueAnalyzer
from recurring_core.analysis.scheduler import AnalysisScheduler
from recurring_core.api.alerts import alerts_router
from recurring_core.clients.helpdesk import (
    HelpdeskTicketClient,
    create_helpdesk_http_client,
)
from recurring_core.config import Settings, settings
from recurring_core.db.alerts import AlertDB
from recurring_core.service import AlertService

logger = logging.getLogger(__name__)


def create_app(config: Settings = settings) -> FastAPI:
    """
    Build the application.

    The lifespan opens the alert database and the helpdesk client, and
    runs the analysis scheduler as a background task for the lifetime of
    the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup/shutdown."""
        config.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with create_helpdesk_http_client(
            config.helpdesk_url,
            token=config.helpdesk_token,
            timeout_seconds=config.request_timeout_seconds,
        ) as http, AlertDB(config.db_path) as db:
            analyzer = RecurringIssueAnalyzer(
                reader=HelpdeskTicketClient(http=http),
                repository=db,
                window_days=config.window_days,
                min_occurrences=config.min_occurrences,
                keyword_top_n=config.keyword_top_n,
            )
            scheduler = AnalysisScheduler(
                analyzer,
                interval_hours=config.analysis_interval_hours,
                initial_delay_seconds=config.initial_delay_seconds,
            )
            app.state.alert_service = AlertService(db, AlertLifecycle(db), scheduler)

            # Uvicorn owns the signal handlers
            scheduler_task = asyncio.create_task(
                scheduler.run(install_signal_handlers=False)
            )

            try:
                yield
            finally:
                scheduler.stop()
                await scheduler_task

    app = FastAPI(
        title="Recurring Issue Engine",
        description="Detects recurring helpdesk problems and manages their alerts",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(alerts_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
