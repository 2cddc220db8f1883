"""Analysis CLI commands.

- run: Execute one analysis pass against the helpdesk and print the report
- daemon: Run the scheduler (initial pass, then every interval) until Ctrl+C
- serve: Run the HTTP API with the scheduler in the background
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from recurring_core.analysis.analyzer import AnalysisReport, RecurringIssueAnalyzer
from recurring_core.analysis.scheduler import AnalysisScheduler
from recurring_core.clients.helpdesk import (
    HelpdeskTicketClient,
    create_helpdesk_http_client,
)
from recurring_core.config import settings
from recurring_core.db.alerts import AlertDB
from recurring_core.errors import SnapshotUnavailableError

analysis_app = typer.Typer(help="Run recurring issue analysis")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_report(report: AnalysisReport) -> None:
    console = Console()
    console.print(
        f"[bold]Analyzed {report.tickets_analyzed} tickets[/bold], "
        f"{report.candidates} recurring groups, "
        f"{len(report.created)} created, {len(report.updated)} updated, "
        f"{report.skipped} skipped"
    )

    changed = report.created + report.updated
    if not changed:
        return

    table = Table(title="Changed Alerts")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Change")
    table.add_column("Group")
    table.add_column("Severity")
    table.add_column("Tickets", justify="right")
    table.add_column("Suggested Action")

    for alert in report.created:
        table.add_row(str(alert.id), "[green]new[/green]", alert.label, alert.severity.value,
                      str(alert.occurrence_count), alert.suggested_action)
    for alert in report.updated:
        table.add_row(str(alert.id), "updated", alert.label, alert.severity.value,
                      str(alert.occurrence_count), alert.suggested_action)

    console.print(table)

    for alert in report.critical_alerts:
        console.print(f"[bold red]CRITICAL:[/bold red] alert {alert.id} {alert.label} needs attention")


@analysis_app.command("run")
def run_analysis(
    helpdesk_url: str = typer.Option(
        None, "--helpdesk", envvar="RECURRING_HELPDESK_URL", help="Helpdesk API URL (e.g., http://helpdesk:4000)"
    ),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run a single analysis pass and print what changed."""
    _configure_logging(verbose)
    path = db_path or settings.db_path
    path.parent.mkdir(parents=True, exist_ok=True)

    async def _run() -> AnalysisReport:
        async with create_helpdesk_http_client(
            helpdesk_url or settings.helpdesk_url,
            token=settings.helpdesk_token,
            timeout_seconds=settings.request_timeout_seconds,
        ) as http:
            async with AlertDB(path) as db:
                analyzer = RecurringIssueAnalyzer(
                    reader=HelpdeskTicketClient(http=http),
                    repository=db,
                    window_days=settings.window_days,
                    min_occurrences=settings.min_occurrences,
                    keyword_top_n=settings.keyword_top_n,
                )
                return await analyzer.run()

    try:
        report = asyncio.run(_run())
    except SnapshotUnavailableError as e:
        print(f"Error: {e}")
        print("Existing alerts were not changed")
        raise typer.Exit(1)

    _print_report(report)


@analysis_app.command("daemon")
def run_daemon(
    helpdesk_url: str = typer.Option(
        None, "--helpdesk", envvar="RECURRING_HELPDESK_URL", help="Helpdesk API URL (e.g., http://helpdesk:4000)"
    ),
    interval: float = typer.Option(
        None, "--interval", "-i", help="Hours between analysis passes"
    ),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Run the analysis scheduler.

    Runs a first pass shortly after start, then one pass per interval.
    Runs until interrupted with Ctrl+C.
    """
    _configure_logging(verbose)
    url = helpdesk_url or settings.helpdesk_url
    hours = interval or settings.analysis_interval_hours
    path = db_path or settings.db_path
    path.parent.mkdir(parents=True, exist_ok=True)

    print("Starting recurring issue scheduler")
    print(f"  Helpdesk: {url}")
    print(f"  Interval: {hours}h")
    print(f"  Database: {path}")
    print()
    print("Press Ctrl+C to stop")
    print()

    async def _run() -> None:
        async with create_helpdesk_http_client(
            url,
            token=settings.helpdesk_token,
            timeout_seconds=settings.request_timeout_seconds,
        ) as http:
            async with AlertDB(path) as db:
                analyzer = RecurringIssueAnalyzer(
                    reader=HelpdeskTicketClient(http=http),
                    repository=db,
                    window_days=settings.window_days,
                    min_occurrences=settings.min_occurrences,
                    keyword_top_n=settings.keyword_top_n,
                )
                scheduler = AnalysisScheduler(
                    analyzer,
                    interval_hours=hours,
                    initial_delay_seconds=settings.initial_delay_seconds,
                )
                await scheduler.run()

    asyncio.run(_run())


@analysis_app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
) -> None:
    """Serve the alert API with the scheduler running in the background."""
    import uvicorn

    from recurring_core.api.main import create_app

    _configure_logging(False)
    uvicorn.run(create_app(), host=host, port=port)
