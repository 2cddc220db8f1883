"""Recurring alert CLI commands.

This module provides CLI commands for working with stored alerts:
- list: Display alerts in table or JSON format
- show: Display one alert with its statistics and suggestion
- acknowledge / resolve / dismiss: Lifecycle actions
- stats: Alert counts by status, group type and severity
- history: Audit trail of one alert

Commands run async database operations through asyncio.run() and render
with Rich tables, or JSON for automation.
"""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from recurring_core.alerts.lifecycle import AlertLifecycle
from recurring_core.alerts.types import (
    AlertAction,
    AlertStatus,
    GroupType,
    RecurringAlert,
    Severity,
)
from recurring_core.config import settings
from recurring_core.db.alerts import AlertDB
from recurring_core.errors import RecurringAlertError
from recurring_core.service import AlertService

alerts_app = typer.Typer(help="Manage recurring issue alerts")

SEVERITY_STYLES = {
    Severity.LOW: "dim",
    Severity.MEDIUM: "yellow",
    Severity.HIGH: "red",
    Severity.CRITICAL: "bold red",
}


def _get_db_path(db_path: Path | None) -> Path:
    """Resolve database path, ensuring parent directory exists."""
    path = db_path or settings.db_path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _severity_cell(severity: Severity) -> str:
    style = SEVERITY_STYLES[severity]
    return f"[{style}]{severity.value.upper()}[/{style}]"


def _fmt(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


@alerts_app.command("list")
def list_alerts(
    status: AlertStatus = typer.Option(None, "--status", "-s", help="Filter by status"),
    severity: Severity = typer.Option(None, "--severity", help="Filter by severity"),
    group_type: GroupType = typer.Option(None, "--group-type", "-g", help="Filter by group type"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
) -> None:
    """List alerts, most severe and most recent first."""

    async def _list() -> list[RecurringAlert]:
        async with AlertDB(_get_db_path(db_path)) as db:
            return await db.list_alerts(status=status, severity=severity, group_type=group_type)

    alerts = asyncio.run(_list())

    if json_output:
        print(json.dumps([a.to_dict() for a in alerts], indent=2))
        return

    if not alerts:
        print("No alerts found")
        return

    console = Console()
    table = Table(title="Recurring Alerts")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Severity")
    table.add_column("Status", style="green")
    table.add_column("Group")
    table.add_column("Tickets", justify="right")
    table.add_column("Users", justify="right")
    table.add_column("Last Occurrence")

    for a in alerts:
        table.add_row(
            str(a.id),
            _severity_cell(a.severity),
            a.status.value,
            a.label,
            str(a.occurrence_count),
            str(a.affected_users),
            _fmt(a.last_occurrence),
        )

    console.print(table)


@alerts_app.command("show")
def show_alert(
    alert_id: int = typer.Argument(..., help="Alert ID to show"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
) -> None:
    """Show alert details including keywords and suggested action."""

    async def _show() -> RecurringAlert | None:
        async with AlertDB(_get_db_path(db_path)) as db:
            return await db.get_alert(alert_id)

    alert = asyncio.run(_show())
    if alert is None:
        print(f"Alert {alert_id} not found")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(alert.to_dict(), indent=2))
        return

    console = Console()
    metadata = f"""[bold]ID:[/bold] {alert.id}
[bold]Group:[/bold] {alert.label}
[bold]Severity:[/bold] {_severity_cell(alert.severity)}
[bold]Status:[/bold] {alert.status.value}
[bold]Occurrences:[/bold] {alert.occurrence_count}
[bold]Affected users:[/bold] {alert.affected_users}
[bold]First occurrence:[/bold] {_fmt(alert.first_occurrence)}
[bold]Last occurrence:[/bold] {_fmt(alert.last_occurrence)}
[bold]Keywords:[/bold] {', '.join(alert.keywords) or '-'}
[bold]Tickets:[/bold] {', '.join(alert.member_ticket_ids)}"""

    if alert.acknowledged_by:
        metadata += f"\n[bold]Acknowledged:[/bold] {alert.acknowledged_by} at {_fmt(alert.acknowledged_at)}"
    if alert.resolved_by:
        metadata += f"\n[bold]Resolved:[/bold] {alert.resolved_by} at {_fmt(alert.resolved_at)}"
    if alert.dismissed_by:
        metadata += f"\n[bold]Dismissed:[/bold] {alert.dismissed_by} at {_fmt(alert.dismissed_at)}"

    console.print(Panel(metadata, title=f"Alert {alert.id}", border_style="blue"))
    console.print(Panel(alert.suggested_action, title="Suggested action", border_style="green"))
    if alert.notes:
        console.print(Panel(alert.notes, title="Notes", border_style="yellow"))


def _run_action(
    alert_id: int,
    action: AlertAction,
    user: str,
    notes: str | None,
    db_path: Path | None,
) -> RecurringAlert:
    """Apply a lifecycle action, exiting with status 1 on failure."""

    async def _apply() -> RecurringAlert:
        async with AlertDB(_get_db_path(db_path)) as db:
            return await AlertLifecycle(db).apply(alert_id, action, user, notes)

    try:
        return asyncio.run(_apply())
    except RecurringAlertError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)


@alerts_app.command("acknowledge")
def acknowledge_alert(
    alert_id: int = typer.Argument(..., help="Alert ID to acknowledge"),
    user: str = typer.Option(..., "--user", "-u", envvar="RECURRING_USER", help="Acting agent"),
    notes: str = typer.Option(None, "--notes", "-n", help="Optional notes"),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
) -> None:
    """Take ownership of an active alert."""
    alert = _run_action(alert_id, AlertAction.ACKNOWLEDGE, user, notes, db_path)
    print(f"Acknowledged alert {alert.id} ({alert.label})")


@alerts_app.command("resolve")
def resolve_alert(
    alert_id: int = typer.Argument(..., help="Alert ID to resolve"),
    user: str = typer.Option(..., "--user", "-u", envvar="RECURRING_USER", help="Acting agent"),
    notes: str = typer.Option(..., "--notes", "-n", help="What was done to fix the issue"),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
) -> None:
    """Close an alert as fixed."""
    alert = _run_action(alert_id, AlertAction.RESOLVE, user, notes, db_path)
    print(f"Resolved alert {alert.id} ({alert.label})")


@alerts_app.command("dismiss")
def dismiss_alert(
    alert_id: int = typer.Argument(..., help="Alert ID to dismiss"),
    user: str = typer.Option(..., "--user", "-u", envvar="RECURRING_USER", help="Acting agent"),
    notes: str = typer.Option(None, "--notes", "-n", help="Optional notes"),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
) -> None:
    """Close an alert as not actionable."""
    alert = _run_action(alert_id, AlertAction.DISMISS, user, notes, db_path)
    print(f"Dismissed alert {alert.id} ({alert.label})")


@alerts_app.command("stats")
def show_stats(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
) -> None:
    """Show alert counts."""

    async def _stats():
        async with AlertDB(_get_db_path(db_path)) as db:
            return await db.get_stats()

    stats = asyncio.run(_stats())

    if json_output:
        print(json.dumps(stats.model_dump(mode="json"), indent=2))
        return

    console = Console()
    table = Table(title="Alert Statistics")
    table.add_column("Metric")
    table.add_column("Count", justify="right", style="cyan")
    table.add_row("Total", str(stats.total))
    table.add_row("Active", str(stats.active))
    table.add_row("Acknowledged", str(stats.acknowledged))
    table.add_row("Resolved", str(stats.resolved))
    table.add_row("Dismissed", str(stats.dismissed))
    for group_type, count in sorted(stats.by_group_type.items()):
        table.add_row(f"Open by group: {group_type}", str(count))
    for severity, count in sorted(stats.by_severity.items()):
        table.add_row(f"Open by severity: {severity}", str(count))

    console.print(table)


@alerts_app.command("history")
def show_history(
    alert_id: int = typer.Argument(..., help="Alert ID"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    db_path: Path = typer.Option(None, "--db", envvar="RECURRING_DB_PATH", help="Path to alerts database"),
) -> None:
    """Show the audit trail of an alert."""

    async def _history():
        async with AlertDB(_get_db_path(db_path)) as db:
            service = AlertService(db, AlertLifecycle(db))
            return await service.get_audit_trail(alert_id)

    try:
        entries = asyncio.run(_history())
    except RecurringAlertError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        print(f"No history for alert {alert_id}")
        return

    console = Console()
    table = Table(title=f"Alert {alert_id} History")
    table.add_column("Time")
    table.add_column("Action", style="cyan")
    table.add_column("From")
    table.add_column("To", style="green")
    table.add_column("User")
    table.add_column("Notes")

    for entry in entries:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.action.value,
            entry.from_status.value,
            entry.to_status.value,
            entry.acting_user_id,
            entry.notes or "",
        )

    console.print(table)
