"""Recurring CLI - detects recurring helpdesk issues."""

import typer

from recurring_core.cli.alerts import alerts_app
from recurring_core.cli.analysis import analysis_app

app = typer.Typer(
    name="recurring",
    help="Detect recurring helpdesk issues and manage their alerts",
    no_args_is_help=True,
)

# Add command groups
app.add_typer(alerts_app, name="alerts")
app.add_typer(analysis_app, name="analysis")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
