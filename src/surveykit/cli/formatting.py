"""Rich formatting helpers for the SurveyKit CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from surveykit.models.legacy import LegacySurvey
    from surveykit.models.survey import Survey
    from surveykit.operations.migration import MigrationSummary

_STATUS_STYLES = {
    "inProgress": "green",
    "scheduled": "cyan",
    "paused": "yellow",
    "completed": "dim",
    "draft": "dim",
}


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_surveys(surveys: Sequence[Survey | LegacySurvey], console: Console) -> None:
    """Display surveys as a compact table."""
    if not surveys:
        console.print("[dim]No surveys.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("ID", style="yellow")
    table.add_column("Name")
    table.add_column("Type", style="cyan")
    table.add_column("Status")
    table.add_column("Display")
    table.add_column("Recontact", justify="right")
    table.add_column("Segment", style="dim")

    for survey in surveys:
        status = survey.status.value
        style = _STATUS_STYLES.get(status, "")
        segment = getattr(survey, "segment", None)
        table.add_row(
            survey.id,
            escape(survey.name),
            survey.type.value,
            f"[{style}]{status}[/{style}]" if style else status,
            survey.display_option,
            "" if survey.recontact_days is None else str(survey.recontact_days),
            escape(segment.title) if segment is not None else "",
        )

    console.print(table)


def format_migration_summary(summary: MigrationSummary, console: Console) -> None:
    """Display the outcome of the web-survey migration."""
    if summary.total == 0:
        console.print("[dim]No web surveys to migrate.[/dim]")
        return

    console.print(f"Migrated [bold]{summary.total}[/bold] web surveys")
    console.print(f"  app:     [green]{len(summary.to_app)}[/green]")
    console.print(f"  website: [green]{len(summary.to_website)}[/green]")
    console.print(f"  Segments deleted:      {summary.segments_deleted}")
    console.print(f"  Segments disconnected: {summary.segments_disconnected}")


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
