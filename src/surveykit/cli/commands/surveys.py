"""surveykit surveys -- list the surveys of an environment."""

from __future__ import annotations

import click

from surveykit.cli.formatting import format_surveys
from surveykit.models.survey import SurveyFilterCriteria, SurveyStatus, SurveyType


@click.command()
@click.argument("environment_id")
@click.option(
    "--status",
    "statuses",
    multiple=True,
    type=click.Choice([s.value for s in SurveyStatus]),
    help="Only surveys with this status (repeatable).",
)
@click.option(
    "--type",
    "types",
    multiple=True,
    type=click.Choice([t.value for t in SurveyType]),
    help="Only surveys of this type (repeatable).",
)
@click.option("--name", default=None, help="Case-insensitive name substring.")
@click.option(
    "--sort-by",
    type=click.Choice(["createdAt", "updatedAt", "name"]),
    default=None,
    help="Sort order (default: creation order).",
)
@click.option("--limit", type=int, default=None, help="Maximum number of surveys.")
@click.option("--offset", type=int, default=None, help="Number of surveys to skip.")
@click.pass_context
def surveys(
    ctx: click.Context,
    environment_id: str,
    statuses: tuple[str, ...],
    types: tuple[str, ...],
    name: str | None,
    sort_by: str | None,
    limit: int | None,
    offset: int | None,
) -> None:
    """List surveys in ENVIRONMENT_ID."""
    from surveykit.cli import _service_session

    criteria = SurveyFilterCriteria(
        name=name,
        status=[SurveyStatus(s) for s in statuses] or None,
        type=[SurveyType(t) for t in types] or None,
        sort_by=sort_by,
    )
    with _service_session(ctx) as (service, console):
        found = service.get_surveys(environment_id, limit, offset, criteria)
        format_surveys(found, console)
        console.print(f"[dim]{len(found)} of {service.get_survey_count(environment_id)} surveys[/dim]")
