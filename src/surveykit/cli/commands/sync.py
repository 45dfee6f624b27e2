"""surveykit sync -- show the surveys a person would receive."""

from __future__ import annotations

import click

from surveykit.cli.formatting import format_surveys


@click.command()
@click.argument("environment_id")
@click.argument("person_id")
@click.option(
    "--device",
    "device_type",
    type=click.Choice(["phone", "desktop"]),
    default="desktop",
    show_default=True,
    help="Device type the request comes from.",
)
@click.option(
    "--version",
    "version",
    default=None,
    help="SDK protocol version. Omit to evaluate as a legacy SDK.",
)
@click.option("--json", "as_json", is_flag=True, help="Print surveys as JSON.")
@click.pass_context
def sync(
    ctx: click.Context,
    environment_id: str,
    person_id: str,
    device_type: str,
    version: str | None,
    as_json: bool,
) -> None:
    """List the surveys PERSON_ID is eligible for in ENVIRONMENT_ID.

    Use ``legacy`` as PERSON_ID for an anonymous person.
    """
    from surveykit.cli import _service_session

    with _service_session(ctx) as (service, console):
        surveys = service.get_sync_surveys(
            environment_id,
            person_id,
            device_type=device_type,  # type: ignore[arg-type]
            version=version,
        )
        if as_json:
            click.echo("[" + ",".join(s.model_dump_json() for s in surveys) + "]")
        else:
            format_surveys(surveys, console)
