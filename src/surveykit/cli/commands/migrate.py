"""surveykit migrate-web-surveys -- split legacy web surveys into app and website."""

from __future__ import annotations

import click

from surveykit.cli.formatting import format_migration_summary


@click.command("migrate-web-surveys")
@click.pass_context
def migrate_web_surveys(ctx: click.Context) -> None:
    """Reclassify every ``web`` survey as ``app`` or ``website``.

    A survey whose latest response came from a known person becomes
    ``app``; all others become ``website`` and lose their segment.
    Runs in a single transaction: either every survey migrates or none.
    """
    from surveykit.cli import _service_session

    with _service_session(ctx) as (service, console):
        summary = service.migrate_web_surveys()
        format_migration_summary(summary, console)
