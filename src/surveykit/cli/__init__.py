"""SurveyKit CLI -- terminal interface for survey maintenance and inspection.

This module is NEVER imported from surveykit/__init__.py.
It is only loaded via the ``surveykit`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install surveykit[cli]"
    ) from None

from surveykit.cli.formatting import format_error, get_console
from surveykit.exceptions import SurveyKitError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from surveykit.service import SurveyService


@click.group()
@click.option(
    "--db",
    default="surveykit.db",
    envvar="SURVEYKIT_DB",
    help="Path to the SQLite survey database.",
)
@click.option(
    "--db-url",
    default=None,
    envvar="SURVEYKIT_DB_URL",
    help="Full SQLAlchemy database URL (overrides --db).",
)
@click.pass_context
def cli(ctx: click.Context, db: str, db_url: str | None) -> None:
    """SurveyKit: surveys, segments and survey eligibility."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["db_url"] = db_url


def _get_service(ctx: click.Context) -> SurveyService:
    """Open a SurveyService from Click context."""
    from surveykit.models.config import ServiceConfig
    from surveykit.service import SurveyService

    config = ServiceConfig(db_path=ctx.obj["db_path"], db_url=ctx.obj["db_url"])
    return SurveyService.open(config=config)


@contextmanager
def _service_session(ctx: click.Context) -> Iterator[tuple[SurveyService, Console]]:
    """Open a service, yield (service, console), and close it on exit.

    SurveyKit errors are printed and turned into exit status 1.
    """
    console = get_console()
    try:
        service = _get_service(ctx)
        try:
            yield service, console
        finally:
            service.close()
    except SurveyKitError as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from surveykit.cli.commands.migrate import migrate_web_surveys  # noqa: E402
from surveykit.cli.commands.surveys import surveys  # noqa: E402
from surveykit.cli.commands.sync import sync  # noqa: E402

cli.add_command(migrate_web_surveys)
cli.add_command(surveys)
cli.add_command(sync)
