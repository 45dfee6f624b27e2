"""One-shot migration of legacy ``web`` surveys.

``web`` used to cover both surveys shown inside an app to identified
people and surveys shown anonymously on a website.  The migration
splits them:

- a survey whose latest response came from a known person becomes ``app``;
- every other survey becomes ``website``.  Website surveys cannot target
  segments, so a private segment is deleted and a shared one is
  disconnected, and any leftover private segment titled with the survey
  id is deleted too.

The whole migration is meant to run in one transaction; see
:meth:`surveykit.service.SurveyService.migrate_web_surveys`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from surveykit.cache.tags import SEGMENT_TAGS, SURVEY_TAGS
from surveykit.models.survey import SurveyType

if TYPE_CHECKING:
    from surveykit.cache.results import PendingInvalidation
    from surveykit.storage.store import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class MigrationSummary:
    """What :func:`migrate_web_surveys` changed."""

    to_app: list[str] = field(default_factory=list)
    to_website: list[str] = field(default_factory=list)
    segments_deleted: int = 0
    segments_disconnected: int = 0

    @property
    def total(self) -> int:
        return len(self.to_app) + len(self.to_website)


def migrate_web_surveys(uow: UnitOfWork, pending: PendingInvalidation) -> MigrationSummary:
    summary = MigrationSummary()

    for survey in uow.surveys.list_by_type(SurveyType.WEB.value):
        latest = uow.responses.get_latest_for_survey(survey.id)
        pending.add(SURVEY_TAGS.for_mutation(id=survey.id, environment_id=survey.environment_id))

        if latest is not None and latest.person_id:
            survey.type = SurveyType.APP.value
            uow.surveys.save(survey)
            summary.to_app.append(survey.id)
            continue

        survey.type = SurveyType.WEBSITE.value
        segment = survey.segment
        if segment is not None:
            pending.add(SEGMENT_TAGS.for_mutation(id=segment.id, environment_id=segment.environment_id))
            pending.add(SURVEY_TAGS.for_mutation(segment_id=segment.id))
            if segment.is_private:
                uow.segments.delete(segment)
                summary.segments_deleted += 1
            else:
                survey.segment = None
                summary.segments_disconnected += 1
        uow.surveys.save(survey)

        orphans = uow.segments.delete_private_by_title(survey.id)
        if orphans:
            pending.add(SEGMENT_TAGS.for_mutation(environment_id=survey.environment_id))
        summary.segments_deleted += orphans
        summary.to_website.append(survey.id)

    logger.info(
        "Migrated %d web surveys (%d app, %d website)",
        summary.total,
        len(summary.to_app),
        len(summary.to_website),
    )
    return summary
