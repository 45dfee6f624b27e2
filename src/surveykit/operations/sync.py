"""Sync query: the surveys a person may be shown right now.

Reads the environment's surveys and the person's history from the store
and runs them through :class:`surveykit.eligibility.EligibilityPipeline`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Literal

from surveykit.cache.tags import ACTION_TAGS, DISPLAY_TAGS, PERSON_TAGS, PRODUCT_TAGS, SURVEY_TAGS
from surveykit.eligibility import EligibilityPipeline
from surveykit.exceptions import ResourceNotFoundError
from surveykit.models.person import LEGACY_PERSON_ID, Person
from surveykit.operations.mappers import display_from_row, person_from_row, survey_from_row
from surveykit.segments.evaluator import SegmentContext

if TYPE_CHECKING:
    from surveykit.models.survey import Survey
    from surveykit.segments.modes import EvaluationMode
    from surveykit.storage.store import UnitOfWork

logger = logging.getLogger(__name__)

DeviceType = Literal["phone", "desktop"]


def sync_cache_key(
    environment_id: str,
    person_id: str,
    device_type: str,
    mode: EvaluationMode,
) -> str:
    flavor = "legacy" if mode.is_legacy else "structured"
    return f"getSyncSurveys-{environment_id}-{person_id}-{device_type}-{flavor}"


def sync_tags(environment_id: str, person_id: str) -> frozenset[str]:
    """Tags a sync result depends on.

    Any change to the environment's surveys or product, or to this
    person, their displays or their actions, makes it stale.
    """
    return frozenset({
        PERSON_TAGS.by_environment_id(environment_id),
        PERSON_TAGS.by_id(person_id),
        DISPLAY_TAGS.by_person_id(person_id),
        ACTION_TAGS.by_person_id(person_id),
        SURVEY_TAGS.by_environment_id(environment_id),
        PRODUCT_TAGS.by_environment_id(environment_id),
    })


def _load_person(uow: UnitOfWork, person_id: str, now: datetime) -> Person:
    if person_id == LEGACY_PERSON_ID:
        return Person.legacy(now)
    row = uow.people.get(person_id)
    if row is None:
        raise ResourceNotFoundError("Person", person_id)
    return person_from_row(row)


def get_sync_surveys(
    uow: UnitOfWork,
    environment_id: str,
    person_id: str,
    *,
    device_type: DeviceType = "desktop",
    mode: EvaluationMode,
    now: datetime,
) -> list[Survey]:
    """Eligible surveys for a person, in store order.

    Raises:
        ResourceNotFoundError: If the environment has no product or the
            person is unknown.
        ConfigurationError: If a candidate survey has an unknown display
            option.
    """
    product = uow.products.get_by_environment_id(environment_id)
    if product is None:
        raise ResourceNotFoundError("Product", environment_id)
    person = _load_person(uow, person_id, now)

    surveys = [survey_from_row(row) for row in uow.surveys.list_by_environment(environment_id)]
    if person.id == LEGACY_PERSON_ID:
        displays = []
    else:
        displays = [display_from_row(row) for row in uow.displays.list_by_person(person.id)]

    def load_context() -> SegmentContext:
        actions = [] if person.id == LEGACY_PERSON_ID else uow.actions.list_by_person(person.id)
        return SegmentContext(
            attributes=person.attributes,
            action_class_ids=frozenset(action.action_class_id for action in actions),
            device_type=device_type,
            environment_id=environment_id,
            person_id=person.id,
            user_id=person.external_id,
        )

    pipeline = EligibilityPipeline(
        displays=displays,
        product_recontact_days=product.recontact_days,
        mode=mode,
        load_context=load_context,
        now=now,
    )
    eligible = pipeline.run(surveys)
    logger.debug(
        "Sync for person %s in environment %s: %d surveys", person.id, environment_id, len(eligible)
    )
    return eligible
