"""People and their interaction history.

Persons, the actions they perform, the displays they are shown, and
their responses.  Display and action writes invalidate the per-person
tags that sync results are cached under.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping

from pydantic import TypeAdapter, ValidationError

from surveykit.cache.tags import ACTION_TAGS, DISPLAY_TAGS, PERSON_TAGS, RESPONSE_TAGS
from surveykit.exceptions import InvalidInputError, ResourceNotFoundError
from surveykit.models.filters import AttributeValue
from surveykit.operations.mappers import (
    action_from_row,
    display_from_row,
    person_from_row,
    response_from_row,
)
from surveykit.storage.schema import ActionRow, DisplayRow, PersonRow, ResponseRow

if TYPE_CHECKING:
    from surveykit.cache.results import PendingInvalidation
    from surveykit.models.person import Action, Display, Person, Response
    from surveykit.storage.store import UnitOfWork

logger = logging.getLogger(__name__)

_attributes_adapter: TypeAdapter[dict[str, AttributeValue]] = TypeAdapter(
    dict[str, AttributeValue]
)


def _validate_attributes(attributes: Mapping[str, Any]) -> dict[str, AttributeValue]:
    try:
        return _attributes_adapter.validate_python(dict(attributes))
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid person attributes: {exc}") from exc


def _require_person(uow: UnitOfWork, person_id: str) -> PersonRow:
    row = uow.people.get(person_id)
    if row is None:
        raise ResourceNotFoundError("Person", person_id)
    return row


# ------------------------------------------------------------------
# Persons
# ------------------------------------------------------------------


def create_person(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    environment_id: str,
    *,
    user_id: str | None = None,
    attributes: Mapping[str, Any] | None = None,
    now: datetime,
) -> Person:
    """Create a person in an environment.

    Raises:
        ResourceNotFoundError: If the environment is unknown.
        InvalidInputError: If an attribute value is not a scalar.
    """
    if uow.products.get_environment(environment_id) is None:
        raise ResourceNotFoundError("Environment", environment_id)
    row = PersonRow(
        id=uuid.uuid4().hex,
        created_at=now,
        environment_id=environment_id,
        user_id=user_id,
        attributes=_validate_attributes(attributes or {}),
    )
    uow.people.save(row)
    pending.add(PERSON_TAGS.for_mutation(id=row.id, environment_id=environment_id))
    return person_from_row(row)


def get_person(uow: UnitOfWork, person_id: str) -> Person | None:
    row = uow.people.get(person_id)
    return person_from_row(row) if row is not None else None


def get_person_by_user_id(uow: UnitOfWork, environment_id: str, user_id: str) -> Person | None:
    row = uow.people.get_by_user_id(environment_id, user_id)
    return person_from_row(row) if row is not None else None


def update_person_attributes(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    person_id: str,
    attributes: Mapping[str, Any],
) -> Person:
    """Merge *attributes* into the person's attributes. ``None`` values remove a key."""
    row = _require_person(uow, person_id)
    merged = dict(row.attributes or {})
    for key, value in attributes.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    row.attributes = _validate_attributes(merged)
    uow.people.save(row)
    pending.add(PERSON_TAGS.for_mutation(id=row.id, environment_id=row.environment_id))
    return person_from_row(row)


# ------------------------------------------------------------------
# Actions
# ------------------------------------------------------------------


def record_action(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    person_id: str,
    action_class_id: str,
    *,
    now: datetime,
) -> Action:
    person = _require_person(uow, person_id)
    if uow.action_classes.get(action_class_id) is None:
        raise ResourceNotFoundError("ActionClass", action_class_id)
    row = ActionRow(
        id=uuid.uuid4().hex,
        created_at=now,
        person_id=person.id,
        action_class_id=action_class_id,
    )
    uow.actions.save(row)
    pending.add(ACTION_TAGS.for_mutation(person_id=person.id, environment_id=person.environment_id))
    return action_from_row(row)


def get_actions_by_person_id(uow: UnitOfWork, person_id: str) -> list[Action]:
    return [action_from_row(row) for row in uow.actions.list_by_person(person_id)]


# ------------------------------------------------------------------
# Displays and responses
# ------------------------------------------------------------------


def create_display(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    survey_id: str,
    person_id: str | None = None,
    *,
    now: datetime,
) -> Display:
    """Record that a survey was shown, to a known person or anonymously."""
    if uow.surveys.get(survey_id) is None:
        raise ResourceNotFoundError("Survey", survey_id)
    if person_id is not None:
        _require_person(uow, person_id)
    row = DisplayRow(
        id=uuid.uuid4().hex,
        created_at=now,
        person_id=person_id,
        survey_id=survey_id,
    )
    uow.displays.save(row)
    pending.add(DISPLAY_TAGS.for_mutation(id=row.id, person_id=person_id, survey_id=survey_id))
    return display_from_row(row)


def get_displays_by_person_id(uow: UnitOfWork, person_id: str) -> list[Display]:
    """The person's displays, newest first."""
    return [display_from_row(row) for row in uow.displays.list_by_person(person_id)]


def create_response(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    survey_id: str,
    *,
    person_id: str | None = None,
    finished: bool = False,
    data: Mapping[str, Any] | None = None,
    now: datetime,
) -> Response:
    survey = uow.surveys.get(survey_id)
    if survey is None:
        raise ResourceNotFoundError("Survey", survey_id)
    if person_id is not None:
        _require_person(uow, person_id)
    row = ResponseRow(
        id=uuid.uuid4().hex,
        created_at=now,
        survey_id=survey_id,
        person_id=person_id,
        finished=finished,
        data=dict(data or {}),
    )
    uow.responses.save(row)
    pending.add(RESPONSE_TAGS.for_mutation(
        id=row.id,
        survey_id=survey_id,
        person_id=person_id,
        environment_id=survey.environment_id,
    ))
    return response_from_row(row)


def update_display_response(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    display_id: str,
    response_id: str,
) -> Display:
    """Attach a response to a display, which ends ``displayMultiple`` for that survey."""
    row = uow.displays.get(display_id)
    if row is None:
        raise ResourceNotFoundError("Display", display_id)
    if uow.responses.get(response_id) is None:
        raise ResourceNotFoundError("Response", response_id)
    row.response_id = response_id
    uow.displays.save(row)
    pending.add(DISPLAY_TAGS.for_mutation(
        id=row.id, person_id=row.person_id, survey_id=row.survey_id
    ))
    return display_from_row(row)
