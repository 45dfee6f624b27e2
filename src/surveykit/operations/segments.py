"""Segment CRUD operations.

A segment's filters are embedded in every survey that references it, so
any segment mutation also invalidates each referencing survey.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from surveykit.cache.tags import SEGMENT_TAGS, SURVEY_TAGS
from surveykit.exceptions import ResourceNotFoundError
from surveykit.models.filters import dump_filters
from surveykit.operations.mappers import segment_from_row
from surveykit.storage.schema import SegmentRow

if TYPE_CHECKING:
    from surveykit.cache.results import PendingInvalidation
    from surveykit.models.segment import Segment, SegmentCreateInput, SegmentUpdateInput
    from surveykit.storage.store import UnitOfWork

logger = logging.getLogger(__name__)


def get_segment(uow: UnitOfWork, segment_id: str) -> Segment:
    row = uow.segments.get(segment_id)
    if row is None:
        raise ResourceNotFoundError("Segment", segment_id)
    return segment_from_row(row)


def get_segments(uow: UnitOfWork, environment_id: str) -> list[Segment]:
    return [segment_from_row(row) for row in uow.segments.list_by_environment(environment_id)]


def create_segment(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    body: SegmentCreateInput,
    *,
    now: datetime,
) -> Segment:
    """Create a segment, optionally connecting it to ``body.survey_id``.

    Raises:
        ResourceNotFoundError: If ``body.survey_id`` names an unknown survey.
    """
    row = SegmentRow(
        id=uuid.uuid4().hex,
        created_at=now,
        updated_at=now,
        title=body.title,
        description=body.description,
        environment_id=body.environment_id,
        is_private=body.is_private,
        filters=dump_filters(body.filters),
    )
    uow.segments.save(row)

    if body.survey_id:
        survey = uow.surveys.get(body.survey_id)
        if survey is None:
            raise ResourceNotFoundError("Survey", body.survey_id)
        if survey.segment_id:
            pending.add(SEGMENT_TAGS.for_mutation(id=survey.segment_id))
            pending.add(SURVEY_TAGS.for_mutation(segment_id=survey.segment_id))
        survey.segment = row
        uow.surveys.save(survey)
        pending.add(SURVEY_TAGS.for_mutation(
            id=survey.id, environment_id=survey.environment_id, segment_id=row.id
        ))

    pending.add(SEGMENT_TAGS.for_mutation(id=row.id, environment_id=row.environment_id))
    return segment_from_row(row)


def update_segment(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    segment_id: str,
    body: SegmentUpdateInput,
    *,
    now: datetime,
) -> Segment:
    """Apply the non-``None`` fields of *body*.

    ``body.surveys``, when given, replaces the set of connected surveys.

    Raises:
        ResourceNotFoundError: If the segment or a listed survey is unknown.
    """
    row = uow.segments.get(segment_id)
    if row is None:
        raise ResourceNotFoundError("Segment", segment_id)

    touched = {survey.id: survey.environment_id for survey in row.surveys}

    if body.title is not None:
        row.title = body.title
    if body.description is not None:
        row.description = body.description
    if body.is_private is not None:
        row.is_private = body.is_private
    if body.filters is not None:
        row.filters = dump_filters(body.filters)

    if body.surveys is not None:
        wanted = []
        for survey_id in body.surveys:
            survey = uow.surveys.get(survey_id)
            if survey is None:
                raise ResourceNotFoundError("Survey", survey_id)
            wanted.append(survey)
        for survey in list(row.surveys):
            if survey.id not in body.surveys:
                survey.segment = None
        for survey in wanted:
            if survey.segment_id and survey.segment_id != row.id:
                pending.add(SEGMENT_TAGS.for_mutation(id=survey.segment_id))
                pending.add(SURVEY_TAGS.for_mutation(segment_id=survey.segment_id))
            survey.segment = row
            touched[survey.id] = survey.environment_id

    row.updated_at = now
    uow.segments.save(row)

    pending.add(SEGMENT_TAGS.for_mutation(id=row.id, environment_id=row.environment_id))
    pending.add(SURVEY_TAGS.for_mutation(segment_id=row.id))
    for survey_id, environment_id in touched.items():
        pending.add(SURVEY_TAGS.for_mutation(id=survey_id, environment_id=environment_id))
    return segment_from_row(row)


def delete_segment(uow: UnitOfWork, pending: PendingInvalidation, segment_id: str) -> Segment:
    """Delete a segment, disconnecting every survey that used it.

    Raises:
        ResourceNotFoundError: If the segment is unknown.
    """
    row = uow.segments.get(segment_id)
    if row is None:
        raise ResourceNotFoundError("Segment", segment_id)

    deleted = segment_from_row(row)
    for survey in row.surveys:
        pending.add(SURVEY_TAGS.for_mutation(id=survey.id, environment_id=survey.environment_id))
    uow.segments.delete(row)
    logger.info("Deleted segment %s (%d surveys disconnected)", segment_id, len(deleted.surveys))

    pending.add(SEGMENT_TAGS.for_mutation(id=segment_id, environment_id=deleted.environment_id))
    pending.add(SURVEY_TAGS.for_mutation(segment_id=segment_id))
    return deleted
