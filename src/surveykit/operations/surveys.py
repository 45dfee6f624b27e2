"""Survey CRUD operations.

Each function runs inside a caller-provided UnitOfWork.  Mutations also
take a PendingInvalidation and record every cache tag they make stale;
the caller flushes it once the transaction has committed.

Triggers are addressed by action-class *name* in the read model and
stored as bindings to action-class rows.  Language bindings and trigger
bindings are owned by the survey and go away with it.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable

from surveykit.cache.tags import RESPONSE_TAGS, SEGMENT_TAGS, SURVEY_TAGS
from surveykit.exceptions import InvalidInputError, ResourceNotFoundError
from surveykit.models.config import ITEMS_PER_PAGE
from surveykit.models.filters import dump_filters
from surveykit.models.survey import (
    DisplayOption,
    Survey,
    SurveyFilterCriteria,
    SurveyInput,
    SurveyLanguage,
    SurveyStatus,
    SurveyType,
    resolve_status,
)
from surveykit.operations.mappers import survey_from_row
from surveykit.storage.schema import (
    ActionClassRow,
    SegmentRow,
    SurveyLanguageRow,
    SurveyRow,
    SurveyTriggerRow,
)

if TYPE_CHECKING:
    from surveykit.cache.results import PendingInvalidation
    from surveykit.storage.store import UnitOfWork

logger = logging.getLogger(__name__)

# Survey fields copied verbatim from an update body onto the row.
_UPDATABLE_FIELDS = (
    "name",
    "created_by",
    "welcome_card",
    "thank_you_card",
    "hidden_fields",
    "recontact_days",
    "auto_close",
    "run_on_date",
    "close_on_date",
    "delay",
    "display_percentage",
    "auto_complete",
    "redirect_url",
    "single_use",
    "pin",
    "result_share_key",
    "inline_triggers",
)


# ------------------------------------------------------------------
# Reads
# ------------------------------------------------------------------


def get_survey(uow: UnitOfWork, survey_id: str) -> Survey | None:
    row = uow.surveys.get(survey_id)
    return survey_from_row(row) if row is not None else None


def get_surveys(
    uow: UnitOfWork,
    environment_id: str,
    *,
    limit: int | None = None,
    offset: int | None = None,
    criteria: SurveyFilterCriteria | None = None,
) -> list[Survey]:
    rows = uow.surveys.list_by_environment(
        environment_id, criteria=criteria, limit=limit, offset=offset
    )
    return [survey_from_row(row) for row in rows]


def get_surveys_by_action_class_id(
    uow: UnitOfWork,
    action_class_id: str,
    *,
    page: int | None = None,
    items_per_page: int = ITEMS_PER_PAGE,
) -> list[Survey]:
    """Surveys triggered by an action class; all of them when *page* is None.

    Pages are 1-based.
    """
    limit = offset = None
    if page:
        limit = items_per_page
        offset = items_per_page * (page - 1)
    rows = uow.surveys.list_by_action_class(action_class_id, limit=limit, offset=offset)
    return [survey_from_row(row) for row in rows]


def get_surveys_by_segment_id(uow: UnitOfWork, segment_id: str) -> list[Survey]:
    return [survey_from_row(row) for row in uow.surveys.list_by_segment(segment_id)]


def get_survey_count(uow: UnitOfWork, environment_id: str) -> int:
    return uow.surveys.count_by_environment(environment_id)


def get_survey_id_by_result_share_key(uow: UnitOfWork, result_share_key: str) -> str | None:
    row = uow.surveys.get_by_result_share_key(result_share_key)
    return row.id if row is not None else None


# ------------------------------------------------------------------
# Mutations
# ------------------------------------------------------------------


def create_survey(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    environment_id: str,
    body: SurveyInput,
    *,
    now: datetime,
) -> Survey:
    """Create a survey in an environment.

    Raises:
        InvalidInputError: If the body has both ``triggers`` and
            ``inline_triggers``, or names an unknown action class.
        ResourceNotFoundError: If the environment or a language is unknown.
    """
    if body.triggers and body.inline_triggers:
        raise InvalidInputError("Survey body cannot have both triggers and inline_triggers")
    if uow.products.get_environment(environment_id) is None:
        raise ResourceNotFoundError("Environment", environment_id)

    thank_you_card = dict(body.thank_you_card)
    if body.type == SurveyType.WEB:
        thank_you_card.pop("buttonLabel", None)
        thank_you_card.pop("buttonLink", None)

    row = SurveyRow(
        id=uuid.uuid4().hex,
        created_at=now,
        updated_at=now,
        name=body.name,
        type=body.type.value,
        environment_id=environment_id,
        created_by=body.created_by,
        status=resolve_status(body.status, body.run_on_date, now).value,
        welcome_card=body.welcome_card,
        questions=_strip_drafts(body.questions),
        thank_you_card=thank_you_card,
        hidden_fields=body.hidden_fields,
        display_option=body.display_option.value,
        recontact_days=body.recontact_days,
        auto_close=body.auto_close,
        run_on_date=body.run_on_date,
        close_on_date=body.close_on_date,
        delay=body.delay,
        display_percentage=body.display_percentage,
        auto_complete=body.auto_complete,
        redirect_url=body.redirect_url,
        single_use=body.single_use,
        pin=body.pin,
        inline_triggers=body.inline_triggers,
    )

    action_classes = _resolve_action_classes(uow, environment_id, body.triggers or [])
    row.triggers = [
        SurveyTriggerRow(action_class=action_classes[name])
        for name in _unique(body.triggers or [])
    ]
    for binding in body.languages:
        language = uow.languages.get(binding.language_id)
        if language is None:
            raise ResourceNotFoundError("Language", binding.language_id)
        row.languages.append(
            SurveyLanguageRow(language=language, default=binding.default, enabled=binding.enabled)
        )

    uow.surveys.save(row)
    logger.info("Created survey %s in environment %s", row.id, environment_id)

    pending.add(SURVEY_TAGS.for_mutation(id=row.id, environment_id=environment_id))
    for action_class in action_classes.values():
        pending.add(SURVEY_TAGS.for_mutation(action_class_id=action_class.id))
    return survey_from_row(row)


def update_survey(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    survey: Survey,
    *,
    now: datetime,
) -> Survey:
    """Apply a full survey body to the stored survey.

    Languages, triggers, the attached segment and the scalar fields are
    all updated in the caller's transaction.  The status is reconciled
    with ``run_on_date`` (see :func:`resolve_status`).

    Raises:
        ResourceNotFoundError: If the survey, its segment or a language
            is unknown.
        InvalidInputError: If a trigger names an unknown action class or
            the display option is unknown.
    """
    try:
        display_option = DisplayOption(survey.display_option)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown display option: {survey.display_option!r}") from exc

    row = uow.surveys.get(survey.id)
    if row is None:
        raise ResourceNotFoundError("Survey", survey.id)

    _sync_languages(uow, row, survey.languages)
    _sync_triggers(uow, pending, row, survey.triggers)

    if survey.segment is not None:
        segment_row = uow.segments.get(survey.segment.id)
        if segment_row is None:
            raise ResourceNotFoundError("Segment", survey.segment.id)
        segment_row.title = survey.segment.title
        segment_row.description = survey.segment.description
        segment_row.is_private = survey.segment.is_private
        segment_row.filters = dump_filters(survey.segment.filters)
        segment_row.updated_at = now
        uow.segments.save(segment_row)
        previous = row.segment
        if previous is not None and previous.id != segment_row.id:
            row.segment = segment_row
            if previous.is_private and not previous.surveys:
                logger.debug("Deleting private segment %s replaced on survey %s", previous.id, row.id)
                uow.segments.delete(previous)
            _invalidate_segment(pending, previous.id, row.environment_id)
        elif previous is None:
            row.segment = segment_row
        _invalidate_segment(pending, segment_row.id, row.environment_id)

    for name in _UPDATABLE_FIELDS:
        setattr(row, name, getattr(survey, name))
    row.display_option = display_option.value
    row.type = survey.type.value
    row.questions = _strip_drafts(survey.questions)
    row.status = resolve_status(survey.status, survey.run_on_date, now).value
    row.updated_at = now
    uow.surveys.save(row)

    pending.add(SURVEY_TAGS.for_mutation(
        id=row.id,
        environment_id=row.environment_id,
        segment_id=row.segment_id,
    ))
    return survey_from_row(row)


def delete_survey(uow: UnitOfWork, pending: PendingInvalidation, survey_id: str) -> Survey:
    """Delete a survey with its bindings.

    A private segment is deleted along with its survey; a shared one is
    only disconnected.

    Raises:
        ResourceNotFoundError: If the survey is unknown.
    """
    row = uow.surveys.get(survey_id)
    if row is None:
        raise ResourceNotFoundError("Survey", survey_id)

    deleted = survey_from_row(row)
    environment_id = row.environment_id
    action_class_ids = [trigger.action_class_id for trigger in row.triggers]
    segment_row = row.segment

    if segment_row is not None:
        row.segment = None
    uow.surveys.delete(row)

    if segment_row is not None:
        if segment_row.is_private and not segment_row.surveys:
            logger.debug("Deleting private segment %s of survey %s", segment_row.id, survey_id)
            uow.segments.delete(segment_row)
        _invalidate_segment(pending, segment_row.id, environment_id)

    pending.add(SURVEY_TAGS.for_mutation(id=survey_id, environment_id=environment_id))
    pending.add(RESPONSE_TAGS.for_mutation(survey_id=survey_id, environment_id=environment_id))
    for action_class_id in action_class_ids:
        pending.add(SURVEY_TAGS.for_mutation(action_class_id=action_class_id))
    return deleted


def duplicate_survey(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    environment_id: str,
    survey_id: str,
    user_id: str | None,
    *,
    now: datetime,
) -> Survey:
    """Copy a survey as a new draft named ``"<name> (copy)"``.

    Triggers are rebound by name in *environment_id*.  A private segment
    is copied into a new private segment; a shared one is reused.

    Raises:
        ResourceNotFoundError: If the survey is unknown.
        InvalidInputError: If a trigger has no action class of that name
            in the target environment.
    """
    source = uow.surveys.get(survey_id)
    if source is None:
        raise ResourceNotFoundError("Survey", survey_id)

    trigger_names = [trigger.action_class.name for trigger in source.triggers]
    action_classes = _resolve_action_classes(uow, environment_id, trigger_names)

    row = SurveyRow(
        id=uuid.uuid4().hex,
        created_at=now,
        updated_at=now,
        name=f"{source.name} (copy)",
        type=source.type,
        environment_id=environment_id,
        created_by=user_id,
        status=SurveyStatus.DRAFT.value,
        welcome_card=copy.deepcopy(source.welcome_card),
        questions=copy.deepcopy(source.questions),
        thank_you_card=copy.deepcopy(source.thank_you_card),
        hidden_fields=copy.deepcopy(source.hidden_fields),
        display_option=source.display_option,
        recontact_days=source.recontact_days,
        auto_close=source.auto_close,
        run_on_date=source.run_on_date,
        close_on_date=source.close_on_date,
        delay=source.delay,
        display_percentage=source.display_percentage,
        auto_complete=source.auto_complete,
        redirect_url=source.redirect_url,
        single_use=copy.deepcopy(source.single_use),
        pin=source.pin,
        inline_triggers=copy.deepcopy(source.inline_triggers),
    )
    row.triggers = [SurveyTriggerRow(action_class=action_classes[name]) for name in trigger_names]
    row.languages = [
        SurveyLanguageRow(language=binding.language, default=binding.default, enabled=binding.enabled)
        for binding in source.languages
    ]

    if source.segment is not None:
        if source.segment.is_private:
            segment_row = SegmentRow(
                id=uuid.uuid4().hex,
                created_at=now,
                updated_at=now,
                title=row.id,
                environment_id=environment_id,
                is_private=True,
                filters=copy.deepcopy(source.segment.filters),
            )
            uow.segments.save(segment_row)
        else:
            segment_row = source.segment
        row.segment = segment_row
        _invalidate_segment(pending, segment_row.id, environment_id)

    uow.surveys.save(row)
    logger.info("Duplicated survey %s as %s", survey_id, row.id)

    pending.add(SURVEY_TAGS.for_mutation(id=row.id, environment_id=environment_id))
    for action_class in action_classes.values():
        pending.add(SURVEY_TAGS.for_mutation(action_class_id=action_class.id))
    return survey_from_row(row)


def load_new_segment_in_survey(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    survey_id: str,
    segment_id: str,
    *,
    now: datetime,
) -> Survey:
    """Point a survey at another (existing) segment.

    Raises:
        ResourceNotFoundError: If the survey or the segment is unknown.
    """
    row = uow.surveys.get(survey_id)
    if row is None:
        raise ResourceNotFoundError("Survey", survey_id)
    segment_row = uow.segments.get(segment_id)
    if segment_row is None:
        raise ResourceNotFoundError("Segment", segment_id)

    previous_segment_id = row.segment_id
    row.segment = segment_row
    row.updated_at = now
    uow.surveys.save(row)

    _invalidate_segment(pending, previous_segment_id, row.environment_id)
    _invalidate_segment(pending, segment_id, row.environment_id)
    # Every survey on the segment embeds its list of survey ids.
    for survey in segment_row.surveys:
        pending.add(SURVEY_TAGS.for_mutation(id=survey.id))
    pending.add(SURVEY_TAGS.for_mutation(id=survey_id, environment_id=row.environment_id))
    return survey_from_row(row)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _unique(names: Iterable[str]) -> list[str]:
    return [name for name in dict.fromkeys(names) if name]


def _strip_drafts(questions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{k: v for k, v in q.items() if k != "isDraft"} for q in questions]


def _resolve_action_classes(
    uow: UnitOfWork,
    environment_id: str,
    names: Iterable[str],
) -> dict[str, ActionClassRow]:
    resolved: dict[str, ActionClassRow] = {}
    for name in _unique(names):
        action_class = uow.action_classes.get_by_name(environment_id, name)
        if action_class is None:
            raise InvalidInputError(
                f"Unknown trigger {name!r} in environment {environment_id}"
            )
        resolved[name] = action_class
    return resolved


def _invalidate_segment(
    pending: PendingInvalidation,
    segment_id: str | None,
    environment_id: str,
) -> None:
    if not segment_id:
        return
    pending.add(SEGMENT_TAGS.for_mutation(id=segment_id, environment_id=environment_id))
    pending.add(SURVEY_TAGS.for_mutation(segment_id=segment_id))


def _sync_triggers(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    row: SurveyRow,
    names: list[str],
) -> None:
    """Diff trigger names against the current bindings and apply the change."""
    current = [trigger.action_class.name for trigger in row.triggers]
    added = [name for name in _unique(names) if name not in current]
    removed = [name for name in current if name not in names]
    if not added and not removed:
        return

    action_classes = _resolve_action_classes(uow, row.environment_id, added)
    for trigger in list(row.triggers):
        if trigger.action_class.name in removed:
            pending.add(SURVEY_TAGS.for_mutation(action_class_id=trigger.action_class_id))
            row.triggers.remove(trigger)
    for name in added:
        row.triggers.append(SurveyTriggerRow(action_class=action_classes[name]))
        pending.add(SURVEY_TAGS.for_mutation(action_class_id=action_classes[name].id))


def _sync_languages(uow: UnitOfWork, row: SurveyRow, languages: list[SurveyLanguage]) -> None:
    """Reconcile language bindings with the body.

    A body with a single language is not multi-lingual: every binding
    is dropped, as with an empty list.
    """
    wanted = [lang.language.id for lang in languages] if len(languages) > 1 else []
    default_id = next((lang.language.id for lang in languages if lang.default), None)
    enabled_ids = {lang.language.id for lang in languages if lang.enabled}

    for binding in list(row.languages):
        if binding.language_id not in wanted:
            row.languages.remove(binding)
            continue
        binding.default = binding.language_id == default_id
        binding.enabled = binding.language_id in enabled_ids

    current = {binding.language_id for binding in row.languages}
    for language_id in wanted:
        if language_id in current:
            continue
        language = uow.languages.get(language_id)
        if language is None:
            raise ResourceNotFoundError("Language", language_id)
        row.languages.append(
            SurveyLanguageRow(
                language=language,
                default=language_id == default_id,
                enabled=language_id in enabled_ids,
            )
        )
