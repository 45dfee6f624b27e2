"""Row-to-model conversion.

ORM rows never leave a transaction; every operation converts them to
the pydantic read models here before returning.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from surveykit.models.environment import ActionClass, Environment, Product
from surveykit.models.person import Action, Display, Person, Response
from surveykit.models.segment import Segment
from surveykit.models.survey import Language, Survey, SurveyLanguage

if TYPE_CHECKING:
    from surveykit.storage.schema import (
        ActionClassRow,
        ActionRow,
        DisplayRow,
        EnvironmentRow,
        LanguageRow,
        PersonRow,
        ProductRow,
        ResponseRow,
        SegmentRow,
        SurveyRow,
    )


def segment_from_row(row: SegmentRow) -> Segment:
    return Segment(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        title=row.title,
        description=row.description,
        environment_id=row.environment_id,
        is_private=row.is_private,
        filters=row.filters,
        surveys=[survey.id for survey in row.surveys],
    )


def language_from_row(row: LanguageRow) -> Language:
    return Language(
        id=row.id,
        code=row.code,
        alias=row.alias,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def survey_from_row(row: SurveyRow) -> Survey:
    """Build the read model: trigger names in binding order, segment with its survey ids."""
    return Survey(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        name=row.name,
        type=row.type,
        environment_id=row.environment_id,
        created_by=row.created_by,
        status=row.status,
        welcome_card=row.welcome_card or {},
        questions=row.questions or [],
        thank_you_card=row.thank_you_card or {},
        hidden_fields=row.hidden_fields or {},
        display_option=row.display_option,
        recontact_days=row.recontact_days,
        auto_close=row.auto_close,
        run_on_date=row.run_on_date,
        close_on_date=row.close_on_date,
        delay=row.delay,
        display_percentage=row.display_percentage,
        auto_complete=row.auto_complete,
        redirect_url=row.redirect_url,
        single_use=row.single_use,
        pin=row.pin,
        result_share_key=row.result_share_key,
        segment=segment_from_row(row.segment) if row.segment is not None else None,
        triggers=[trigger.action_class.name for trigger in row.triggers],
        inline_triggers=row.inline_triggers,
        languages=[
            SurveyLanguage(
                language=language_from_row(binding.language),
                default=binding.default,
                enabled=binding.enabled,
            )
            for binding in row.languages
        ],
    )


def action_class_from_row(row: ActionClassRow) -> ActionClass:
    return ActionClass(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        environment_id=row.environment_id,
        name=row.name,
        description=row.description,
        type=row.type,
        no_code_config=row.no_code_config,
    )


def product_from_row(row: ProductRow) -> Product:
    return Product(
        id=row.id,
        created_at=row.created_at,
        name=row.name,
        recontact_days=row.recontact_days,
    )


def environment_from_row(row: EnvironmentRow) -> Environment:
    return Environment(
        id=row.id,
        created_at=row.created_at,
        product_id=row.product_id,
        type=row.type,
    )


def person_from_row(row: PersonRow) -> Person:
    return Person(
        id=row.id,
        created_at=row.created_at,
        environment_id=row.environment_id,
        user_id=row.user_id,
        attributes=dict(row.attributes or {}),
    )


def action_from_row(row: ActionRow) -> Action:
    return Action(
        id=row.id,
        created_at=row.created_at,
        person_id=row.person_id,
        action_class_id=row.action_class_id,
    )


def display_from_row(row: DisplayRow) -> Display:
    return Display(
        id=row.id,
        created_at=row.created_at,
        person_id=row.person_id,
        survey_id=row.survey_id,
        response_id=row.response_id,
    )


def response_from_row(row: ResponseRow) -> Response:
    return Response(
        id=row.id,
        created_at=row.created_at,
        survey_id=row.survey_id,
        person_id=row.person_id,
        finished=row.finished,
        data=dict(row.data or {}),
    )
