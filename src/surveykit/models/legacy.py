"""Legacy survey shape served to SDK versions that predate segments and i18n.

Older clients expect plain strings where current surveys carry
per-language dictionaries (``{"default": "Hi", "de": "Hallo"}``), and
know nothing about language or segment bindings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from surveykit.models.survey import Survey, SurveyStatus, SurveyType

DEFAULT_LANGUAGE_CODE = "default"


class LegacySurvey(BaseModel):
    id: str
    created_at: datetime
    updated_at: datetime
    name: str
    type: SurveyType
    environment_id: str
    status: SurveyStatus
    welcome_card: dict[str, Any] = Field(default_factory=dict)
    questions: list[dict[str, Any]] = Field(default_factory=list)
    thank_you_card: dict[str, Any] = Field(default_factory=dict)
    hidden_fields: dict[str, Any] = Field(default_factory=dict)
    display_option: str
    recontact_days: Optional[int] = None
    auto_close: Optional[int] = None
    run_on_date: Optional[datetime] = None
    close_on_date: Optional[datetime] = None
    delay: int = 0
    display_percentage: Optional[float] = None
    auto_complete: Optional[int] = None
    redirect_url: Optional[str] = None
    triggers: list[str] = Field(default_factory=list)
    inline_triggers: Optional[dict[str, Any]] = None

    @classmethod
    def from_survey(cls, survey: Survey, language_code: str = DEFAULT_LANGUAGE_CODE) -> LegacySurvey:
        """Project a survey onto the legacy shape in one language."""
        data = survey.model_dump(exclude={"segment", "languages", "created_by", "single_use", "pin", "result_share_key"})
        for key in ("welcome_card", "questions", "thank_you_card"):
            data[key] = collapse_i18n(data[key], language_code)
        return cls.model_validate(data)


def _is_i18n_string(value: dict[str, Any]) -> bool:
    return DEFAULT_LANGUAGE_CODE in value and all(isinstance(v, str) for v in value.values())


def collapse_i18n(value: Any, language_code: str = DEFAULT_LANGUAGE_CODE) -> Any:
    """Replace every per-language string dict with its text in *language_code*.

    Falls back to the default text when the language has no translation.
    """
    if isinstance(value, dict):
        if _is_i18n_string(value):
            return value.get(language_code) or value[DEFAULT_LANGUAGE_CODE]
        return {k: collapse_i18n(v, language_code) for k, v in value.items()}
    if isinstance(value, list):
        return [collapse_i18n(item, language_code) for item in value]
    return value
