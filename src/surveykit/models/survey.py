"""Survey domain models.

Survey is the read model returned by the service (and the body accepted
by ``update_survey``).  SurveyInput is the body for ``create_survey``.
SurveyFilterCriteria narrows list queries.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from surveykit.models.segment import Segment


class SurveyStatus(str, enum.Enum):
    """Lifecycle status of a survey."""

    DRAFT = "draft"
    IN_PROGRESS = "inProgress"
    PAUSED = "paused"
    COMPLETED = "completed"
    SCHEDULED = "scheduled"

    def __str__(self) -> str:
        return self.value


class SurveyType(str, enum.Enum):
    """Where a survey is shown.

    ``web`` is the legacy value that the web-survey migration splits into
    ``app`` and ``website``.
    """

    WEB = "web"
    APP = "app"
    WEBSITE = "website"
    LINK = "link"

    def __str__(self) -> str:
        return self.value


class DisplayOption(str, enum.Enum):
    """How often a person may see the same survey."""

    DISPLAY_ONCE = "displayOnce"
    DISPLAY_MULTIPLE = "displayMultiple"
    RESPOND_MULTIPLE = "respondMultiple"

    def __str__(self) -> str:
        return self.value


class Language(BaseModel):
    """A language configured for a product."""

    id: str
    code: str
    alias: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SurveyLanguage(BaseModel):
    """Binding of a language to a survey."""

    language: Language
    default: bool = False
    enabled: bool = True


class SurveyLanguageInput(BaseModel):
    """Language binding as given in a create body (by language id)."""

    language_id: str
    default: bool = False
    enabled: bool = True


def _check_single_default(languages: list[Any]) -> None:
    defaults = [lang for lang in languages if lang.default]
    if len(defaults) > 1:
        raise ValueError("Only one survey language can be the default")


class Survey(BaseModel):
    """SDK-facing survey model.

    ``display_option`` is kept as the raw stored string so that a value
    unknown to this version still loads; the eligibility pipeline rejects
    it with a ConfigurationError.  ``update_survey`` only accepts the
    :class:`DisplayOption` values.
    """

    id: str
    created_at: datetime
    updated_at: datetime
    name: str
    type: SurveyType = SurveyType.WEB
    environment_id: str
    created_by: Optional[str] = None
    status: SurveyStatus = SurveyStatus.DRAFT
    welcome_card: dict[str, Any] = Field(default_factory=dict)
    questions: list[dict[str, Any]] = Field(default_factory=list)
    thank_you_card: dict[str, Any] = Field(default_factory=dict)
    hidden_fields: dict[str, Any] = Field(default_factory=dict)
    display_option: str = DisplayOption.DISPLAY_ONCE.value
    recontact_days: Optional[int] = Field(default=None, ge=0)
    auto_close: Optional[int] = None
    run_on_date: Optional[datetime] = None
    close_on_date: Optional[datetime] = None
    delay: int = 0
    display_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    auto_complete: Optional[int] = None
    redirect_url: Optional[str] = None
    single_use: Optional[dict[str, Any]] = None
    pin: Optional[str] = None
    result_share_key: Optional[str] = None
    segment: Optional[Segment] = None
    triggers: list[str] = Field(default_factory=list)
    inline_triggers: Optional[dict[str, Any]] = None
    languages: list[SurveyLanguage] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_default_language(self) -> Survey:
        _check_single_default(self.languages)
        return self

    def __str__(self) -> str:
        return f"{self.id[:8]} {self.name!r} ({self.status.value})"


class SurveyInput(BaseModel):
    """Body for ``create_survey``."""

    name: str
    type: SurveyType = SurveyType.WEB
    created_by: Optional[str] = None
    status: SurveyStatus = SurveyStatus.DRAFT
    welcome_card: dict[str, Any] = Field(default_factory=dict)
    questions: list[dict[str, Any]] = Field(default_factory=list)
    thank_you_card: dict[str, Any] = Field(default_factory=dict)
    hidden_fields: dict[str, Any] = Field(default_factory=dict)
    display_option: DisplayOption = DisplayOption.DISPLAY_ONCE
    recontact_days: Optional[int] = Field(default=None, ge=0)
    auto_close: Optional[int] = None
    run_on_date: Optional[datetime] = None
    close_on_date: Optional[datetime] = None
    delay: int = 0
    display_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    auto_complete: Optional[int] = None
    redirect_url: Optional[str] = None
    single_use: Optional[dict[str, Any]] = None
    pin: Optional[str] = None
    triggers: Optional[list[str]] = None
    inline_triggers: Optional[dict[str, Any]] = None
    languages: list[SurveyLanguageInput] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_default_language(self) -> SurveyInput:
        _check_single_default(self.languages)
        return self


class SurveyFilterCriteria(BaseModel):
    """Filters and ordering for ``get_surveys``.

    With no ``sort_by`` surveys come back in creation order.
    """

    name: Optional[str] = None
    status: Optional[list[SurveyStatus]] = None
    type: Optional[list[SurveyType]] = None
    created_by: Optional[str] = None
    sort_by: Optional[Literal["createdAt", "updatedAt", "name"]] = None


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def resolve_status(
    status: SurveyStatus,
    run_on_date: datetime | None,
    now: datetime | None = None,
) -> SurveyStatus:
    """Reconcile a survey's status with its scheduled activation date.

    - ``scheduled`` with no activation date, or one already reached,
      becomes ``inProgress``.
    - ``completed``, ``paused`` or ``inProgress`` with a future activation
      date becomes ``scheduled``.
    - Everything else is returned unchanged.
    """
    now = _as_aware(now or datetime.now(timezone.utc))
    in_future = run_on_date is not None and _as_aware(run_on_date) > now

    if status == SurveyStatus.SCHEDULED and not in_future:
        return SurveyStatus.IN_PROGRESS
    if (
        status in (SurveyStatus.COMPLETED, SurveyStatus.PAUSED, SurveyStatus.IN_PROGRESS)
        and in_future
    ):
        return SurveyStatus.SCHEDULED
    return status
