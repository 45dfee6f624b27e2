"""People and their interaction history: persons, actions, displays, responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from surveykit.models.filters import AttributeValue

# Person id used by SDK versions that sync without identifying the user.
LEGACY_PERSON_ID = "legacy"


class Person(BaseModel):
    """An end user of an environment."""

    id: str
    created_at: datetime
    environment_id: Optional[str] = None
    user_id: Optional[str] = None
    attributes: dict[str, AttributeValue] = Field(default_factory=dict)

    @classmethod
    def legacy(cls, created_at: datetime) -> Person:
        """Anonymous stand-in used when an SDK syncs without a person."""
        return cls(id=LEGACY_PERSON_ID, created_at=created_at)

    @property
    def external_id(self) -> str:
        """External user id, falling back to a ``userId`` attribute."""
        if self.user_id:
            return self.user_id
        fallback = self.attributes.get("userId")
        return str(fallback) if fallback is not None else ""


class Action(BaseModel):
    """One occurrence of an action class performed by a person."""

    id: str
    created_at: datetime
    person_id: str
    action_class_id: str


class Display(BaseModel):
    """One presentation of a survey to a person."""

    id: str
    created_at: datetime
    person_id: Optional[str] = None
    survey_id: str
    response_id: Optional[str] = None


class Response(BaseModel):
    """A (possibly partial) answer to a survey."""

    id: str
    created_at: datetime
    survey_id: str
    person_id: Optional[str] = None
    finished: bool = False
    data: dict[str, Any] = Field(default_factory=dict)
