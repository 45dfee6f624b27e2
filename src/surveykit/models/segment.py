"""Segment domain models.

Segment is the read model returned by the service.  SegmentCreateInput
and SegmentUpdateInput are the request bodies for mutations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from surveykit.models.filters import AndFilter, FilterNode, normalize_filters


class Segment(BaseModel):
    """A targeting rule shared between surveys, or private to one survey."""

    id: str
    created_at: datetime
    updated_at: datetime
    title: str
    description: Optional[str] = None
    environment_id: str
    is_private: bool = True
    filters: FilterNode = Field(default_factory=AndFilter)
    surveys: list[str] = Field(default_factory=list)

    @field_validator("filters", mode="before")
    @classmethod
    def _expand_shorthand(cls, v: object) -> object:
        return normalize_filters(v)


class SegmentCreateInput(BaseModel):
    """Body for creating a segment.

    When ``survey_id`` is given the new segment is connected to that
    survey; private segments are conventionally titled with it.
    """

    environment_id: str
    title: str
    description: Optional[str] = None
    is_private: bool = True
    filters: FilterNode = Field(default_factory=AndFilter)
    survey_id: Optional[str] = None

    @field_validator("filters", mode="before")
    @classmethod
    def _expand_shorthand(cls, v: object) -> object:
        return normalize_filters(v)


class SegmentUpdateInput(BaseModel):
    """Partial update for a segment. ``None`` fields are left unchanged."""

    title: Optional[str] = None
    description: Optional[str] = None
    is_private: Optional[bool] = None
    filters: Optional[FilterNode] = None
    surveys: Optional[list[str]] = None

    @field_validator("filters", mode="before")
    @classmethod
    def _expand_shorthand(cls, v: object) -> object:
        if v is None:
            return None
        return normalize_filters(v)
