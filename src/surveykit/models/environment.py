"""Product, environment and action-class models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class Product(BaseModel):
    """A product groups environments and carries product-wide display defaults.

    ``recontact_days`` is the fallback recontact window for surveys that
    do not set their own.
    """

    id: str
    created_at: datetime
    name: str
    recontact_days: Optional[int] = Field(default=None, ge=0)


class Environment(BaseModel):
    id: str
    created_at: datetime
    product_id: str
    type: Literal["production", "development"] = "production"


class ActionClass(BaseModel):
    """A named event type that persons perform."""

    id: str
    created_at: datetime
    updated_at: datetime
    environment_id: str
    name: str
    description: Optional[str] = None
    type: Literal["code", "noCode", "automatic"] = "code"
    no_code_config: Optional[dict[str, Any]] = None
