"""Configuration models for SurveyKit.

ServiceConfig holds per-process settings for the survey service: where
the store lives, how long derived results stay fresh, and the timeouts
applied to store transactions.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

# Seconds a cached read stays valid before it is recomputed.
SERVICES_REVALIDATION_INTERVAL = 60 * 30

ITEMS_PER_PAGE = 12

# Bulk migrations run inside a single transaction bounded by this ceiling.
MIGRATION_TIMEOUT_SECONDS = 50.0


class ServiceConfig(BaseModel):
    """Per-process service configuration."""

    model_config = {"frozen": True}

    db_path: str = ":memory:"
    db_url: Optional[str] = None
    revalidation_interval: float = Field(default=SERVICES_REVALIDATION_INTERVAL, gt=0)
    items_per_page: int = Field(default=ITEMS_PER_PAGE, gt=0)
    transaction_timeout: float = Field(default=5.0, gt=0)
    migration_timeout: float = Field(default=MIGRATION_TIMEOUT_SECONDS, gt=0)
