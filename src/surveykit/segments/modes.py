"""Evaluation modes, chosen once per sync request from the SDK protocol version."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from surveykit.models.filters import FilterNode
from surveykit.segments.evaluator import SegmentContext, evaluate
from surveykit.segments.legacy import evaluate_attribute_filters, to_attribute_filters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StructuredMode:
    """Full filter-tree evaluation for current SDKs."""

    version: str

    @property
    def is_legacy(self) -> bool:
        return False

    def is_eligible(self, context: SegmentContext, filters: FilterNode) -> bool:
        return evaluate(context, filters)


@dataclass(frozen=True)
class LegacyMode:
    """Flat attribute-filter evaluation for SDKs that send no version."""

    @property
    def is_legacy(self) -> bool:
        return True

    def is_eligible(self, context: SegmentContext, filters: FilterNode) -> bool:
        triples = to_attribute_filters(filters)
        if triples is None:
            logger.debug("Segment has no flat attribute equivalent, withholding survey")
            return False
        return evaluate_attribute_filters(context.attributes, triples)


EvaluationMode = Union[LegacyMode, StructuredMode]


def evaluation_mode(version: str | None) -> EvaluationMode:
    """Pick the mode for a request. Any non-empty version is structured."""
    if not version:
        return LegacyMode()
    return StructuredMode(version)
