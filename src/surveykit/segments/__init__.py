"""Segment evaluation: structured filter trees and the legacy flat form."""

from surveykit.segments.evaluator import SegmentContext, compare_attribute, evaluate
from surveykit.segments.legacy import (
    AttributeFilterTriple,
    evaluate_attribute_filters,
    to_attribute_filters,
)
from surveykit.segments.modes import EvaluationMode, LegacyMode, StructuredMode, evaluation_mode

__all__ = [
    "AttributeFilterTriple",
    "EvaluationMode",
    "LegacyMode",
    "SegmentContext",
    "StructuredMode",
    "compare_attribute",
    "evaluate",
    "evaluate_attribute_filters",
    "evaluation_mode",
    "to_attribute_filters",
]
