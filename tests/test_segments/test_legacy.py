"""Tests for flat attribute filters and evaluation-mode selection."""

from __future__ import annotations

from surveykit.models.filters import parse_filters
from surveykit.segments.evaluator import SegmentContext
from surveykit.segments.legacy import (
    AttributeFilterTriple,
    evaluate_attribute_filters,
    to_attribute_filters,
)
from surveykit.segments.modes import LegacyMode, StructuredMode, evaluation_mode


class TestToAttributeFilters:
    def test_single_leaf(self):
        node = parse_filters({"attribute": "plan", "op": "equals", "value": "pro"})
        assert to_attribute_filters(node) == [AttributeFilterTriple("plan", "equals", "pro")]

    def test_and_of_leaves(self):
        node = parse_filters({
            "and": [
                {"attribute": "plan", "op": "equals", "value": "pro"},
                {"attribute": "country", "op": "notEquals", "value": "DE"},
            ]
        })
        assert to_attribute_filters(node) == [
            AttributeFilterTriple("plan", "equals", "pro"),
            AttributeFilterTriple("country", "notEquals", "DE"),
        ]

    def test_empty_and(self):
        assert to_attribute_filters(parse_filters(None)) == []

    def test_or_has_no_flat_form(self):
        node = parse_filters({"or": [{"attribute": "plan", "op": "equals", "value": "pro"}]})
        assert to_attribute_filters(node) is None

    def test_nested_group_has_no_flat_form(self):
        node = parse_filters({
            "and": [
                {"attribute": "plan", "op": "equals", "value": "pro"},
                {"and": [{"attribute": "country", "op": "equals", "value": "DE"}]},
            ]
        })
        assert to_attribute_filters(node) is None

    def test_non_attribute_leaf_has_no_flat_form(self):
        node = parse_filters({"and": [{"actionClassId": "ac1"}]})
        assert to_attribute_filters(node) is None


class TestEvaluateAttributeFilters:
    def test_all_must_hold(self):
        triples = [
            AttributeFilterTriple("plan", "equals", "pro"),
            AttributeFilterTriple("country", "notEquals", "DE"),
        ]
        assert evaluate_attribute_filters({"plan": "pro", "country": "FR"}, triples) is True
        assert evaluate_attribute_filters({"plan": "pro", "country": "DE"}, triples) is False

    def test_empty_list_matches(self):
        assert evaluate_attribute_filters({}, []) is True

    def test_missing_or_empty_attribute_fails(self):
        triple = [AttributeFilterTriple("plan", "notEquals", "pro")]
        assert evaluate_attribute_filters({}, triple) is False
        assert evaluate_attribute_filters({"plan": ""}, triple) is False

    def test_strict_equality(self):
        """No numeric coercion on the flat path."""
        triple = [AttributeFilterTriple("seats", "equals", 5)]
        assert evaluate_attribute_filters({"seats": 5}, triple) is True
        assert evaluate_attribute_filters({"seats": "5"}, triple) is False

    def test_other_operators_fail(self):
        triple = [AttributeFilterTriple("age", "greaterThan", 1)]
        assert evaluate_attribute_filters({"age": 30}, triple) is False


class TestModes:
    def test_no_version_is_legacy(self):
        assert evaluation_mode(None) == LegacyMode()
        assert evaluation_mode("") == LegacyMode()
        assert evaluation_mode(None).is_legacy

    def test_version_is_structured(self):
        mode = evaluation_mode("2.0.0")
        assert mode == StructuredMode("2.0.0")
        assert not mode.is_legacy

    def test_legacy_withholds_unflattenable_segments(self):
        ctx = SegmentContext(attributes={"plan": "pro"}, action_class_ids=frozenset({"ac1"}))
        node = parse_filters({"or": [{"attribute": "plan", "op": "equals", "value": "pro"}]})
        assert StructuredMode("2.0.0").is_eligible(ctx, node) is True
        assert LegacyMode().is_eligible(ctx, node) is False

    def test_modes_agree_on_flat_segments(self):
        ctx = SegmentContext(attributes={"plan": "pro"})
        node = parse_filters({"attribute": "plan", "op": "equals", "value": "pro"})
        assert StructuredMode("2.0.0").is_eligible(ctx, node) is True
        assert LegacyMode().is_eligible(ctx, node) is True
