"""Tests for the segment filter evaluator."""

from __future__ import annotations

import logging

from hypothesis import given
from hypothesis import strategies as st

from surveykit.models.filters import (
    ActionFilter,
    AndFilter,
    AttributeFilter,
    DeviceFilter,
    OrFilter,
    PersonFilter,
    parse_filters,
)
from surveykit.segments.evaluator import SegmentContext, evaluate


def _ctx(**attributes) -> SegmentContext:
    return SegmentContext(
        attributes=attributes,
        action_class_ids=frozenset({"ac-checkout"}),
        device_type="phone",
        environment_id="e1",
        person_id="p1",
        user_id="alice",
    )


# ---------------------------------------------------------------------------
# Attribute leaves
# ---------------------------------------------------------------------------


class TestAttributeLeaf:
    def test_plan_pro_scenario(self):
        segment = parse_filters({"attribute": "plan", "op": "equals", "value": "pro"})
        assert evaluate(_ctx(plan="pro"), segment) is True
        assert evaluate(_ctx(plan="free"), segment) is False

    def test_not_equals(self):
        leaf = AttributeFilter(attribute="plan", operator="notEquals", value="pro")
        assert evaluate(_ctx(plan="free"), leaf) is True
        assert evaluate(_ctx(plan="pro"), leaf) is False

    def test_missing_attribute_fails_every_comparison(self):
        for op in ("equals", "notEquals", "lessThan", "greaterThan", "contains", "isSet"):
            leaf = AttributeFilter(attribute="plan", operator=op, value="pro")
            assert evaluate(_ctx(), leaf) is False, op

    def test_is_not_set(self):
        leaf = AttributeFilter(attribute="plan", operator="isNotSet")
        assert evaluate(_ctx(), leaf) is True
        assert evaluate(_ctx(plan="pro"), leaf) is False

    def test_numeric_comparison_coerces_strings(self):
        leaf = AttributeFilter(attribute="age", operator="greaterEqual", value=18)
        assert evaluate(_ctx(age="21"), leaf) is True
        assert evaluate(_ctx(age=17), leaf) is False
        assert evaluate(_ctx(age="unknown"), leaf) is False

    def test_equals_across_numeric_types(self):
        leaf = AttributeFilter(attribute="seats", operator="equals", value=5)
        assert evaluate(_ctx(seats="5"), leaf) is True
        assert evaluate(_ctx(seats=5.0), leaf) is True

    def test_string_operators(self):
        ctx = _ctx(email="alice@example.com")
        assert evaluate(ctx, AttributeFilter(attribute="email", operator="endsWith", value="@example.com"))
        assert evaluate(ctx, AttributeFilter(attribute="email", operator="startsWith", value="alice"))
        assert evaluate(ctx, AttributeFilter(attribute="email", operator="contains", value="@"))
        assert not evaluate(ctx, AttributeFilter(attribute="email", operator="doesNotContain", value="@"))

    def test_unknown_operator_fails_closed(self, caplog):
        leaf = AttributeFilter(attribute="plan", operator="matchesRegex", value="p.*")
        with caplog.at_level(logging.WARNING):
            assert evaluate(_ctx(plan="pro"), leaf) is False
        assert "matchesRegex" in caplog.text


# ---------------------------------------------------------------------------
# Action, device and person leaves
# ---------------------------------------------------------------------------


class TestOtherLeaves:
    def test_action(self):
        assert evaluate(_ctx(), ActionFilter(action_class_id="ac-checkout")) is True
        assert evaluate(_ctx(), ActionFilter(action_class_id="ac-signup")) is False

    def test_device(self):
        assert evaluate(_ctx(), DeviceFilter(value="phone")) is True
        assert evaluate(_ctx(), DeviceFilter(value="desktop")) is False
        assert evaluate(_ctx(), DeviceFilter(operator="notEquals", value="desktop")) is True

    def test_person(self):
        assert evaluate(_ctx(), PersonFilter(value="alice")) is True
        assert evaluate(_ctx(), PersonFilter(identifier="personId", value="p1")) is True
        assert evaluate(_ctx(), PersonFilter(operator="notEquals", value="alice")) is False

    def test_person_without_user_id(self):
        ctx = SegmentContext(person_id="p1")
        assert evaluate(ctx, PersonFilter(value="alice")) is False
        assert evaluate(ctx, PersonFilter(operator="notEquals", value="alice")) is False


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------

leaves = st.one_of(
    st.builds(
        AttributeFilter,
        attribute=st.sampled_from(["plan", "age", "missing"]),
        operator=st.sampled_from(["equals", "notEquals", "greaterThan", "isSet", "bogus"]),
        value=st.one_of(st.sampled_from(["pro", "free"]), st.integers(0, 40)),
    ),
    st.builds(ActionFilter, action_class_id=st.sampled_from(["ac-checkout", "ac-signup"])),
    st.builds(DeviceFilter, value=st.sampled_from(["phone", "desktop"])),
)

contexts = st.builds(
    _ctx,
    plan=st.sampled_from(["pro", "free"]),
    age=st.integers(0, 40),
)


class TestCombinators:
    @given(ctx=contexts, a=leaves, b=leaves)
    def test_and_is_conjunction(self, ctx, a, b):
        assert evaluate(ctx, AndFilter(children=[a, b])) == (evaluate(ctx, a) and evaluate(ctx, b))

    @given(ctx=contexts, a=leaves, b=leaves)
    def test_or_is_disjunction(self, ctx, a, b):
        assert evaluate(ctx, OrFilter(children=[a, b])) == (evaluate(ctx, a) or evaluate(ctx, b))

    def test_empty_and_matches_everyone(self):
        assert evaluate(_ctx(), AndFilter()) is True

    def test_empty_or_matches_no_one(self):
        assert evaluate(_ctx(), OrFilter()) is False

    def test_nested_tree(self):
        tree = parse_filters({
            "and": [
                {"attribute": "plan", "op": "equals", "value": "pro"},
                {"or": [
                    {"type": "device", "device": "desktop"},
                    {"actionClassId": "ac-checkout"},
                ]},
            ]
        })
        assert evaluate(_ctx(plan="pro"), tree) is True
        assert evaluate(_ctx(plan="free"), tree) is False

    def test_and_short_circuits(self):
        calls = []

        class Spy(dict):
            def get(self, key, default=None):
                calls.append(key)
                return super().get(key, default)

        ctx = SegmentContext(attributes=Spy(plan="free"))
        tree = AndFilter(children=[
            AttributeFilter(attribute="plan", operator="equals", value="pro"),
            AttributeFilter(attribute="age", operator="equals", value=1),
        ])
        assert evaluate(ctx, tree) is False
        assert calls == ["plan"]
