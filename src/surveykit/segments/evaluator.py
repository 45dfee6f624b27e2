"""Segment filter evaluator -- decides whether a person matches a filter tree.

Evaluation is a recursive walk: leaves compare one fact about the person
(an attribute, a performed action, the device, the identity) and the
``and`` / ``or`` combinators short-circuit over their children.

The evaluator fails closed.  A leaf with an operator it does not know is
false, so a segment using a newer operator excludes the survey rather
than failing the whole sync.

Missing attributes: when the person has no value for the attribute a
leaf names, every operator is false except ``isNotSet``.  In particular
``notEquals`` against a missing attribute is false, matching the
legacy attribute-filter path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from surveykit.models.filters import (
    ActionFilter,
    AndFilter,
    AttributeFilter,
    DeviceFilter,
    FilterNode,
    OrFilter,
    PersonFilter,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentContext:
    """Everything the evaluator may know about the person being matched."""

    attributes: Mapping[str, Any] = field(default_factory=dict)
    action_class_ids: frozenset[str] = frozenset()
    device_type: str = "desktop"
    environment_id: str = ""
    person_id: str = ""
    user_id: str = ""


def evaluate(context: SegmentContext, node: FilterNode) -> bool:
    """Evaluate *node* against *context*.

    Never raises for well-typed trees; unknown operators resolve to
    ``False``.
    """
    if isinstance(node, AndFilter):
        return all(evaluate(context, child) for child in node.children)
    if isinstance(node, OrFilter):
        return any(evaluate(context, child) for child in node.children)
    if isinstance(node, AttributeFilter):
        return _evaluate_attribute(context, node)
    if isinstance(node, ActionFilter):
        return node.action_class_id in context.action_class_ids
    if isinstance(node, DeviceFilter):
        return _compare_identity(node.operator, context.device_type, node.value)
    if isinstance(node, PersonFilter):
        actual = context.user_id if node.identifier == "userId" else context.person_id
        return _compare_identity(node.operator, actual, node.value)

    logger.warning("Unsupported filter node %r, treating as no match", type(node).__name__)
    return False


# ------------------------------------------------------------------
# Leaves
# ------------------------------------------------------------------


def _evaluate_attribute(context: SegmentContext, leaf: AttributeFilter) -> bool:
    actual = context.attributes.get(leaf.attribute)
    return compare_attribute(leaf.operator, actual, leaf.value)


def compare_attribute(operator: str, actual: Any, expected: Any) -> bool:
    """Apply an attribute operator. ``actual`` is ``None`` when the attribute is missing."""
    if operator == "isSet":
        return actual is not None
    if operator == "isNotSet":
        return actual is None

    comparator = _ATTRIBUTE_COMPARATORS.get(operator)
    if comparator is None:
        logger.warning("Unknown attribute operator %r, treating as no match", operator)
        return False
    if actual is None or expected is None:
        return False
    return comparator(actual, expected)


def _compare_identity(operator: str, actual: str | None, expected: str) -> bool:
    if not actual:
        return False
    if operator == "equals":
        return actual == expected
    if operator == "notEquals":
        return actual != expected
    logger.warning("Unknown identity operator %r, treating as no match", operator)
    return False


# ------------------------------------------------------------------
# Value comparison
# ------------------------------------------------------------------


def _as_number(value: Any) -> float | None:
    # bool is an int subclass but never compares numerically here
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, bool) or isinstance(expected, bool):
        return str(actual).lower() == str(expected).lower()
    a, e = _as_number(actual), _as_number(expected)
    if a is not None and e is not None:
        return a == e
    return str(actual) == str(expected)


def _ordered(test):  # type: ignore[no-untyped-def]
    def compare(actual: Any, expected: Any) -> bool:
        a, e = _as_number(actual), _as_number(expected)
        if a is None or e is None:
            return False
        return test(a, e)

    return compare


_ATTRIBUTE_COMPARATORS = {
    "equals": _equals,
    "notEquals": lambda a, e: not _equals(a, e),
    "lessThan": _ordered(lambda a, e: a < e),
    "lessEqual": _ordered(lambda a, e: a <= e),
    "greaterThan": _ordered(lambda a, e: a > e),
    "greaterEqual": _ordered(lambda a, e: a >= e),
    "contains": lambda a, e: str(e) in str(a),
    "doesNotContain": lambda a, e: str(e) not in str(a),
    "startsWith": lambda a, e: str(a).startswith(str(e)),
    "endsWith": lambda a, e: str(a).endswith(str(e)),
}
