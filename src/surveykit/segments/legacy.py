"""Flat attribute filters for SDK versions without structured segments.

Older SDKs only understood a list of attribute conditions that must all
hold.  A segment tree is served to them only when it has that exact
shape: a single attribute leaf, or an ``and`` whose children are all
attribute leaves.  Anything else (``or``, nested groups, action, device
or person leaves) has no flat equivalent and the survey is withheld.
"""

from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Optional

from surveykit.models.filters import AndFilter, AttributeFilter, AttributeValue, FilterNode


class AttributeFilterTriple(NamedTuple):
    attribute_class_name: str
    operator: str
    value: Optional[AttributeValue]


def to_attribute_filters(node: FilterNode) -> list[AttributeFilterTriple] | None:
    """Flatten *node* into attribute triples, or ``None`` if it cannot be flattened."""
    if isinstance(node, AttributeFilter):
        return [AttributeFilterTriple(node.attribute, node.operator, node.value)]
    if not isinstance(node, AndFilter):
        return None

    triples: list[AttributeFilterTriple] = []
    for child in node.children:
        if not isinstance(child, AttributeFilter):
            return None
        triples.append(AttributeFilterTriple(child.attribute, child.operator, child.value))
    return triples


def evaluate_attribute_filters(
    attributes: Mapping[str, Any],
    triples: list[AttributeFilterTriple],
) -> bool:
    """True iff every triple holds for *attributes*.

    Only ``equals`` and ``notEquals`` are known here, compared strictly
    (no numeric coercion).  An empty or missing attribute fails every
    triple, and any other operator fails the triple.
    """
    for triple in triples:
        actual = attributes.get(triple.attribute_class_name)
        if not actual:
            return False
        if triple.operator == "equals":
            if actual != triple.value:
                return False
        elif triple.operator == "notEquals":
            if actual == triple.value:
                return False
        else:
            return False
    return True
