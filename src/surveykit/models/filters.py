"""Segment filter tree models.

A filter tree is either a leaf predicate (attribute, action, device,
person) or a boolean combinator (``and`` / ``or``) over child nodes.
Nodes are discriminated by their ``type`` field so a stored tree can be
round-tripped through JSON without losing its shape.

Operators are kept as plain strings rather than enums: an operator the
evaluator does not know must still load, and is then treated as a
non-match at evaluation time.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError

from surveykit.exceptions import InvalidInputError

AttributeValue = Union[bool, int, float, str]

# Operators understood for attribute leaves.
ATTRIBUTE_OPERATORS = frozenset({
    "equals",
    "notEquals",
    "lessThan",
    "lessEqual",
    "greaterThan",
    "greaterEqual",
    "isSet",
    "isNotSet",
    "contains",
    "doesNotContain",
    "startsWith",
    "endsWith",
})

# Operators understood for device and person leaves.
IDENTITY_OPERATORS = frozenset({"equals", "notEquals"})

_OPERATOR_FIELD = AliasChoices("operator", "op")


class AttributeFilter(BaseModel):
    """Compare one person attribute against a value."""

    type: Literal["attribute"] = "attribute"
    attribute: str = Field(validation_alias=AliasChoices("attribute", "attributeClassName"))
    operator: str = Field(validation_alias=_OPERATOR_FIELD)
    value: Optional[AttributeValue] = None


class ActionFilter(BaseModel):
    """Match when the person has performed the given action class."""

    type: Literal["action"] = "action"
    action_class_id: str = Field(
        validation_alias=AliasChoices("action_class_id", "actionClassId", "action")
    )


class DeviceFilter(BaseModel):
    """Compare the requesting device type (``phone`` / ``desktop``)."""

    type: Literal["device"] = "device"
    operator: str = Field(default="equals", validation_alias=_OPERATOR_FIELD)
    value: str = Field(validation_alias=AliasChoices("value", "device"))


class PersonFilter(BaseModel):
    """Compare the person's identity (external ``userId`` or internal ``personId``)."""

    type: Literal["person"] = "person"
    identifier: Literal["userId", "personId"] = "userId"
    operator: str = Field(default="equals", validation_alias=_OPERATOR_FIELD)
    value: str


class AndFilter(BaseModel):
    """True iff every child is true. An empty ``and`` matches everyone."""

    type: Literal["and"] = "and"
    children: list[FilterNode] = Field(default_factory=list)


class OrFilter(BaseModel):
    """True iff any child is true."""

    type: Literal["or"] = "or"
    children: list[FilterNode] = Field(default_factory=list)


FilterNode = Annotated[
    Union[AttributeFilter, ActionFilter, DeviceFilter, PersonFilter, AndFilter, OrFilter],
    Field(discriminator="type"),
]

LeafFilter = Union[AttributeFilter, ActionFilter, DeviceFilter, PersonFilter]

AndFilter.model_rebuild()
OrFilter.model_rebuild()

_filter_adapter: TypeAdapter[FilterNode] = TypeAdapter(FilterNode)


def _infer_type(data: dict[str, Any]) -> str | None:
    if "attribute" in data or "attributeClassName" in data:
        return "attribute"
    if "action_class_id" in data or "actionClassId" in data or "action" in data:
        return "action"
    if "device" in data:
        return "device"
    if "identifier" in data:
        return "person"
    return None


def normalize_filters(data: Any) -> Any:
    """Expand shorthand filter JSON into the discriminated form.

    Accepts ``{"and": [...]}`` / ``{"or": [...]}`` combinators, leaves
    without an explicit ``type`` (inferred from their keys), a bare list
    (an implicit ``and``), and ``None`` (an empty ``and``).  Anything
    already typed, including model instances, passes through unchanged.
    """
    if data is None:
        return {"type": "and", "children": []}
    if isinstance(data, list):
        return {"type": "and", "children": [normalize_filters(child) for child in data]}
    if not isinstance(data, dict):
        return data

    if "type" not in data:
        for connector in ("and", "or"):
            if connector in data and len(data) == 1:
                children = data[connector]
                if not isinstance(children, list):
                    return data
                return {
                    "type": connector,
                    "children": [normalize_filters(child) for child in children],
                }
        inferred = _infer_type(data)
        if inferred is None:
            return data
        data = {**data, "type": inferred}

    if data.get("type") in ("and", "or") and isinstance(data.get("children"), list):
        return {**data, "children": [normalize_filters(c) for c in data["children"]]}
    return data


def parse_filters(data: Any) -> FilterNode:
    """Validate raw filter JSON into a typed filter tree.

    Raises:
        InvalidInputError: If *data* is not a well-formed filter tree.
    """
    if isinstance(data, (AttributeFilter, ActionFilter, DeviceFilter, PersonFilter, AndFilter, OrFilter)):
        return data
    try:
        return _filter_adapter.validate_python(normalize_filters(data))
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid segment filters: {exc}") from exc


def dump_filters(node: FilterNode) -> dict[str, Any]:
    """Serialize a filter tree to JSON-compatible data for storage."""
    return _filter_adapter.dump_python(node, mode="json")


def is_empty_filter(node: FilterNode) -> bool:
    """Whether a tree places no restriction at all (an empty ``and``)."""
    return isinstance(node, AndFilter) and not node.children
