"""Typed serialization for cached results.

Cached values are stored as JSON bytes and decoded through a pydantic
TypeAdapter for the declared result type, so a ``list[Survey]`` comes
back as Survey models with real ``datetime`` fields rather than dicts of
ISO strings.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter

T = TypeVar("T")


class ResultCodec(Generic[T]):
    """Encode/decode values of one result type to and from JSON bytes."""

    def __init__(self, result_type: Any) -> None:
        self.result_type = result_type
        self._adapter: TypeAdapter[T] = TypeAdapter(result_type)

    def encode(self, value: T) -> bytes:
        return self._adapter.dump_json(value)

    def decode(self, raw: bytes) -> T:
        return self._adapter.validate_json(raw)


@lru_cache(maxsize=128)
def codec_for(result_type: Any) -> ResultCodec[Any]:
    """Shared codec per result type (TypeAdapter construction is not free)."""
    return ResultCodec(result_type)
