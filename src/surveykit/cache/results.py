"""Derived-result cache.

``ResultCache`` wraps a :class:`CacheBackend` with typed values: callers
pass the result type along with the compute function and get back a
fully validated model, whether the value came from the backend or was
just computed.

Mutations collect the tags they make stale in a
:meth:`ResultCache.deferred` block and the tags are invalidated only once
the block exits cleanly, i.e. after the enclosing transaction committed.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterable, TypeVar

from surveykit.cache.backend import CacheBackend, InMemoryCacheBackend
from surveykit.cache.codec import codec_for
from surveykit.models.config import SERVICES_REVALIDATION_INTERVAL

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def cache_key(operation: str, *args: Any) -> str:
    """Build a deterministic cache key from an operation name and its inputs.

    Pydantic models are rendered through their JSON dump so that equal
    criteria objects produce equal keys.
    """
    parts = [operation]
    for arg in args:
        if hasattr(arg, "model_dump"):
            parts.append(json.dumps(arg.model_dump(mode="json"), sort_keys=True))
        else:
            parts.append(str(arg))
    return "-".join(parts)


class PendingInvalidation:
    """Tags collected during a mutation, flushed after it commits."""

    def __init__(self) -> None:
        self._tags: set[str] = set()

    def add(self, tags: Iterable[str]) -> None:
        self._tags.update(tags)

    @property
    def tags(self) -> frozenset[str]:
        return frozenset(self._tags)


class ResultCache:
    """Typed, tag-invalidated cache of derived results.

    Args:
        backend: Storage backend.  Defaults to a fresh in-memory backend.
        default_ttl: Seconds a computed value stays fresh when the caller
            does not pass *ttl*.
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        *,
        default_ttl: float = SERVICES_REVALIDATION_INTERVAL,
    ) -> None:
        self._backend = backend if backend is not None else InMemoryCacheBackend()
        self._default_ttl = default_ttl

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def get_or_compute(
        self,
        key: str,
        tags: Iterable[str],
        compute: Callable[[], T],
        result_type: Any,
        *,
        ttl: float | None = None,
    ) -> T:
        """Return the cached value under *key*, or compute and cache it.

        Args:
            key: Deterministic key for this operation and input.
            tags: Tags whose invalidation evicts this entry.
            compute: Produces the value on a miss.  Exceptions propagate
                and nothing is cached.
            result_type: Type used to encode and decode the value.
            ttl: Seconds until the entry expires.
        """
        codec = codec_for(result_type)
        raw = self._backend.get_or_compute(
            key,
            frozenset(tags),
            self._default_ttl if ttl is None else ttl,
            lambda: codec.encode(compute()),
        )
        return codec.decode(raw)

    def invalidate(self, tags: Iterable[str]) -> int:
        tags = frozenset(tags)
        if not tags:
            return 0
        logger.debug("Invalidating tags: %s", sorted(tags))
        return self._backend.invalidate_by_tags(tags)

    @contextmanager
    def deferred(self) -> Iterator[PendingInvalidation]:
        """Collect tags during a block; invalidate them only if it succeeds.

        Usage::

            with cache.deferred() as pending, store.transaction() as uow:
                ...
                pending.add(SURVEY_TAGS.for_mutation(id=survey_id))
        """
        pending = PendingInvalidation()
        yield pending
        self.invalidate(pending.tags)

    def close(self) -> None:
        self._backend.close()
