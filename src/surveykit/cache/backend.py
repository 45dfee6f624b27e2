"""Cache backends: tagged, expiring storage of serialized results.

A backend stores opaque bytes under a key together with the set of tags
the value was computed under.  Invalidating any of those tags evicts the
entry, whatever its key.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A stored result and the tags it is reachable from."""

    payload: bytes
    tags: frozenset[str]
    expires_at: float


@dataclass
class _KeyLock:
    """Single-flight lock for one key, dropped when nobody waits on it."""

    lock: threading.Lock = field(default_factory=threading.Lock)
    waiters: int = 0


class CacheBackend(ABC):
    """Abstract interface for result-cache storage."""

    @abstractmethod
    def get_or_compute(
        self,
        key: str,
        tags: Iterable[str],
        ttl: float,
        compute: Callable[[], bytes],
    ) -> bytes:
        """Return the fresh payload under *key*, computing and storing it on a miss.

        *compute* runs at most once per call.  If it raises, nothing is
        stored and the exception propagates.
        """
        ...

    @abstractmethod
    def invalidate_by_tags(self, tags: Iterable[str]) -> int:
        """Evict every entry carrying any of *tags*.

        Returns the number of entries evicted.  Invalidating a tag with no
        entries is a no-op.
        """
        ...

    def close(self) -> None:
        """Release backend resources."""


class InMemoryCacheBackend(CacheBackend):
    """Process-local LRU backend with a tag index.

    Concurrent misses on the same key are serialized by a per-key lock,
    so only the first caller computes.  A compute that overlaps an
    invalidation of one of its tags returns its value to the caller but
    is not stored.

    Args:
        maxsize: Maximum number of entries (least recently used evicted
            first).  ``None`` means unbounded.
        clock: Monotonic time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        *,
        maxsize: int | None = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._tag_index: dict[str, set[str]] = {}
        # Epochs are only tracked for tags with a compute in flight.
        self._tag_epochs: dict[str, int] = {}
        self._tag_computes: dict[str, int] = {}
        self._key_locks: dict[str, _KeyLock] = {}
        self._lock = threading.RLock()
        self._maxsize = maxsize
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return isinstance(key, str) and self._lookup(key) is not None

    def get_or_compute(
        self,
        key: str,
        tags: Iterable[str],
        ttl: float,
        compute: Callable[[], bytes],
    ) -> bytes:
        tags = frozenset(tags)

        with self._lock:
            entry = self._lookup(key)
            if entry is not None:
                logger.debug("Cache hit: %s", key)
                return entry.payload
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = self._key_locks[key] = _KeyLock()
            key_lock.waiters += 1

        try:
            with key_lock.lock:
                return self._compute_locked(key, tags, ttl, compute)
        finally:
            with self._lock:
                key_lock.waiters -= 1
                if not key_lock.waiters:
                    self._key_locks.pop(key, None)

    def invalidate_by_tags(self, tags: Iterable[str]) -> int:
        evicted = 0
        with self._lock:
            for tag in set(tags):
                if tag in self._tag_computes:
                    self._tag_epochs[tag] += 1
                for key in list(self._tag_index.get(tag, ())):
                    if self._remove(key):
                        evicted += 1
        if evicted:
            logger.debug("Invalidated %d cache entries", evicted)
        return evicted

    def close(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tag_index.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _compute_locked(
        self,
        key: str,
        tags: frozenset[str],
        ttl: float,
        compute: Callable[[], bytes],
    ) -> bytes:
        """Compute *key* while holding its key lock."""
        with self._lock:
            # Another caller may have filled the entry while we waited.
            entry = self._lookup(key)
            if entry is not None:
                logger.debug("Cache hit after wait: %s", key)
                return entry.payload
            epochs = {}
            for tag in tags:
                self._tag_computes[tag] = self._tag_computes.get(tag, 0) + 1
                epochs[tag] = self._tag_epochs.setdefault(tag, 0)

        try:
            logger.debug("Cache miss: %s", key)
            payload = compute()
            with self._lock:
                if any(self._tag_epochs[tag] != epoch for tag, epoch in epochs.items()):
                    logger.debug("Discarding result invalidated during compute: %s", key)
                    return payload
                self._store(key, CacheEntry(payload, tags, self._clock() + ttl))
            return payload
        finally:
            with self._lock:
                for tag in tags:
                    self._tag_computes[tag] -= 1
                    if not self._tag_computes[tag]:
                        del self._tag_computes[tag]
                        del self._tag_epochs[tag]

    # The helpers below expect the caller to hold self._lock.

    def _lookup(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._remove(key)
            return None
        self._entries.move_to_end(key)
        return entry

    def _store(self, key: str, entry: CacheEntry) -> None:
        self._remove(key)
        self._entries[key] = entry
        for tag in entry.tags:
            self._tag_index.setdefault(tag, set()).add(key)
        if self._maxsize is not None:
            while len(self._entries) > self._maxsize:
                oldest = next(iter(self._entries))
                self._remove(oldest)

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tag_index[tag]
        return True
