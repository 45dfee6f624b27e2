"""Tests for InMemoryCacheBackend: hits, expiry, tag invalidation, single flight."""

from __future__ import annotations

import threading

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from surveykit.cache.backend import InMemoryCacheBackend

from tests.factories import FakeTimer


def _compute(value: bytes, calls: list):
    def fn() -> bytes:
        calls.append(value)
        return value

    return fn


# ---------------------------------------------------------------------------
# get_or_compute
# ---------------------------------------------------------------------------


class TestGetOrCompute:
    def test_miss_then_hit(self, backend):
        calls: list = []
        assert backend.get_or_compute("k", {"t"}, 60, _compute(b"v", calls)) == b"v"
        assert backend.get_or_compute("k", {"t"}, 60, _compute(b"other", calls)) == b"v"
        assert calls == [b"v"]

    def test_expiry_recomputes(self, backend, timer):
        calls: list = []
        backend.get_or_compute("k", {"t"}, 60, _compute(b"v1", calls))
        timer.advance(59)
        assert backend.get_or_compute("k", {"t"}, 60, _compute(b"v2", calls)) == b"v1"
        timer.advance(1)
        assert backend.get_or_compute("k", {"t"}, 60, _compute(b"v2", calls)) == b"v2"
        assert calls == [b"v1", b"v2"]

    def test_failed_compute_is_not_stored(self, backend):
        def boom() -> bytes:
            raise RuntimeError("store down")

        with pytest.raises(RuntimeError):
            backend.get_or_compute("k", {"t"}, 60, boom)
        assert "k" not in backend
        assert backend.get_or_compute("k", {"t"}, 60, lambda: b"ok") == b"ok"

    def test_lru_eviction(self, timer):
        backend = InMemoryCacheBackend(maxsize=2, clock=timer)
        backend.get_or_compute("a", {"t"}, 60, lambda: b"a")
        backend.get_or_compute("b", {"t"}, 60, lambda: b"b")
        backend.get_or_compute("a", {"t"}, 60, lambda: b"a")  # touch a
        backend.get_or_compute("c", {"t"}, 60, lambda: b"c")
        assert "a" in backend
        assert "b" not in backend
        assert "c" in backend

    def test_concurrent_misses_compute_once(self, backend):
        calls: list = []
        started = threading.Event()
        release = threading.Event()

        def slow() -> bytes:
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return b"v"

        results: list = []
        first = threading.Thread(target=lambda: results.append(backend.get_or_compute("k", {"t"}, 60, slow)))
        first.start()
        started.wait(timeout=5)
        second = threading.Thread(target=lambda: results.append(backend.get_or_compute("k", {"t"}, 60, slow)))
        second.start()
        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert results == [b"v", b"v"]
        assert calls == [1]


# ---------------------------------------------------------------------------
# invalidate_by_tags
# ---------------------------------------------------------------------------


class TestInvalidation:
    def test_evicts_every_entry_with_the_tag(self, backend):
        backend.get_or_compute("k1", {"env", "s1"}, 60, lambda: b"1")
        backend.get_or_compute("k2", {"env", "s2"}, 60, lambda: b"2")
        backend.get_or_compute("k3", {"other"}, 60, lambda: b"3")

        assert backend.invalidate_by_tags({"env"}) == 2
        assert "k1" not in backend
        assert "k2" not in backend
        assert "k3" in backend

    def test_entry_reachable_from_each_tag(self, backend):
        backend.get_or_compute("k", {"a", "b"}, 60, lambda: b"v")
        backend.invalidate_by_tags({"b"})
        assert "k" not in backend

    def test_idempotent(self, backend):
        backend.get_or_compute("k", {"t"}, 60, lambda: b"v")
        assert backend.invalidate_by_tags({"t"}) == 1
        assert backend.invalidate_by_tags({"t"}) == 0
        assert backend.invalidate_by_tags({"never-used"}) == 0

    def test_compute_overlapping_invalidation_is_discarded(self, backend):
        """A value computed from pre-invalidation data is returned but not kept."""

        def compute() -> bytes:
            backend.invalidate_by_tags({"t"})
            return b"stale"

        assert backend.get_or_compute("k", {"t"}, 60, compute) == b"stale"
        assert "k" not in backend

    @settings(max_examples=50)
    @given(
        t1=st.sets(st.text(min_size=1, max_size=8), min_size=1, max_size=4),
        t2=st.sets(st.text(min_size=1, max_size=8), min_size=1, max_size=4),
    )
    def test_disjoint_tags_survive(self, t1, t2):
        t2 = t2 - t1
        if not t2:
            return
        backend = InMemoryCacheBackend(clock=FakeTimer())
        backend.get_or_compute("only-t2", t2, 60, lambda: b"v")
        backend.invalidate_by_tags(t1)
        assert "only-t2" in backend


# ---------------------------------------------------------------------------
# Bookkeeping
# ---------------------------------------------------------------------------


class TestBookkeeping:
    def test_locks_and_epochs_released(self):
        backend = InMemoryCacheBackend(maxsize=2, clock=FakeTimer())
        for i in range(100):
            backend.get_or_compute(f"k{i}", {f"person-{i}"}, 60, lambda: b"v")
            backend.invalidate_by_tags({f"person-{i}"})

        assert len(backend) == 0
        assert backend._key_locks == {}
        assert backend._tag_epochs == {}
        assert backend._tag_computes == {}

    def test_released_after_failed_compute(self, backend):
        def boom() -> bytes:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            backend.get_or_compute("k", {"t"}, 60, boom)
        assert backend._key_locks == {}
        assert backend._tag_epochs == {}

    def test_stores_again_after_discarded_compute(self, backend):
        def compute() -> bytes:
            backend.invalidate_by_tags({"t"})
            return b"stale"

        backend.get_or_compute("k", {"t"}, 60, compute)
        assert backend.get_or_compute("k", {"t"}, 60, lambda: b"fresh") == b"fresh"
        assert "k" in backend
