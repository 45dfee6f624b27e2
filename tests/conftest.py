"""Shared test fixtures for SurveyKit.

Provides an in-memory store, a cache on a controllable timer, and a
SurveyService wired to a controllable wall clock.
"""

import pytest
from sqlalchemy.orm import sessionmaker

from surveykit.cache.backend import InMemoryCacheBackend
from surveykit.cache.results import ResultCache
from surveykit.service import SurveyService
from surveykit.storage.engine import create_store_engine, init_db
from surveykit.storage.store import Store

from tests.factories import FakeClock, FakeTimer, seed_environment


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_store_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def store(engine) -> Store:
    return Store(engine)


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def backend(timer) -> InMemoryCacheBackend:
    return InMemoryCacheBackend(clock=timer)


@pytest.fixture
def cache(backend) -> ResultCache:
    return ResultCache(backend)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(store, cache, clock):
    svc = SurveyService.from_components(store=store, cache=cache, clock=clock)
    yield svc
    svc.close()


@pytest.fixture
def seeded(service):
    """A product, one environment and two action classes."""
    return seed_environment(service)
