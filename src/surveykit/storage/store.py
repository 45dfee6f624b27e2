"""Transactional store adapter.

``Store`` owns the engine and session factory.  ``Store.transaction()``
opens one SQLAlchemy session, applies the caller's timeout, exposes every
repository bound to that session through a ``UnitOfWork``, and commits on
success or rolls back on failure.  Driver errors leave as DatabaseError.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from surveykit.exceptions import DatabaseError
from surveykit.storage.engine import create_session_factory, create_store_engine, init_db
from surveykit.storage.sqlite import (
    SqliteActionClassRepository,
    SqliteActionRepository,
    SqliteDisplayRepository,
    SqliteLanguageRepository,
    SqlitePersonRepository,
    SqliteProductRepository,
    SqliteResponseRepository,
    SqliteSegmentRepository,
    SqliteSurveyRepository,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine
    from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTION_TIMEOUT = 5.0


class UnitOfWork:
    """Repositories sharing one session (and therefore one transaction)."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.surveys = SqliteSurveyRepository(session)
        self.segments = SqliteSegmentRepository(session)
        self.action_classes = SqliteActionClassRepository(session)
        self.people = SqlitePersonRepository(session)
        self.actions = SqliteActionRepository(session)
        self.displays = SqliteDisplayRepository(session)
        self.responses = SqliteResponseRepository(session)
        self.products = SqliteProductRepository(session)
        self.languages = SqliteLanguageRepository(session)


class Store:
    """Entry point to the relational store.

    Create via :meth:`Store.open` or pass a pre-built engine to the
    constructor (testing / DI).
    """

    def __init__(
        self,
        engine: Engine,
        *,
        session_factory: sessionmaker[Session] | None = None,
        default_timeout: float = DEFAULT_TRANSACTION_TIMEOUT,
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory or create_session_factory(engine)
        self._default_timeout = default_timeout
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str = ":memory:",
        *,
        url: str | None = None,
        default_timeout: float = DEFAULT_TRANSACTION_TIMEOUT,
    ) -> Store:
        """Create the engine, initialize the schema, and return a ready Store."""
        engine = create_store_engine(path, url=url)
        init_db(engine)
        return cls(engine, default_timeout=default_timeout)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def transaction(self, *, timeout: float | None = None) -> Iterator[UnitOfWork]:
        """Run the enclosed block in one transaction.

        Args:
            timeout: Seconds the store may wait on locks or statements
                before failing.  Defaults to the store's default timeout.

        Raises:
            DatabaseError: If the driver fails at any point, including commit.
        """
        timeout = self._default_timeout if timeout is None else timeout
        session = self._session_factory()
        try:
            self._apply_timeout(session, timeout)
            yield UnitOfWork(session)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            message = str(getattr(exc, "orig", None) or exc)
            logger.error("Store transaction failed: %s", message)
            raise DatabaseError(message) from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def _apply_timeout(self, session: Session, timeout: float) -> None:
        millis = int(timeout * 1000)
        dialect = self._engine.dialect.name
        if dialect == "sqlite":
            session.execute(text(f"PRAGMA busy_timeout = {millis}"))
        elif dialect == "postgresql":
            session.execute(text(f"SET LOCAL statement_timeout = {millis}"))

    def close(self) -> None:
        """Dispose the engine. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._engine.dispose()
