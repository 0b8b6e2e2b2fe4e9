"""SQLAlchemy units of work: one over the identity tables, one over the cabling graph.

``startup()`` binds a single engine for the process. Each unit of work opens one
session on it and discards the transaction unless ``commit()`` is called.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from patchbay.adapters.sqlalchemy.mappings import start_mappers
from patchbay.adapters.sqlalchemy.migrations import upgrade_head
from patchbay.adapters.sqlalchemy.repositories import (
    SqlAlchemyAllocationRepository,
    SqlAlchemyGraphRepository,
    SqlAlchemyPoolRepository,
    SqlAlchemyPrintTaskRepository,
    SqlAlchemySequenceRepository,
)
from patchbay.config.storage import get_database_config
from patchbay.domain.ports.unit_of_work import (
    ConnectivityRepositories,
    IdentityRepositories,
    RepositoryCollection,
)

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

_NOT_OPEN = "Unit of work is not open; use it as a context manager"


class StartupError(RuntimeError):
    """Raised when storage is used before ``startup()`` or a unit of work outside its block."""


class _Storage:
    """The process-wide engine and the session factory bound to it."""

    def __init__(self) -> None:
        self.engine: Engine | None = None
        self._sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self._sessions = (
            None if engine is None else sessionmaker(bind=engine, expire_on_commit=False)
        )

    @property
    def sessions(self) -> sessionmaker[Session]:
        if self._sessions is None:
            raise StartupError(
                "patchbay storage is not started. Call "
                "patchbay.adapters.sqlalchemy.unit_of_work.startup() first."
            )
        return self._sessions


_STORAGE = _Storage()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the process-wide engine and migrate its schema to the latest revision.

    Without an explicit ``engine`` one is built from ``database_uri`` or the
    storage configuration; SQLite engines wait for the write lock.
    """

    if _STORAGE.engine is not None and not force:
        raise StartupError("patchbay storage is already started. Pass force=True to rebind.")

    if engine is None:
        database = get_database_config(uri=database_uri)
        engine = create_engine(database.uri, **database.engine_options())
    start_mappers()
    upgrade_head(engine=engine)
    _STORAGE.bind(engine)
    log.debug("Storage started on %s", engine.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _STORAGE.engine


def is_started() -> bool:
    return _STORAGE.engine is not None


def shutdown() -> None:
    """Dispose the bound engine so a later ``startup()`` starts from scratch."""

    if _STORAGE.engine is not None:
        _STORAGE.engine.dispose()
    _STORAGE.bind(None)


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session, one transaction, one repository collection.

    Leaving the block without ``commit()`` discards the transaction; leaving it
    with an exception rolls back explicitly before the session is closed.
    """

    def __init__(self) -> None:
        self._sessions = _STORAGE.sessions
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self._sessions()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError(_NOT_OPEN)
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError(_NOT_OPEN)
        return self._session


class SqlAlchemyIdentityUnitOfWork(BaseSqlAlchemyUnitOfWork[IdentityRepositories]):
    """Counter, allocations, pool and print tasks in one session transaction."""

    def _build_repositories(self, session: Session) -> IdentityRepositories:
        return IdentityRepositories(
            sequence=SqlAlchemySequenceRepository(session),
            allocations=SqlAlchemyAllocationRepository(session),
            pool=SqlAlchemyPoolRepository(session),
            print_tasks=SqlAlchemyPrintTaskRepository(session),
        )


class SqlAlchemyConnectivityUnitOfWork(BaseSqlAlchemyUnitOfWork[ConnectivityRepositories]):
    def _build_repositories(self, session: Session) -> ConnectivityRepositories:
        return ConnectivityRepositories(graph=SqlAlchemyGraphRepository(session))
