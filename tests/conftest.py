from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from patchbay.adapters.sqlalchemy import start_mappers
from patchbay.adapters.sqlalchemy.migrations import upgrade_head
from patchbay.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyConnectivityUnitOfWork,
    SqlAlchemyIdentityUnitOfWork,
    shutdown,
    startup,
)
from patchbay.config import IdentityConfig, TopologyConfig
from patchbay.domain.connectivity import ConnectivityGraph, TopologyResolver
from patchbay.domain.identity import IdentityAllocator, PoolLedger, PrintTasks

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def identity_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyIdentityUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyIdentityUnitOfWork
    finally:
        shutdown()


@pytest.fixture
def connectivity_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyConnectivityUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyConnectivityUnitOfWork
    finally:
        shutdown()


@pytest.fixture
def identity_config() -> IdentityConfig:
    return IdentityConfig()


@pytest.fixture
def allocator(
    identity_unit_of_work: Callable[[], SqlAlchemyIdentityUnitOfWork],
    identity_config: IdentityConfig,
) -> IdentityAllocator:
    return IdentityAllocator(identity_unit_of_work, identity_config)


@pytest.fixture
def pool(
    identity_unit_of_work: Callable[[], SqlAlchemyIdentityUnitOfWork],
    identity_config: IdentityConfig,
) -> PoolLedger:
    return PoolLedger(identity_unit_of_work, identity_config)


@pytest.fixture
def print_tasks(
    identity_unit_of_work: Callable[[], SqlAlchemyIdentityUnitOfWork],
    identity_config: IdentityConfig,
) -> PrintTasks:
    return PrintTasks(identity_unit_of_work, identity_config)


@pytest.fixture
def graph(
    connectivity_unit_of_work: Callable[[], SqlAlchemyConnectivityUnitOfWork],
) -> ConnectivityGraph:
    return ConnectivityGraph(connectivity_unit_of_work)


@pytest.fixture
def resolver(
    connectivity_unit_of_work: Callable[[], SqlAlchemyConnectivityUnitOfWork],
) -> TopologyResolver:
    return TopologyResolver(connectivity_unit_of_work, TopologyConfig(default_depth=3, max_depth=5))
