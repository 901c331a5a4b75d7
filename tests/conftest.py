from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from fanout.adapters.sqlalchemy.migrations import upgrade_head
from fanout.adapters.sqlalchemy.session import shutdown, startup
from fanout.adapters.sqlalchemy.store import SqlAlchemyResourceStore
from tests.helpers.resources import Harness, TickingClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_store(sqlite_session_factory: sessionmaker[Session]) -> SqlAlchemyResourceStore:
    counter = iter(range(1, 10_000))
    return SqlAlchemyResourceStore(
        sqlite_session_factory,
        clock=TickingClock(),
        name_suffix=lambda: f"{next(counter):05d}",
    )


@pytest.fixture
def started_adapter(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()


@pytest.fixture
def harness() -> Harness:
    return Harness()
