"""
Fixtures shared by the test modules of multiple layers (pytest discovers this file by itself).
"""

from typing import Generator

import pytest
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from referee.db.schema import Base
from referee.db.sql_repository import SQLGameRepository

# One in-memory SQLite database, shared by every connection of the pool
_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_SessionFactory = sessionmaker(autoflush=False, bind=_engine)


@pytest.fixture
def sqlite_engine() -> Engine:
    Base.metadata.create_all(bind=_engine)
    return _engine


@pytest.fixture
def db_session_repo(sqlite_engine: Engine) -> Generator[Session, None, None]:
    """Session on empty tables. Everything is dropped at teardown, so repository tests cannot see each other's games."""
    db = _SessionFactory()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=sqlite_engine)


@pytest.fixture
def db_session_shared(sqlite_engine: Engine) -> Generator[Session, None, None]:
    """Session on tables that survive the test, like several service instances talking to one database."""
    db = _SessionFactory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def sql_repository(db_session_repo: Session) -> SQLGameRepository:
    return SQLGameRepository(db_session_repo)
