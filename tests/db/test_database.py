"""Unit tests for referee/db/database.py"""

from pathlib import Path

import pytest
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from referee.core.config import Settings
from referee.db.database import get_db, make_engine, make_session_factory

IN_MEMORY = Settings(database_url="sqlite://")


def test_make_engine_creates_tables() -> None:
    engine = make_engine(IN_MEMORY)
    assert "games" in inspect(engine).get_table_names()


def test_make_engine_reads_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'games.db'}"
    monkeypatch.setenv("REFEREE_DATABASE_URL", url)
    engine = make_engine()
    assert str(engine.url) == url
    assert (tmp_path / "games.db").exists()


def test_get_db_closes_session() -> None:
    sessions = get_db(make_session_factory(IN_MEMORY))
    db = next(sessions)
    assert isinstance(db, Session)

    db.begin()
    assert db.in_transaction()
    sessions.close()
    assert not db.in_transaction()
