"""Generate database session"""

from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from referee.core.config import Settings
from referee.db.schema import Base


def make_engine(settings: Optional[Settings] = None) -> Engine:
    """Engine for the configured database. Ensures all tables are created."""
    settings = settings or Settings.from_env()
    engine = create_engine(settings.database_url, echo=settings.sql_echo)
    Base.metadata.create_all(bind=engine)
    return engine


def make_session_factory(settings: Optional[Settings] = None) -> sessionmaker[Session]:
    return sessionmaker(bind=make_engine(settings))


def get_db(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
