"""SQLAlchemy engine and session management."""

from functools import lru_cache
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from rotaleave.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Build the engine on first use so importing models needs no driver."""
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.ENVIRONMENT == "development",
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


def session_factory() -> sessionmaker[Session]:
    return sessionmaker(get_engine(), expire_on_commit=False)


def get_db() -> Iterator[Session]:
    """Yield a session, committing on success and rolling back on error."""
    with session_factory()() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
