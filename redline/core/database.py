"""SQLAlchemy engine, declarative base and session helpers.

Every operation in this service is synchronous, so a single SYNC engine and
session factory are shared by callers, Celery workers and tests. The engine
is created lazily so importing models never opens a connection pool.
"""

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache

import structlog
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from redline.core.config import settings

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine with the pool settings appropriate for ``url``."""
    if url.startswith("sqlite"):
        # SQLite serialises writers itself; wait for the file lock instead of failing
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(
        url,
        echo=echo,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,        # Drop stale connections before reuse
        pool_recycle=1800,         # Recycle connections every 30 min
        pool_timeout=30,           # Wait max 30s for a pool connection before raising
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    engine = build_engine(settings.DATABASE_URL, echo=settings.APP_DEBUG)
    logger.info("database.engine_created", dialect=engine.dialect.name)
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), expire_on_commit=False)


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Context manager that yields a sync SQLAlchemy session.

    Commits on clean exit, rolls back on exception, and always closes.

    Usage::

        with session_scope() as session:
            version = session.get(DocumentVersion, version_id)
    """
    session: Session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
