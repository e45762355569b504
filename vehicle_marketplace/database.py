"""
Database configuration and session management for the marketplace.

This module sets up the single process-wide connection pool using SQLAlchemy
and provides a session factory, a request-scoped session dependency and a
transaction helper for multi-statement writes.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import DATABASE_URL, DB_MAX_OVERFLOW, DB_POOL_SIZE, DB_POOL_TIMEOUT

logger = logging.getLogger(__name__)


def build_engine(url: str):
    """
    Create a SQLAlchemy engine for the given URL.

    Pool sizing only applies to pooled server databases; SQLite (used by the
    test suite and local experiments) gets its default pool and is allowed to
    be shared across threads.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT,
        pool_pre_ping=True,
    )


# Create SQLAlchemy engine
engine = build_engine(DATABASE_URL)

# Create SessionLocal class for database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative models
Base = declarative_base()


def get_db() -> Iterator[Session]:
    """
    Dependency function that provides a database session.

    The session is closed on every exit path so its connection always goes
    back to the pool.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a block of statements as one atomic unit.

    Commits when the block finishes, rolls back on any exception (including
    domain validation errors raised halfway through) and re-raises it.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("Transaction rolled back")
        raise


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401  (registers the tables on Base.metadata)

    Base.metadata.create_all(bind=bind or engine)


def dispose_engine() -> None:
    """Close every pooled connection. Called on application shutdown."""
    engine.dispose()
    logger.info("Database pool closed")
