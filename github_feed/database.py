"""
Database Module

This module handles database connections and provides session management.
"""
import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Cache for database engines
_engines = {}


def _is_memory_url(database_url):
    return database_url in ("sqlite://", "sqlite:///:memory:")


def get_engine(database_url):
    """
    Get or create a database engine for the given URL.

    In-memory SQLite databases are pinned to a single connection so every
    session sees the same data.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine instance
    """
    if database_url not in _engines:
        kwargs = {}
        if "sqlite" in database_url:
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_url(database_url):
                kwargs["poolclass"] = StaticPool
        _engines[database_url] = create_engine(database_url, echo=False, **kwargs)
        logger.debug(f"Created engine for {database_url}")
    return _engines[database_url]


def dispose_engine(database_url):
    """Dispose and forget the cached engine for the given URL, if any."""
    engine = _engines.pop(database_url, None)
    if engine is not None:
        engine.dispose()


@contextmanager
def get_sync_session(engine):
    """
    Get a database session for the given engine.

    Args:
        engine: SQLAlchemy Engine instance

    Yields:
        Session instance
    """
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
