"""
POS Monitor Database Session Management

Async SQLAlchemy engine and session factory for the backend chosen at
startup. The embedded backend is a single SQLite file; the remote backend
is pooled PostgreSQL via asyncpg.
"""

from pathlib import Path

import structlog
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import StorageConfig
from core.errors import ConfigurationError

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""
    pass


def _enable_sqlite_pragmas(dbapi_connection, connection_record):
    # Referential integrity is off by default in SQLite
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def ensure_database_directory(db_path: Path) -> None:
    """Create the directory holding the embedded database file."""
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("storage.directory_failed", path=str(db_path.parent), error=str(exc))
        raise ConfigurationError(
            f"Cannot create database directory {db_path.parent}: {exc.strerror or exc}"
        ) from exc


def create_storage_engine(config: StorageConfig) -> AsyncEngine:
    """Build the async engine for the resolved backend."""
    if config.is_embedded:
        if config.database_path is not None and str(config.database_path) != ":memory:":
            ensure_database_directory(config.database_path)
        engine = create_async_engine(config.url, echo=config.echo)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_pragmas)
        return engine

    return create_async_engine(
        config.url,
        echo=config.echo,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
