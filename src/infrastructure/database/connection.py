# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in production.
An ``sqlite+aiosqlite`` URL is also accepted (local runs and tests); for
it the engine is configured so SAVEPOINTs behave like PostgreSQL's.

Example:
    from src.infrastructure.database.connection import init_database, get_session

    # Initialize at application startup
    await init_database(settings)

    # Use in request handlers and jobs
    async with get_session() as session:
        result = await session.execute(select(Enrollment))
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Module-level state for the API process
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

# Worker threads keep their own engine bound to their own event loop
_thread_local = threading.local()


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let pysqlite emit BEGIN itself so nested transactions work.

    Args:
        engine: Engine created for an SQLite URL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(settings: "Settings") -> AsyncEngine:
    """Create an async engine for the configured database.

    Args:
        settings: Application settings.

    Returns:
        Configured AsyncEngine.
    """
    db = settings.db
    if db.is_sqlite:
        kwargs: dict[str, Any] = {"echo": db.echo}
        if db.url == "sqlite+aiosqlite://" or ":memory:" in db.url:
            # All sessions share the single in-memory connection
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(db.url, **kwargs)
        enable_sqlite_savepoints(engine)
        return engine

    return create_async_engine(
        db.url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
        echo=db.echo,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used everywhere in the service."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: "Settings") -> None:
    """Initialize the database connection pool.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = build_engine(settings)
        _sessionmaker = build_sessionmaker(_engine)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def close_database() -> None:
    """Close the database connection pool."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def _session_scope(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async session.

    The session is committed on success and rolled back on exception.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    async with _session_scope(get_sessionmaker()) as session:
        yield session


@asynccontextmanager
async def get_worker_session() -> AsyncIterator[AsyncSession]:
    """Get a session for a Dramatiq worker thread.

    Each worker thread gets an engine created lazily on first use, bound
    to the thread's persistent event loop (see tasks.base.run_async).

    Yields:
        AsyncSession for database operations.
    """
    sessionmaker = getattr(_thread_local, "sessionmaker", None)
    if sessionmaker is None:
        from src.core.config import get_settings

        engine = build_engine(get_settings())
        sessionmaker = build_sessionmaker(engine)
        _thread_local.engine = engine
        _thread_local.sessionmaker = sessionmaker
        logger.debug("Created worker engine for thread %s", threading.current_thread().name)

    async with _session_scope(sessionmaker) as session:
        yield session


def _clear_thread_db_connections() -> None:
    """Forget the current thread's engine.

    Called by run_async() when a new event loop is created for a thread;
    the old engine is bound to the closed loop and cannot be reused.
    """
    _thread_local.engine = None
    _thread_local.sessionmaker = None
