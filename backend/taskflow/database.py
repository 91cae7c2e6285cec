"""
TaskFlow Backend - Database Session Management
===============================================

What:  Async SQLAlchemy engine/session-factory builders, the declarative Base
       and a transactional session scope.
How:   The app lifespan builds one engine and one session factory at startup
       and hands the factory to the Task Store. Every store operation opens
       its own session through `session_scope()`, which commits on success,
       rolls back on error and always closes.
When:  Engine is created at startup and disposed at shutdown; sessions are
       created per store operation.

Connection Pooling (server databases only):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

SQLite URLs (tests, local development) skip the pool options; SQLAlchemy
picks the pool class for the aiosqlite dialect itself. Every SQLite
connection also gets a `py_casefold()` SQL function: the built-in lower()
folds ASCII only, so case-insensitive search uses Python's str.casefold.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from taskflow.config import settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, `create_schema()` and
    Alembic's autogenerate.
    """
    pass


# ── SQLite Functions ──────────────────────────────────────────────────────
SQLITE_CASEFOLD_FUNCTION = "py_casefold"


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record) -> None:
    dbapi_connection.create_function(SQLITE_CASEFOLD_FUNCTION, 1, _casefold)


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine for `database_url` (defaults to settings).

    SQL echo is enabled when LOG_LEVEL is DEBUG.
    """
    url = database_url or settings.database_url
    options = {"echo": settings.log_level == "DEBUG"}
    if url.startswith("sqlite"):
        engine = create_async_engine(url, **options)
        event.listen(engine.sync_engine, "connect", _register_sqlite_functions)
        return engine

    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return create_async_engine(url, **options)


# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, so the
# store can serialize a row after its transaction has closed
def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ── Session Scope ─────────────────────────────────────────────────────────
@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session wrapped in one transaction.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the caller
        3. On success: commits
        4. On any error: rolls back and re-raises
        5. Always: closes the session (returns the connection to the pool)

    Example:
        async with session_scope(factory) as session:
            session.add(task)
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_schema(engine: AsyncEngine) -> None:
    """
    What:  Creates any missing tables and indexes from the ORM metadata.
    When:  Startup with DB_AUTO_CREATE=true, and in the test suite.
    """
    # Registers the tasks table on Base.metadata
    from taskflow.models.task import Task  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
