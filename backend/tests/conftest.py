"""
TaskFlow Backend - Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets its own SQLite database file (aiosqlite) under
       tmp_path; the app's get_task_store dependency is overridden with a
       TaskStore bound to that file.

Fixture Hierarchy (all function-scoped):
    ├── task_store:           TaskStore on a fresh SQLite database
    ├── app:                  FastAPI app from create_app(), store overridden
    ├── test_client:          HTTPX AsyncClient over ASGITransport
    ├── broken_session_factory: Session factory whose queries raise OperationalError
    └── make_tasks:           Helper that creates N tasks through the store
"""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any taskflow import reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["CORS_ORIGINS"] = "http://localhost:3000"

from taskflow.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    create_schema,
    dispose_engine,
)
from taskflow.dependencies import get_task_store  # noqa: E402
from taskflow.services.task_store import TaskStore  # noqa: E402


@pytest_asyncio.fixture
async def task_store(tmp_path):
    """
    A TaskStore on an empty SQLite database file.

    Usage:
        async def test_create(task_store):
            task = await task_store.create("Buy milk")
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}")
    await create_schema(engine)
    try:
        yield TaskStore(build_session_factory(engine))
    finally:
        await dispose_engine(engine)


@pytest.fixture
def app(task_store):
    """FastAPI app whose routes use the per-test task_store."""
    from taskflow.main import create_app

    application = create_app()
    application.dependency_overrides[get_task_store] = lambda: task_store
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    Async HTTP client talking to the app in-process.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/api/tasks")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def broken_session_factory():
    """
    Session factory whose sessions fail every query with OperationalError.

    The session mock is exposed as `factory.session` for assertions.
    """
    session = AsyncMock()
    session.__aenter__.return_value = session
    session.__aexit__.return_value = False
    session.bind.dialect.name = "postgresql"
    error = OperationalError("SELECT 1", {}, Exception("connection refused: db.internal:5432"))
    session.execute.side_effect = error
    session.get.side_effect = error
    session.flush.side_effect = error
    session.add = MagicMock()

    factory = MagicMock(return_value=session)
    factory.session = session
    return factory


@pytest.fixture
def make_tasks(task_store):
    """Create `count` tasks named "Task 1".."Task N" and return them in creation order."""

    async def _make(count: int, prefix: str = "Task"):
        return [await task_store.create(f"{prefix} {i}") for i in range(1, count + 1)]

    return _make
