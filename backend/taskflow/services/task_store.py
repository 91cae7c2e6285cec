"""
TaskFlow Backend - Task Store
==============================

What:  Owns the task collection: create, get, list (search/filter/sort/page),
       update, toggle and delete.
How:   Each operation runs in its own transaction from `session_scope()`.
       Mutations are serialized by an asyncio.Lock held for the duration of
       the transaction; reads run without the lock and see only committed
       rows.
Who:   Constructed once in the app lifespan; route handlers reach it through
       the `get_task_store` dependency.

List Flow:
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌────────────┐
    │  Filter  │───▶│  Count all   │───▶│  Sort        │───▶│  Skip /    │
    │ search + │    │  matches     │    │  field + id  │    │  limit     │
    │ completed│    │  (total)     │    │              │    │            │
    └──────────┘    └──────────────┘    └──────────────┘    └────────────┘

    The count and the page query share one transaction, so `total` and the
    returned page describe the same snapshot.

Error Handling:
    Business rule failures raise ValidationError / NotFoundError. Any
    SQLAlchemyError is logged with its detail and re-raised as DatabaseError;
    the transaction is rolled back by session_scope().
"""

import asyncio
import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import ColumnElement, asc, desc, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskflow.database import session_scope
from taskflow.exceptions import DatabaseError, NotFoundError, ValidationError
from taskflow.models.task import MAX_TEXT_LENGTH, Task, utcnow
from taskflow.schemas.task import (
    PaginationMeta,
    TaskListResponse,
    TaskQuery,
    TaskRead,
    TaskUpdate,
)

logger = logging.getLogger(__name__)

# sortBy value → column. Every order also ends on id in the same direction,
# which makes page boundaries deterministic for equal sort keys.
SORT_COLUMNS = {
    "createdAt": Task.created_at,
    "lastModified": Task.last_modified,
    "text": Task.text,
    "completed": Task.completed,
    "id": Task.id,
}

LIKE_ESCAPE = "\\"


def clean_text(value: Any) -> str:
    """
    Trim and validate task text.

    Raises:
        ValidationError: text is missing, not a string, blank, or longer
                         than MAX_TEXT_LENGTH after trimming
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message="Task text is required", field="text")
    cleaned = value.strip()
    if len(cleaned) > MAX_TEXT_LENGTH:
        raise ValidationError(
            message=f"Task text cannot exceed {MAX_TEXT_LENGTH} characters",
            field="text",
            context={"length": len(cleaned)},
        )
    return cleaned


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def text_contains(term: str, dialect_name: str) -> ColumnElement[bool]:
    """
    Case-insensitive substring match on Task.text.

    PostgreSQL uses ILIKE (served by the pg_trgm index). On SQLite both
    sides go through py_casefold(), registered on each connection by
    build_engine(), so non-ASCII letters fold too.
    """
    if dialect_name == "sqlite":
        return func.py_casefold(Task.text).like(
            f"%{escape_like(term.casefold())}%", escape=LIKE_ESCAPE
        )
    return Task.text.ilike(f"%{escape_like(term)}%", escape=LIKE_ESCAPE)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def next_modified(previous: datetime) -> datetime:
    """The current time, bumped past `previous` when the clock has not advanced."""
    previous = _as_utc(previous)
    now = utcnow()
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class TaskStore:
    """
    Task collection backed by an async SQLAlchemy session factory.

    Operations:
        - create():          Validate text, insert, return the new task
        - get():             Point lookup by id
        - list_tasks():      Filtered, sorted, paginated listing
        - update():          Partial update of text and/or completed
        - toggle_complete(): Flip completed
        - delete():          Permanent removal
        - ping():            SELECT 1 for health checks
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """Session scope that converts driver failures into DatabaseError."""
        try:
            async with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
            raise DatabaseError(
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e

    @staticmethod
    async def _get_or_raise(session: AsyncSession, task_id: int) -> Task:
        task = await session.get(Task, task_id)
        if task is None:
            raise NotFoundError(resource="task", resource_id=task_id)
        return task

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, text_value: Any) -> TaskRead:
        """
        Create a task from raw text.

        Returns:
            The stored task with its assigned id; completed is False and
            createdAt == lastModified.

        Raises:
            ValidationError: see clean_text(); nothing is written
        """
        cleaned = clean_text(text_value)
        async with self._write_lock:
            async with self._transaction("create") as session:
                now = utcnow()
                task = Task(
                    text=cleaned,
                    completed=False,
                    created_at=now,
                    last_modified=now,
                )
                session.add(task)
                await session.flush()  # Assigns the autoincrement id
                result = TaskRead.model_validate(task)
        logger.info("Task created: %s", result.id)
        return result

    async def update(self, task_id: int, update: TaskUpdate) -> TaskRead:
        """
        Apply only the fields present in `update`.

        A present `text` is validated like create(); a present `completed`
        must not be null. lastModified is refreshed even when no field is
        present. The id is resolved first, so a missing task is reported as
        NotFoundError whatever the body holds.

        Raises:
            NotFoundError:   no task has `task_id`
            ValidationError: invalid text or null completed (nothing written)
        """
        changes = update.changes()

        async with self._write_lock:
            async with self._transaction("update") as session:
                task = await self._get_or_raise(session, task_id)
                if "text" in changes:
                    changes["text"] = clean_text(changes["text"])
                if "completed" in changes and changes["completed"] is None:
                    raise ValidationError(
                        message="Task completed must be true or false", field="completed"
                    )
                for field, value in changes.items():
                    setattr(task, field, value)
                task.last_modified = next_modified(task.last_modified)
                await session.flush()
                result = TaskRead.model_validate(task)
        logger.info("Task %s updated: fields=%s", task_id, sorted(changes))
        return result

    async def toggle_complete(self, task_id: int) -> TaskRead:
        """
        Flip `completed` and refresh lastModified.

        Not idempotent: two calls restore the original flag.

        Raises:
            NotFoundError: no task has `task_id`
        """
        async with self._write_lock:
            async with self._transaction("toggle") as session:
                task = await self._get_or_raise(session, task_id)
                task.completed = not task.completed
                task.last_modified = next_modified(task.last_modified)
                await session.flush()
                result = TaskRead.model_validate(task)
        logger.info("Task %s toggled: completed=%s", task_id, result.completed)
        return result

    async def delete(self, task_id: int) -> None:
        """
        Remove a task permanently.

        Raises:
            NotFoundError: no task has `task_id`
        """
        async with self._write_lock:
            async with self._transaction("delete") as session:
                task = await self._get_or_raise(session, task_id)
                await session.delete(task)
        logger.info("Task %s deleted", task_id)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, task_id: int) -> TaskRead:
        """
        Raises:
            NotFoundError: no task has `task_id`
        """
        async with self._transaction("get") as session:
            task = await self._get_or_raise(session, task_id)
            return TaskRead.model_validate(task)

    async def list_tasks(self, query: Optional[TaskQuery] = None) -> TaskListResponse:
        """
        List tasks matching a filter, sorted and paginated.

        Composition order:
            1. Filter: search term (case-insensitive substring of text) AND
               completed flag; each is optional
            2. Sort: requested field and direction, then id in the same
               direction
            3. Skip (page - 1) * limit, take limit

        Query plan (default sort, completed filter):
            SELECT ... FROM tasks WHERE completed = :c
            ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset
            → idx_tasks_completed_created_at

        Returns:
            TaskListResponse with the page and {total, page, limit, pages}.
            A page past the end is empty; total is unaffected.
        """
        query = query or TaskQuery()
        term = (query.search or "").strip()

        direction = asc if query.sort_order == "asc" else desc
        ordering = [direction(SORT_COLUMNS[query.sort_by])]
        if query.sort_by != "id":
            ordering.append(direction(Task.id))

        async with self._transaction("list") as session:
            conditions = []
            if term:
                conditions.append(text_contains(term, session.bind.dialect.name))
            if query.completed is not None:
                conditions.append(Task.completed == query.completed)

            count_stmt = select(func.count(Task.id)).where(*conditions)
            page_stmt = (
                select(Task)
                .where(*conditions)
                .order_by(*ordering)
                .offset(query.offset)
                .limit(query.limit)
            )

            total = (await session.execute(count_stmt)).scalar_one()
            rows = (await session.execute(page_stmt)).scalars().all()
            tasks = [TaskRead.model_validate(row) for row in rows]

        return TaskListResponse(
            tasks=tasks,
            pagination=PaginationMeta(
                total=total,
                page=query.page,
                limit=query.limit,
                pages=math.ceil(total / query.limit),
            ),
        )

    async def ping(self) -> None:
        """
        Raises:
            DatabaseError: the database did not answer SELECT 1
        """
        async with self._transaction("ping") as session:
            await session.execute(text("SELECT 1"))
