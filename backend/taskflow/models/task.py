"""
TaskFlow Backend - Task SQLAlchemy Model
=========================================

What:  ORM model for the `tasks` table.
Who:   Used by the Task Store for CRUD and search; read by Alembic.

Table Design:
    - id: Integer autoincrement. On SQLite the table is declared
      AUTOINCREMENT so ids of deleted rows are never handed out again;
      PostgreSQL sequences never reuse values.
    - text: Trimmed task text, 1-500 characters.
    - completed: Completion flag, indexed for filter queries.
    - created_at / last_modified: UTC timestamps. created_at is indexed
      DESC for the default "newest first" listing.

The substring-search index over `text` (pg_trgm GIN) is PostgreSQL-only and
is created by migration 001, not by this model.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Index, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TIMESTAMP

from taskflow.database import Base

MAX_TEXT_LENGTH = 500


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(Base):
    """
    One to-do item.

    Lifecycle:
        1. Created by TaskStore.create (created_at == last_modified)
        2. Mutated by TaskStore.update / toggle_complete (last_modified advances)
        3. Removed permanently by TaskStore.delete

    Query Patterns:
        - Point lookup:      WHERE id = :id                      → primary key
        - Filter + newest:   WHERE completed = :c
                             ORDER BY created_at DESC, id DESC   → idx_tasks_completed_created_at
        - Newest first:      ORDER BY created_at DESC, id DESC   → idx_tasks_created_at
    """

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Store-assigned identifier, never reused",
    )

    text: Mapped[str] = mapped_column(
        String(MAX_TEXT_LENGTH),
        nullable=False,
        comment="Trimmed task text (1-500 characters)",
    )

    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Completion flag",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the task was created (UTC)",
    )

    last_modified: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the task was last updated or toggled (UTC)",
    )

    __table_args__ = {"sqlite_autoincrement": True}

    def __repr__(self) -> str:
        return (
            f"<Task(id={self.id}, completed={self.completed}, "
            f"created_at='{self.created_at}')>"
        )


# ── Indexes ───────────────────────────────────────────────────────────────
# Declared after the class so the DESC expressions bind to mapped attributes
Index("idx_tasks_completed", Task.completed)
Index("idx_tasks_created_at", Task.created_at.desc())
Index("idx_tasks_completed_created_at", Task.completed, Task.created_at.desc())
