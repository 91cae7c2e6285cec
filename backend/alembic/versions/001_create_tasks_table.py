"""Create tasks table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `tasks` table and its query indexes.
How:   Portable column types; on PostgreSQL also enables pg_trgm and adds a
       trigram GIN index over `text` for ILIKE '%term%' search.

Rollback: downgrade() drops the table (all tasks are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the tasks table, its indexes and (PostgreSQL) the trigram index."""
    op.create_table(
        "tasks",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Store-assigned identifier, never reused",
        ),
        sa.Column(
            "text",
            sa.String(500),
            nullable=False,
            comment="Trimmed task text (1-500 characters)",
        ),
        sa.Column(
            "completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment="Completion flag",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            comment="When the task was created (UTC)",
        ),
        sa.Column(
            "last_modified",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            comment="When the task was last updated or toggled (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    # Filter by completion status
    op.create_index("idx_tasks_completed", "tasks", ["completed"])

    # Default listing: newest first
    op.create_index("idx_tasks_created_at", "tasks", [sa.text("created_at DESC")])

    # Filter + default sort in one index scan
    op.create_index(
        "idx_tasks_completed_created_at",
        "tasks",
        ["completed", sa.text("created_at DESC")],
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
        op.create_index(
            "idx_tasks_text_trgm",
            "tasks",
            ["text"],
            postgresql_using="gin",
            postgresql_ops={"text": "gin_trgm_ops"},
        )


def downgrade() -> None:
    """Drop the tasks table and its indexes."""
    if op.get_bind().dialect.name == "postgresql":
        op.drop_index("idx_tasks_text_trgm", table_name="tasks")
    op.drop_index("idx_tasks_completed_created_at", table_name="tasks")
    op.drop_index("idx_tasks_created_at", table_name="tasks")
    op.drop_index("idx_tasks_completed", table_name="tasks")
    op.drop_table("tasks")
