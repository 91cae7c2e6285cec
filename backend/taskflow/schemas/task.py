"""
TaskFlow Backend - Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the API contract.
How:   FastAPI validates request bodies against the request models and
       serializes the response models (camelCase keys) into JSON.
Who:   Request models are built by route handlers and consumed by the Task
       Store; response models are produced by the Task Store.

Schemas are kept separate from the SQLAlchemy model: the JSON contract uses
camelCase (`createdAt`, `lastModified`) while the table uses snake_case.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100

SortField = Literal["createdAt", "lastModified", "text", "completed", "id"]
SortOrder = Literal["asc", "desc"]


# ══════════════════════════════════════════════════════════════════════════
# Request Models - What clients send
# ══════════════════════════════════════════════════════════════════════════


class TaskCreate(BaseModel):
    """
    Body of POST /api/tasks.

    `text` is optional at the schema level so that a missing, empty and
    whitespace-only text all reach the Task Store and fail with the same
    "Task text is required" message.
    """
    text: Optional[str] = Field(default=None, description="Task text (1-500 characters after trimming)")


class TaskUpdate(BaseModel):
    """
    Body of PUT /api/tasks/{id}.

    Partial update: a field that is absent from the body is left unchanged.
    Presence is read from `model_fields_set`, so `{"completed": null}` is
    distinguishable from `{}`.
    """
    text: Optional[str] = Field(default=None, description="New task text")
    completed: Optional[StrictBool] = Field(default=None, description="New completion flag")

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class TaskQuery(BaseModel):
    """
    Filter, sort and pagination options for listing tasks.

    Parameters:
        search:    Case-insensitive substring of `text`; blank is ignored
        completed: Only tasks with this completion flag
        page:      1-based page number
        limit:     Page size (default 10); values above 100 are capped to 100
        sortBy:    Field to order by (default createdAt)
        sortOrder: asc | desc (default desc)
    """
    search: Optional[str] = None
    completed: Optional[bool] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1)
    sort_by: SortField = Field(default="createdAt", alias="sortBy")
    sort_order: SortOrder = Field(default="desc", alias="sortOrder")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("limit")
    @classmethod
    def cap_limit(cls, v: int) -> int:
        return min(v, MAX_PAGE_LIMIT)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ══════════════════════════════════════════════════════════════════════════
# Response Models - What the API returns
# ══════════════════════════════════════════════════════════════════════════


class TaskRead(BaseModel):
    """
    Full representation of a task.

    JSON shape: {id, text, completed, createdAt, lastModified}
    """
    id: int = Field(description="Store-assigned task identifier")
    text: str = Field(description="Task text")
    completed: bool = Field(description="Completion flag")
    created_at: datetime = Field(description="Creation time (UTC ISO 8601)")
    last_modified: datetime = Field(description="Last update or toggle time (UTC ISO 8601)")

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("created_at", "last_modified")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        # SQLite hands timestamps back without tzinfo; they were written as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class PaginationMeta(BaseModel):
    """Position of a page within the full matching set."""
    total: int = Field(description="Number of tasks matching the filter")
    page: int = Field(description="Requested page (1-based)")
    limit: int = Field(description="Page size")
    pages: int = Field(description="ceil(total / limit)")


class TaskListResponse(BaseModel):
    """Body of GET /api/tasks."""
    tasks: List[TaskRead] = Field(description="Tasks on the requested page")
    pagination: PaginationMeta


class ErrorResponse(BaseModel):
    """
    Error body for every non-2xx response.

    Example:
        {"error": "Task not found"}
    """
    error: str = Field(description="Human-readable error description")


class ServiceInfo(BaseModel):
    """Body of GET /."""
    name: str
    version: str


class HealthResponse(BaseModel):
    """Body of GET /health."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
