"""
TaskFlow Backend - Task Route Handlers
=======================================

What:  HTTP surface of the Task Store.
How:   Parses path/query/body into typed values, calls the TaskStore,
       returns its result with the status code for the operation. Errors
       raised by the store are turned into responses by the global handlers
       in main.py.

Routes:
    GET    /api/tasks                 → list        (200)
    POST   /api/tasks                 → create      (201)
    GET    /api/tasks/{id}            → get         (200)
    PUT    /api/tasks/{id}            → update      (200)
    PATCH  /api/tasks/{id}/toggle     → toggle      (200)
    DELETE /api/tasks/{id}            → delete      (204, no body)

A path id that is not an integer, or a query value out of range, fails
FastAPI validation and is answered with 400.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response

from taskflow.dependencies import get_task_store
from taskflow.schemas.task import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    ErrorResponse,
    SortField,
    SortOrder,
    TaskCreate,
    TaskListResponse,
    TaskQuery,
    TaskRead,
    TaskUpdate,
)
from taskflow.services.task_store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Tasks"])

_NOT_FOUND = {404: {"description": "Task not found", "model": ErrorResponse}}
_BAD_REQUEST = {400: {"description": "Invalid input", "model": ErrorResponse}}


@router.get(
    "/tasks",
    response_model=TaskListResponse,
    responses={
        200: {"description": "Page of matching tasks", "model": TaskListResponse},
        **_BAD_REQUEST,
    },
    summary="List tasks with search, filter, sort and pagination",
)
async def list_tasks(
    response: Response,
    search: str | None = Query(
        default=None,
        description="Case-insensitive substring to look for in task text",
    ),
    completed: bool | None = Query(
        default=None,
        description="Only tasks with this completion flag",
    ),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(
        default=DEFAULT_PAGE_LIMIT, ge=1,
        description=f"Tasks per page; larger values are capped to {MAX_PAGE_LIMIT}",
    ),
    sort_by: SortField = Query(default="createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    store: TaskStore = Depends(get_task_store),
) -> TaskListResponse:
    """
    Example:
        GET /api/tasks?search=milk&completed=false&page=2&limit=10
    """
    result = await store.list_tasks(
        TaskQuery(
            search=search,
            completed=completed,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    )
    response.headers["X-Total-Count"] = str(result.pagination.total)
    return result


@router.post(
    "/tasks",
    status_code=201,
    response_model=TaskRead,
    responses={201: {"description": "Task created", "model": TaskRead}, **_BAD_REQUEST},
    summary="Create a task",
)
async def create_task(
    body: TaskCreate,
    store: TaskStore = Depends(get_task_store),
) -> TaskRead:
    return await store.create(body.text)


@router.get(
    "/tasks/{task_id}",
    response_model=TaskRead,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Get a single task",
)
async def get_task(
    task_id: int,
    store: TaskStore = Depends(get_task_store),
) -> TaskRead:
    return await store.get(task_id)


@router.put(
    "/tasks/{task_id}",
    response_model=TaskRead,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Update text and/or completion flag",
    description="Fields omitted from the body are left unchanged.",
)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    store: TaskStore = Depends(get_task_store),
) -> TaskRead:
    return await store.update(task_id, body)


@router.patch(
    "/tasks/{task_id}/toggle",
    response_model=TaskRead,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Flip the completion flag",
)
async def toggle_task(
    task_id: int,
    store: TaskStore = Depends(get_task_store),
) -> TaskRead:
    return await store.toggle_complete(task_id)


@router.delete(
    "/tasks/{task_id}",
    status_code=204,
    response_class=Response,
    responses={204: {"description": "Task deleted"}, **_BAD_REQUEST, **_NOT_FOUND},
    summary="Delete a task",
)
async def delete_task(
    task_id: int,
    store: TaskStore = Depends(get_task_store),
) -> Response:
    await store.delete(task_id)
    return Response(status_code=204)
