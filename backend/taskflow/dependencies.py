"""
TaskFlow Backend - FastAPI Dependencies
========================================

What:  Resolves the process-wide TaskStore for route handlers.
How:   The lifespan stores the TaskStore on `app.state.task_store`; this
       dependency reads it back per request. Tests replace it through
       `app.dependency_overrides[get_task_store]`.
"""

from fastapi import Request

from taskflow.exceptions import InternalError
from taskflow.services.task_store import TaskStore


def get_task_store(request: Request) -> TaskStore:
    store = getattr(request.app.state, "task_store", None)
    if store is None:
        raise InternalError(message="Task store is not initialized")
    return store
