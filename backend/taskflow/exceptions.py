"""
TaskFlow Backend - Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for each failure the API can report.
How:   Each exception carries a client-safe message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       HTTP status codes and `{"error": message}` bodies.
Who:   Raised by the Task Store, dependencies and middleware.

Exception Hierarchy:
    TaskFlowError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── InternalError            → 500 Internal Server Error
        └── DatabaseError        → 500 Internal Server Error

The context dict is written to the server log only. It never appears in a
response body.
"""

from typing import Any, Dict, Optional

# Body text of every 500 response
GENERIC_SERVER_ERROR = "Internal Server Error"


class TaskFlowError(Exception):
    """
    Base exception for all TaskFlow application errors.

    Attributes:
        message:  Client-facing error description
        context:  Extra debug info (logged, NOT returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TaskFlowError):
    """
    Raised when client input fails a business rule.

    When:    Empty or over-long task text, a null where a value is required.
    HTTP:    400 Bad Request

    Example response:
        {"error": "Task text is required"}
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(TaskFlowError):
    """
    Raised when a referenced resource does not exist.

    When:    PUT/PATCH/DELETE/GET /api/tasks/{id} with an id not in the store.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing rows; the Task Store converts that
    None into this exception.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource_id = resource_id


class InternalError(TaskFlowError):
    """
    Raised for failures the client cannot fix.

    HTTP:    500 Internal Server Error
    The response body is always the generic message; `message` and `context`
    go to the log.
    """

    def __init__(
        self,
        message: str = "An internal error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(InternalError):
    """
    Raised when a database operation fails.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.
    HTTP:    500 Internal Server Error

    The driver's message (SQL text, constraint names) is kept in `context`
    for operators and is never returned to the API consumer.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(TaskFlowError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
