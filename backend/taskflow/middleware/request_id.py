"""
TaskFlow Backend - Request ID Middleware
=========================================

What:  Assigns a correlation id to every request and echoes it in the
       X-Request-ID response header.
How:   Reuses a well-formed client-supplied X-Request-ID, otherwise generates
       a short uuid4. The id is stored in a ContextVar for loggers and
       exception handlers, and on request.state for route handlers.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client ids end up in log lines; anything else is replaced
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Read X-Request-ID from the request
        2. Keep it if it is 1-64 characters of [A-Za-z0-9._-]
        3. Otherwise generate a new 8-character id
        4. Store it in request_id_var and request.state.request_id
        5. Add it to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not _VALID_REQUEST_ID.match(rid):
            rid = new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
