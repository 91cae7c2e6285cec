"""
TaskFlow Backend - Request Logging Middleware
==============================================

What:  One access log line per HTTP request.
How:   Measures time around call_next and logs method, path, query string,
       status, duration, request id and client IP on the `taskflow.access`
       logger. The level follows the status class:
           5xx → ERROR, 4xx → WARNING, everything else → INFO
When:  Runs after RequestIDMiddleware, so the request id is available.

Request bodies are never logged; task text stays out of the access log.
/health is skipped.

An exception escaping the routes is logged with its stack trace and answered
with a generic 500 here, inside the middleware stack, so the response still
carries X-Request-ID and the security headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from taskflow.exceptions import GENERIC_SERVER_ERROR
from taskflow.middleware.request_id import request_id_var

logger = logging.getLogger("taskflow.access")
error_logger = logging.getLogger(__name__)

SKIPPED_PATHS = {"/health"}


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logged information:
        - Request: method, path (+ query string), client IP
        - Response: status code, duration in milliseconds
        - Correlation: request id from RequestIDMiddleware

    Typical durations:
        - GET /api/tasks: 2-20ms
        - POST /api/tasks: 2-10ms
    """

    async def _call_app(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            error_logger.error(
                "[%s] Unhandled error on %s %s: %s",
                request_id_var.get(""),
                request.method,
                request.url.path,
                str(exc),
                exc_info=exc,
            )
            return JSONResponse(status_code=500, content={"error": GENERIC_SERVER_ERROR})

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await self._call_app(request, call_next)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        target = f"{path}?{request.url.query}" if request.url.query else path

        response = await self._call_app(request, call_next)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        rid = request_id_var.get("")

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            method,
            target,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
