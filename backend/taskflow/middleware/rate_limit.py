"""
TaskFlow Backend - Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter.
How:   Keeps a deque of request timestamps per client IP. On each request,
       timestamps older than the window are dropped; when the remaining
       count reaches the limit the request is answered with 429 and a
       Retry-After header, otherwise the timestamp is recorded.

Algorithm: Sliding Window Log
    - Each IP: deque of timestamps, oldest on the left
    - Expire:  popleft while oldest <= now - window
    - Reject:  len(deque) >= limit
    - Retry-After: seconds until the oldest timestamp leaves the window

State is per process. Several uvicorn workers each enforce their own limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from taskflow.config import settings
from taskflow.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings unless passed explicitly):
        max_requests: Max requests per window (RATE_LIMIT_REQUESTS)
        window:       Window length in seconds (RATE_LIMIT_WINDOW)

    Excluded paths:
        /health, /docs, /openapi.json, /redoc
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    # Every CLEANUP_INTERVAL recorded requests, IPs with no live timestamps
    # are dropped from the table
    CLEANUP_INTERVAL = 1000

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after, context={"client_ip": client_ip})
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window,
            )
            return JSONResponse(
                status_code=429,
                content={"error": exc.message},
                headers={"Retry-After": str(exc.retry_after)},
            )

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % self.CLEANUP_INTERVAL == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
