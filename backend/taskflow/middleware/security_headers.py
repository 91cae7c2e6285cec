"""
TaskFlow Backend - Security Headers Middleware
===============================================

What:  Adds a fixed set of hardening headers to every response.
How:   Sets each header unless the route already set it.

Headers:
    X-Content-Type-Options: nosniff          (no MIME sniffing of JSON)
    X-Frame-Options: DENY                    (API responses are never framed)
    Referrer-Policy: no-referrer
    X-XSS-Protection: 0                      (legacy auditor disabled)
    Cross-Origin-Resource-Policy: same-origin
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "X-XSS-Protection": "0",
    "Cross-Origin-Resource-Policy": "same-origin",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
