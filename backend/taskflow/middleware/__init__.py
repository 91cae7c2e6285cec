# Middleware package init
"""
TaskFlow Backend - Middleware Package
======================================

Middleware Chain (request direction):
    [Rate Limit] → [Request ID] → [Security Headers] → [Logging]
        → [GZip] → [CORS] → Route Handler

Responses travel the chain in reverse, so the access log sees the final
status code and the request id / security headers are added to every
response, including 4xx and 5xx. An exception escaping the routes is turned
into a 500 by the logging middleware, so it gets the same headers.
"""
