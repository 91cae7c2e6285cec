"""
TaskFlow Backend - FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the lifespan builds the database engine and the TaskStore at startup
       and disposes the engine at shutdown.
Who:   uvicorn (uvicorn taskflow.main:app) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌────────────┐ ┌────────┐ ┌──────────┐ ┌─────────┐ │
    │  │ Rate Limit │→│ Req ID │→│ Security │→│ Logging │ │
    │  └────────────┘ └────────┘ └──────────┘ └─────────┘ │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────┐ ┌─────────┐ ┌──────────────┐  │
    │  │ /api/tasks[/id]  │ │ GET /   │ │ GET /health  │  │
    │  └──────────────────┘ └─────────┘ └──────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌───────────────────────────────────────────────┐  │
    │  │ Validation→400 │ NotFound→404 │ Internal→500  │  │
    │  └───────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Check configuration (problems are logged, startup continues)
    3. Build engine; create tables when DB_AUTO_CREATE is set
    4. Build the TaskStore and store it on app.state

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from taskflow import __version__
from taskflow.config import settings
from taskflow.database import (
    build_engine,
    build_session_factory,
    create_schema,
    dispose_engine,
)
from taskflow.exceptions import (
    GENERIC_SERVER_ERROR,
    InternalError,
    NotFoundError,
    TaskFlowError,
    ValidationError,
)
from taskflow.middleware.logging import RequestLoggingMiddleware
from taskflow.middleware.rate_limit import RateLimitMiddleware
from taskflow.middleware.request_id import RequestIDMiddleware, request_id_var
from taskflow.middleware.security_headers import SecurityHeadersMiddleware
from taskflow.routes import health, tasks
from taskflow.services.task_store import TaskStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Level:  LOG_LEVEL from settings
    Output: stdout (captured by Docker / the process supervisor)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-operation chatter from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Build the process-wide TaskStore on startup; release the engine on
    shutdown. Code before `yield` runs at startup, code after it at shutdown.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("%s starting up...", settings.app_name)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: the API still works, but operators should see this
        logger.warning("Configuration warning: %s", str(e))

    engine = build_engine()
    if settings.db_auto_create:
        await create_schema(engine)
        logger.info("Database schema ensured (DB_AUTO_CREATE)")

    app.state.task_store = TaskStore(build_session_factory(engine))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("%s shutting down...", settings.app_name)
    await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def describe_validation_error(exc: RequestValidationError) -> str:
    """
    First problem of a FastAPI validation failure as one sentence.

    Examples:
        "Invalid task_id: Input should be a valid integer, unable to parse string as an integer"
        "Invalid request body: Field required"
    """
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    target = ".".join(loc) if loc else "request body"
    return f"Invalid {target}: {first.get('msg', 'invalid value')}"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to status codes and `{"error": message}` bodies.

    Handler hierarchy:
        RequestValidationError → 400 (malformed path/query/body)
        ValidationError        → 400
        NotFoundError          → 404
        InternalError          → 500 (generic body, detail logged)
        TaskFlowError (base)   → 500 (generic body, detail logged)
        Exception (fallback)   → 500 (generic body, stack trace logged)
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        message = describe_validation_error(exc)
        logger.warning("[%s] Request validation failed: %s", rid, message)
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": exc.message})

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        rid = request_id_var.get("")
        logger.error(
            "[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context
        )
        return JSONResponse(status_code=500, content={"error": GENERIC_SERVER_ERROR})

    @app.exception_handler(TaskFlowError)
    async def handle_app_error(request: Request, exc: TaskFlowError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content={"error": GENERIC_SERVER_ERROR})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=exc)
        return JSONResponse(status_code=500, content={"error": GENERIC_SERVER_ERROR})


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: FastAPI instance ready to serve once its lifespan has run.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Task-tracking API: create, search, update, toggle and delete short text tasks.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute, so the request-direction order is
    # RateLimit → RequestID → SecurityHeaders → Logging → GZip → CORS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(tasks.router)
    app.include_router(health.router)

    return app


# uvicorn imports `taskflow.main:app`
app = create_app()
