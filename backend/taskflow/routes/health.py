"""
TaskFlow Backend - Service Routes
==================================

What:  GET / (service descriptor) and GET /health (readiness probe).
Who:   Health is called by Docker health checks and load balancers.

Status levels:
    - healthy:   Database answers SELECT 1 (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response

from taskflow import __version__
from taskflow.config import settings
from taskflow.dependencies import get_task_store
from taskflow.exceptions import DatabaseError
from taskflow.schemas.task import HealthResponse, ServiceInfo
from taskflow.services.task_store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Service"])

# Set when the module loads; used for uptime reporting
_start_time = time.time()


@router.get("/", response_model=ServiceInfo, summary="Service descriptor")
async def root() -> ServiceInfo:
    return ServiceInfo(name=settings.app_name, version=__version__)


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    response: Response,
    store: TaskStore = Depends(get_task_store),
) -> HealthResponse:
    """
    Check the service and its database.

    How:     Runs SELECT 1 through the Task Store's session factory.
    Returns: HealthResponse; status code 503 when the database is down.
    """
    db_status = "connected"
    overall = "healthy"

    try:
        await store.ping()
    except DatabaseError as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", e.context)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
