"""
Cemetery Records Service: Health Check Route
=============================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Runs `SELECT 1` against the engine. The database is the only hard
       dependency, so the service is either healthy or unhealthy (HTTP 503).
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from cemetery import __version__
from cemetery.database import engine
from cemetery.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
