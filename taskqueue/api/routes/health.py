"""
Health check routes.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError

from taskqueue import __version__
from taskqueue.db import Database, get_database
from taskqueue.observability.metrics import get_metrics
from taskqueue.types.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _database_healthy(database: Database) -> bool:
    try:
        return await database.ping()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database ping failed: {e}")
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and database connection.",
)
async def health_check(
    database: Database = Depends(get_database),
) -> HealthResponse:
    """
    Perform a health check.

    Checks database connectivity and returns service status.
    """
    healthy = await _database_healthy(database)

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        database="healthy" if healthy else "unhealthy",
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(
    database: Database = Depends(get_database),
) -> dict:
    """Kubernetes readiness probe endpoint."""
    return {"ready": await _database_healthy(database)}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes liveness probe endpoint."""
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
