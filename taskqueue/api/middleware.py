"""
Request metrics middleware and error handlers.
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from taskqueue.observability.metrics import get_metrics
from taskqueue.types.api import ErrorResponse

logger = logging.getLogger(__name__)

# Paths not worth a latency series of their own
UNTRACKED_PATHS = {"/metrics", "/docs", "/openapi.json", "/live"}


def create_metrics_middleware() -> Callable:
    """
    Create request metrics middleware for FastAPI.

    Returns:
        The middleware function.
    """

    async def metrics_middleware(request: Request, call_next: Callable):
        """Record count and latency per route template."""
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")

        get_metrics().record_api_request(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
            duration_seconds=duration,
        )
        return response

    return metrics_middleware


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map database failures to a 500 with the error message."""
    logger.error(
        f"Store error: {exc}",
        extra={"path": request.url.path, "method": request.method}
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Map request validation failures to a 422 with a readable message."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return _error(422, message or "Invalid request")


def register_error_handlers(app: FastAPI) -> None:
    """
    Install the error handlers on an application.

    Args:
        app: The FastAPI application.
    """
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(OSError, store_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
