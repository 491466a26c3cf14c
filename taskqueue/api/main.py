"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from taskqueue import __version__
from taskqueue.api.middleware import create_metrics_middleware, register_error_handlers
from taskqueue.api.routes import health_router, tasks_router
from taskqueue.config import Settings, get_settings
from taskqueue.db import Database
from taskqueue.observability.logging import setup_logging
from taskqueue.observability.metrics import setup_metrics
from taskqueue.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)
from taskqueue.worker.main import WorkerSupervisor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events. Embedded claim workers run beside
    the server for the lifetime of the application, not of any request.
    """
    settings: Settings = app.state.settings
    database: Database = app.state.database

    # Startup
    setup_logging(settings)
    setup_metrics()
    setup_tracing()
    instrument_sqlalchemy(database.engine.sync_engine)

    supervisor = None
    if settings.api_embedded_workers > 0:
        supervisor = WorkerSupervisor(
            database,
            count=settings.api_embedded_workers,
            settings=settings,
        )
        supervisor.start()
    app.state.supervisor = supervisor

    logger.info("Application started")

    yield

    # Shutdown
    if supervisor is not None:
        await supervisor.stop()
    await database.dispose()
    logger.info("Application shutdown")


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings, defaults to the cached settings.
        database: Optional database handle, built from settings if omitted.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Task Queue API",
        description="Distributed FizzBuzz task queue on PostgreSQL SKIP LOCKED",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        BaseHTTPMiddleware,
        dispatch=create_metrics_middleware(),
    )

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(tasks_router)

    # Instrument with OpenTelemetry
    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
