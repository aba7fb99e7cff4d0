"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from listqueue import __version__
from listqueue.api.routes import health_router, jobs_router
from listqueue.config import get_settings
from listqueue.observability.logging import setup_logging
from listqueue.observability.metrics import setup_metrics
from listqueue.observability.tracing import instrument_fastapi, instrument_redis, setup_tracing
from listqueue.store import close_store, init_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    setup_logging(component="api")
    setup_metrics()
    setup_tracing()
    instrument_redis()
    await init_store()

    logger.info("Application started")

    yield

    await close_store()
    logger.info("Application shutdown")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="List Queue API",
        description="Submission endpoint for the list-backed job queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.include_router(health_router)
    app.include_router(jobs_router)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()

    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
