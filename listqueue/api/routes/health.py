"""
Health check routes.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from listqueue import __version__
from listqueue.errors import StoreError
from listqueue.observability.metrics import get_metrics
from listqueue.store import ListStore, get_store
from listqueue.types.api import HealthResponse
from listqueue.types.job import utcnow

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and store connection.",
)
async def health_check(store: ListStore = Depends(get_store)) -> HealthResponse:
    """
    Perform a health check.

    Pings the list store and returns service status.
    """
    try:
        store_status = "healthy" if await store.ping() else "unhealthy"
    except StoreError:
        store_status = "unhealthy"

    return HealthResponse(
        status="healthy" if store_status == "healthy" else "degraded",
        version=__version__,
        store=store_status,
        timestamp=utcnow(),
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
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
