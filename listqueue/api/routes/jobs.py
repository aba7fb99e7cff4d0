"""
Job submission routes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from listqueue.config import get_settings
from listqueue.constants import API_V1_PREFIX
from listqueue.errors import StoreError
from listqueue.producer import Producer
from listqueue.store import ListStore, get_store
from listqueue.types.api import (
    EnqueueJobRequest,
    EnqueueJobResponse,
    ErrorResponse,
    QueueStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_V1_PREFIX, tags=["Jobs"])


def get_producer(store: ListStore = Depends(get_store)) -> Producer:
    """Dependency providing a producer over the process-wide store."""
    return Producer(store)


@router.post(
    "/jobs",
    response_model=EnqueueJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={503: {"model": ErrorResponse}},
    summary="Submit a job",
    description="Append a job to the tail of the pending list.",
)
async def enqueue_job(
    request: EnqueueJobRequest,
    producer: Producer = Depends(get_producer),
) -> EnqueueJobResponse:
    """
    Enqueue a job.

    The job runs asynchronously; this endpoint only records it.

    Args:
        request: Job submission request.
        producer: Producer bound to the store.

    Returns:
        EnqueueJobResponse with the stored record's id.
    """
    try:
        record = await producer.enqueue(
            name=request.name,
            payload=request.payload,
            job_id=request.id,
        )
    except StoreError as e:
        logger.exception("Failed to add job to the queue")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to add job to the queue: {e}",
        ) from e

    return EnqueueJobResponse(
        id=record.id,
        name=record.name,
        attempts=record.attempts,
        queue=producer.pending_queue,
    )


@router.get(
    "/queues",
    response_model=QueueStatsResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Queue depths",
    description="Current number of pending and in-flight jobs.",
)
async def queue_stats(store: ListStore = Depends(get_store)) -> QueueStatsResponse:
    settings = get_settings()
    try:
        pending = await store.length(settings.pending_queue)
        in_flight = await store.length(settings.in_flight_queue)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e

    return QueueStatsResponse(pending=pending, in_flight=in_flight)
