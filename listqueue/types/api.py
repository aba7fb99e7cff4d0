"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class EnqueueJobRequest(BaseModel):
    """Request body for submitting a job."""

    name: str = Field(..., min_length=1, description="Handler name for the job")
    id: str | None = Field(
        default=None, min_length=1, description="Job id; generated when omitted"
    )
    payload: Any = Field(default=None, description="Opaque job payload")


class EnqueueJobResponse(BaseModel):
    """Response body after enqueuing a job."""

    id: str
    name: str
    attempts: int
    queue: str
    message: str = "Job added to the queue"


class QueueStatsResponse(BaseModel):
    """Current list lengths."""

    pending: int
    in_flight: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    store: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None
