"""
Type definitions for the queue.
Contains input/output type definitions for all functions, grouped by module.
"""

from listqueue.types.api import (
    EnqueueJobRequest,
    EnqueueJobResponse,
    ErrorResponse,
    HealthResponse,
    QueueStatsResponse,
)
from listqueue.types.job import (
    JobContext,
    JobRecord,
    JobResult,
    check_transition,
    utcnow,
)

__all__ = [
    # API types
    "EnqueueJobRequest",
    "EnqueueJobResponse",
    "QueueStatsResponse",
    "HealthResponse",
    "ErrorResponse",
    # Job types
    "JobRecord",
    "JobResult",
    "JobContext",
    "check_transition",
    "utcnow",
]
