"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from listqueue.observability.logging import (
    bind_context,
    job_log_context,
    setup_logging,
)
from listqueue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from listqueue.observability.tracing import (
    get_tracer,
    instrument_fastapi,
    instrument_redis,
    setup_tracing,
)

__all__ = [
    "setup_logging",
    "bind_context",
    "job_log_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "instrument_fastapi",
    "instrument_redis",
]
