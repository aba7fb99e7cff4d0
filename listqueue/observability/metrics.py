"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from listqueue.constants import (
    METRIC_DISPATCH_SKIPPED,
    METRIC_JOB_DURATION,
    METRIC_JOBS_CLAIMED,
    METRIC_JOBS_COMPLETED,
    METRIC_JOBS_DEAD,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_REQUEUED,
    METRIC_JOBS_RUNNING,
    METRIC_LOCK_WAIT,
    METRIC_QUEUE_DEPTH,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the queue.

    Collects metrics for:
    - List depths
    - Enqueues, claims, completions, requeues and discards
    - Job execution duration
    - Running executions and skipped dispatch ticks
    - Time spent waiting on list locks
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of records in a queue list",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            ["name"],
            registry=self._registry,
        )

        self.jobs_claimed = Counter(
            METRIC_JOBS_CLAIMED,
            "Total number of pending -> in-flight claims",
            ["worker_id"],
            registry=self._registry,
        )

        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of job executions by outcome",
            ["name", "status"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job execution duration in seconds",
            ["name", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 600.0),
            registry=self._registry,
        )

        self.jobs_requeued = Counter(
            METRIC_JOBS_REQUEUED,
            "Total number of stale in-flight jobs returned to pending",
            registry=self._registry,
        )

        self.jobs_dead = Counter(
            METRIC_JOBS_DEAD,
            "Total number of jobs discarded after exhausting attempts",
            registry=self._registry,
        )

        self.jobs_running = Gauge(
            METRIC_JOBS_RUNNING,
            "Dispatch cycles currently running on a worker",
            ["worker_id"],
            registry=self._registry,
        )

        self.dispatch_skipped = Counter(
            METRIC_DISPATCH_SKIPPED,
            "Dispatch ticks skipped because the worker was at capacity",
            ["worker_id"],
            registry=self._registry,
        )

        self.lock_wait = Histogram(
            METRIC_LOCK_WAIT,
            "Time spent waiting to acquire a list lock",
            ["lock"],
            buckets=(0.01, 0.1, 1.0, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )

    def record_job_enqueued(self, name: str) -> None:
        self.jobs_enqueued.labels(name=name).inc()

    def record_job_claimed(self, worker_id: str) -> None:
        self.jobs_claimed.labels(worker_id=worker_id).inc()

    def record_job_completed(
        self,
        name: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a finished execution, successful or not."""
        self.jobs_completed.labels(name=name, status=status).inc()
        self.job_duration.labels(name=name, status=status).observe(duration_seconds)

    def record_job_requeued(self) -> None:
        self.jobs_requeued.inc()

    def record_job_dead(self) -> None:
        self.jobs_dead.inc()

    def set_running(self, worker_id: str, count: int) -> None:
        self.jobs_running.labels(worker_id=worker_id).set(count)

    def record_dispatch_skipped(self, worker_id: str) -> None:
        self.dispatch_skipped.labels(worker_id=worker_id).inc()

    def record_lock_wait(self, lock: str, seconds: float) -> None:
        self.lock_wait.labels(lock=lock).observe(seconds)

    def update_queue_depth(self, queue: str, depth: int) -> None:
        self.queue_depth.labels(queue=queue).set(depth)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics
