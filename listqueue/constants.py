"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - PENDING -> IN_FLIGHT (claimed by a dispatcher)
    - IN_FLIGHT -> DONE (execution succeeded)
    - IN_FLIGHT -> IN_FLIGHT (execution failed, left for the sweeper)
    - IN_FLIGHT -> PENDING (stale, attempts remaining)
    - IN_FLIGHT -> DEAD (stale, attempts exhausted)
    """

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    DEAD = "dead"


ALLOWED_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.PENDING: frozenset({JobState.IN_FLIGHT}),
    JobState.IN_FLIGHT: frozenset(
        {JobState.DONE, JobState.IN_FLIGHT, JobState.PENDING, JobState.DEAD}
    ),
    JobState.DONE: frozenset(),
    JobState.DEAD: frozenset(),
}

# Default values
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MAX_CONCURRENCY = 3
DEFAULT_LOCK_TTL_SECONDS = 10
DEFAULT_LOCK_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_STALE_THRESHOLD_SECONDS = 600.0
LOCK_KEY_SUFFIX = "-lock"
LOCK_SENTINEL = "locked"

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "job_queue_depth"
METRIC_JOBS_ENQUEUED = "jobs_enqueued_total"
METRIC_JOBS_COMPLETED = "jobs_completed_total"
METRIC_JOB_DURATION = "job_duration_seconds"
METRIC_JOBS_CLAIMED = "jobs_claimed_total"
METRIC_JOBS_REQUEUED = "jobs_requeued_total"
METRIC_JOBS_DEAD = "jobs_dead_total"
METRIC_JOBS_RUNNING = "jobs_running"
METRIC_DISPATCH_SKIPPED = "dispatch_skipped_total"
METRIC_LOCK_WAIT = "lock_wait_seconds"

# Trace span names
SPAN_CLAIM_JOB = "claim_job"
SPAN_EXECUTE_JOB = "execute_job"
SPAN_RESOLVE_JOB = "resolve_job"
SPAN_SWEEP = "sweep_in_flight"
