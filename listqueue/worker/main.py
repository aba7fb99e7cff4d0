"""
Dispatcher process for executing jobs.

The dispatcher claims the head of the pending list, executes it outside any
lock, and resolves the outcome. Successful jobs are removed from the in-flight
list; failed jobs are left there for the sweeper to retry or discard.
"""

import asyncio
import logging
import os
import signal
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import StrEnum

from listqueue.config import get_settings
from listqueue.constants import SPAN_CLAIM_JOB, SPAN_EXECUTE_JOB, SPAN_RESOLVE_JOB, JobState
from listqueue.lock import LockManager
from listqueue.observability.logging import job_log_context, setup_logging
from listqueue.observability.metrics import get_metrics
from listqueue.observability.tracing import get_tracer, instrument_redis, setup_tracing
from listqueue.store import ListStore, close_store, init_store
from listqueue.types.job import JobContext, JobRecord, JobResult, check_transition, utcnow
from listqueue.worker.handlers import execute_job

logger = logging.getLogger(__name__)

Executor = Callable[[JobContext], Awaitable[JobResult]]


class DispatchOutcome(StrEnum):
    """Result of a single dispatch cycle."""

    SKIPPED = "skipped"
    EMPTY = "empty"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERROR = "error"


class Dispatcher:
    """
    Concurrency-gated dispatcher that claims and executes jobs.

    Features:
    - Claims under the pending lock, in one transaction that stamps the
      record and moves it to the in-flight list
    - Executes job bodies with no lock held
    - At most ``max_concurrency`` dispatch cycles in flight per instance
    - Graceful shutdown on SIGTERM/SIGINT
    """

    def __init__(
        self,
        store: ListStore,
        locks: LockManager | None = None,
        executor: Executor | None = None,
        worker_id: str | None = None,
        max_concurrency: int | None = None,
        max_attempts: int | None = None,
        interval: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the dispatcher.

        Args:
            store: List store holding the queues.
            locks: Lock manager. Defaults to one over the same store.
            executor: Runs a job body. Defaults to the handler registry.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            max_concurrency: Maximum dispatch cycles running at once.
            max_attempts: Attempt limit reported to handlers.
            interval: Seconds between dispatch ticks.
            clock: Source of claim timestamps.
        """
        settings = get_settings()

        self._store = store
        self._locks = locks or LockManager(store)
        self._executor = executor or execute_job
        self._clock = clock

        self.worker_id = worker_id or settings.worker_id or f"{os.uname().nodename}-{os.getpid()}"
        self.max_concurrency = max_concurrency or settings.max_concurrency
        self.max_attempts = max_attempts or settings.max_attempts
        self.interval = interval if interval is not None else settings.dispatch_interval_seconds
        self.pending_queue = settings.pending_queue
        self.in_flight_queue = settings.in_flight_queue

        self._running_count = 0
        self._running = False
        self._stop_event = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()
        self._metrics = get_metrics()

    @property
    def running_count(self) -> int:
        """Dispatch cycles currently between claim and resolution."""
        return self._running_count

    async def start(self) -> None:
        """Start the dispatch loop."""
        logger.info(
            "Dispatcher starting",
            extra={
                "worker_id": self.worker_id,
                "max_concurrency": self.max_concurrency,
                "interval": self.interval,
            }
        )

        self._running = True
        self._stop_event.clear()

        while self._running:
            self._spawn_tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass

        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} dispatch cycles to finish")
            await asyncio.gather(*self._tasks, return_exceptions=True)

        logger.info("Dispatcher stopped", extra={"worker_id": self.worker_id})

    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        logger.info("Dispatcher stopping", extra={"worker_id": self.worker_id})
        self._running = False
        self._stop_event.set()

    def _spawn_tick(self) -> None:
        # Ticks are not awaited so executions overlap up to max_concurrency
        task = asyncio.create_task(self.dispatch_once())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def dispatch_once(self) -> DispatchOutcome:
        """
        Run one dispatch cycle.

        Never raises: store errors are logged and reported as ERROR so the
        next tick can try again.
        """
        if self._running_count >= self.max_concurrency:
            self._metrics.record_dispatch_skipped(self.worker_id)
            logger.debug(
                "Dispatcher at capacity, skipping tick",
                extra={"worker_id": self.worker_id, "running": self._running_count}
            )
            return DispatchOutcome.SKIPPED

        self._running_count += 1
        self._metrics.set_running(self.worker_id, self._running_count)
        try:
            return await self._dispatch()
        except Exception as e:
            logger.exception(
                f"Error in dispatch cycle: {e}",
                extra={"worker_id": self.worker_id}
            )
            return DispatchOutcome.ERROR
        finally:
            self._running_count -= 1
            self._metrics.set_running(self.worker_id, self._running_count)

    async def _dispatch(self) -> DispatchOutcome:
        record = await self._claim()
        if record is None:
            return DispatchOutcome.EMPTY

        with job_log_context(record):
            if not await self._execute(record):
                check_transition(JobState.IN_FLIGHT, JobState.IN_FLIGHT)
                return DispatchOutcome.FAILED

            await self._complete(record)
            return DispatchOutcome.SUCCEEDED

    async def _claim(self) -> JobRecord | None:
        """
        Move the head of the pending list to the in-flight list.

        The record is stamped with a claim time and one more attempt, written
        back over the head and moved in the same transaction, so the in-flight
        copy always carries the updated fields.

        Returns:
            The stamped record, or None if the pending list was empty.
        """
        with get_tracer().start_as_current_span(SPAN_CLAIM_JOB):
            async with self._locks.hold(self.pending_queue):
                async with self._store.transaction() as tx:
                    head = await tx.peek_head(self.pending_queue)
                    if head is None:
                        return None

                    check_transition(JobState.PENDING, JobState.IN_FLIGHT)
                    stamped = head.claim(self._clock())
                    tx.replace_head(self.pending_queue, stamped)
                    tx.move_head_to_tail(self.pending_queue, self.in_flight_queue)

        self._metrics.record_job_claimed(self.worker_id)
        logger.info(
            "Claimed job",
            extra={
                "worker_id": self.worker_id,
                "job_id": stamped.id,
                "attempt": stamped.attempts,
            }
        )
        return stamped

    async def _execute(self, record: JobRecord) -> bool:
        """
        Run the job body with no lock held.

        Returns:
            True if the job succeeded.
        """
        context = JobContext.from_record(record, self.max_attempts, self.worker_id)
        start_time = time.monotonic()

        with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
            span.set_attribute("job_id", record.id)
            span.set_attribute("job_name", record.name)
            span.set_attribute("attempt", record.attempts)

            try:
                result = await self._executor(context)
            except Exception as e:
                logger.exception(
                    "Exception executing job",
                    extra={"job_id": record.id, "error": str(e)}
                )
                result = JobResult(success=False, error=f"Worker exception: {e}")

        duration = time.monotonic() - start_time
        status = "succeeded" if result.success else "failed"
        self._metrics.record_job_completed(record.name, status, duration)

        if result.success:
            logger.info(
                "Job completed successfully",
                extra={"job_id": record.id, "duration": f"{duration:.2f}s"}
            )
        else:
            logger.warning(
                "Job failed; left in-flight for the sweeper",
                extra={
                    "job_id": record.id,
                    "error": result.error,
                    "attempt": record.attempts,
                    "remaining_attempts": context.remaining_attempts,
                }
            )

        return result.success

    async def _complete(self, record: JobRecord) -> None:
        """Remove a successfully executed job from the in-flight list."""
        check_transition(JobState.IN_FLIGHT, JobState.DONE)

        with get_tracer().start_as_current_span(SPAN_RESOLVE_JOB):
            async with self._locks.hold(self.in_flight_queue):
                removed = await self._store.remove_first_matching(
                    self.in_flight_queue, record
                )

        if removed == 0:
            # The sweeper reclaimed it as stale while it was still running
            logger.warning(
                "Completed job was no longer in-flight; it may run again",
                extra={"job_id": record.id, "attempt": record.attempts}
            )


async def run_async() -> None:
    """Run the dispatcher asynchronously."""
    setup_logging(component="worker")
    setup_tracing()
    instrument_redis()
    store = await init_store()

    dispatcher = Dispatcher(store)

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(dispatcher.stop())
        )

    try:
        await dispatcher.start()
    finally:
        await close_store()


def run() -> None:
    """Run the dispatcher."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
