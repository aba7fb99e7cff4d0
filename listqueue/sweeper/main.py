"""
Retry sweeper for reclaiming stale in-flight jobs.

The sweeper runs periodically, inspects the head of the in-flight list, and
either leaves it alone (still fresh), returns it to the pending list (stale
with attempts remaining), or discards it (stale and exhausted). Together with
the dispatcher this gives at-least-once delivery with bounded retries.
"""

import asyncio
import logging
import signal
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import StrEnum

from listqueue.config import get_settings
from listqueue.constants import SPAN_SWEEP, JobState
from listqueue.lock import LockManager
from listqueue.observability.logging import job_log_context, setup_logging
from listqueue.observability.metrics import get_metrics
from listqueue.observability.tracing import get_tracer, instrument_redis, setup_tracing
from listqueue.store import ListStore, close_store, init_store
from listqueue.types.job import check_transition, utcnow

logger = logging.getLogger(__name__)


class SweepOutcome(StrEnum):
    """What a sweep did with the in-flight head."""

    EMPTY = "empty"
    FRESH = "fresh"
    REQUEUED = "requeued"
    DISCARDED = "discarded"


class Sweeper:
    """
    Reclaims jobs whose claim has gone stale.

    Runs periodically to:
    1. Read the head of the in-flight list under its lock
    2. Requeue it if stale with attempts remaining
    3. Discard it if stale with attempts exhausted
    """

    def __init__(
        self,
        store: ListStore,
        locks: LockManager | None = None,
        interval_seconds: float | None = None,
        stale_threshold_seconds: float | None = None,
        max_attempts: int | None = None,
        batch_size: int | None = None,
        clear_claimed_at: bool | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the sweeper.

        Args:
            store: List store holding the queues.
            locks: Lock manager. Defaults to one over the same store.
            interval_seconds: Seconds between sweeps.
            stale_threshold_seconds: Claim age after which a job is reclaimed.
            max_attempts: Attempts after which a stale job is discarded.
            batch_size: Maximum heads examined per sweep.
            clear_claimed_at: Clear the claim timestamp when requeuing.
            clock: Source of the current time.
        """
        settings = get_settings()

        self._store = store
        self._locks = locks or LockManager(store)
        self._clock = clock

        self.interval = interval_seconds or settings.sweep_interval_seconds
        self.stale_threshold = timedelta(
            seconds=stale_threshold_seconds or settings.stale_threshold_seconds
        )
        self.max_attempts = max_attempts or settings.max_attempts
        self.batch_size = batch_size or settings.sweep_batch_size
        self.clear_claimed_at = (
            clear_claimed_at
            if clear_claimed_at is not None
            else settings.requeue_clears_claimed_at
        )
        self.pending_queue = settings.pending_queue
        self.in_flight_queue = settings.in_flight_queue

        self._running = False
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the sweep loop."""
        logger.info(
            f"Sweeper starting with interval {self.interval}s",
            extra={"stale_threshold": self.stale_threshold.total_seconds()}
        )
        self._running = True
        self._stop_event.clear()

        while self._running:
            try:
                outcomes = await self.sweep()

                reclaimed = sum(
                    outcome in (SweepOutcome.REQUEUED, SweepOutcome.DISCARDED)
                    for outcome in outcomes
                )
                if reclaimed > 0:
                    logger.info(f"Reclaimed {reclaimed} stale jobs")

            except Exception as e:
                logger.exception(f"Error in sweeper loop: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass

        logger.info("Sweeper stopped")

    async def stop(self) -> None:
        """Stop the sweeper."""
        logger.info("Sweeper stopping")
        self._running = False
        self._stop_event.set()

    async def sweep(self) -> list[SweepOutcome]:
        """
        Examine up to ``batch_size`` heads of the in-flight list.

        Stops early once the list is empty or its head is still fresh;
        entries behind a fresh head were claimed later and are fresher still.
        """
        outcomes: list[SweepOutcome] = []

        with get_tracer().start_as_current_span(SPAN_SWEEP) as span:
            for _ in range(self.batch_size):
                outcome = await self.sweep_once()
                outcomes.append(outcome)
                if outcome in (SweepOutcome.EMPTY, SweepOutcome.FRESH):
                    break
            span.set_attribute("examined", len(outcomes))

        await self._update_depths()
        return outcomes

    async def sweep_once(self) -> SweepOutcome:
        """
        Examine the head of the in-flight list once.

        Raises:
            StoreError: If the store cannot be reached or a batch is rejected.
        """
        async with self._locks.hold(self.in_flight_queue):
            async with self._store.transaction() as tx:
                head = await tx.peek_head(self.in_flight_queue)
                if head is None:
                    return SweepOutcome.EMPTY

                if not head.is_stale(self._clock(), self.stale_threshold):
                    return SweepOutcome.FRESH

                with job_log_context(head):
                    if head.attempts < self.max_attempts:
                        check_transition(JobState.IN_FLIGHT, JobState.PENDING)
                        requeued = head.unclaimed() if self.clear_claimed_at else head
                        tx.replace_head(self.in_flight_queue, requeued)
                        tx.move_head_to_tail(self.in_flight_queue, self.pending_queue)
                        outcome = SweepOutcome.REQUEUED
                    else:
                        check_transition(JobState.IN_FLIGHT, JobState.DEAD)
                        tx.pop_head(self.in_flight_queue)
                        outcome = SweepOutcome.DISCARDED

        if outcome is SweepOutcome.REQUEUED:
            self._metrics.record_job_requeued()
            logger.info(
                "Requeued stale job",
                extra={"job_id": head.id, "attempts": head.attempts}
            )
        else:
            self._metrics.record_job_dead()
            logger.error(
                "Discarded job after exhausting attempts",
                extra={
                    "event_type": "job_discarded",
                    "job_id": head.id,
                    "job_name": head.name,
                    "attempts": head.attempts,
                    "max_attempts": self.max_attempts,
                }
            )

        return outcome

    async def _update_depths(self) -> None:
        for queue in (self.pending_queue, self.in_flight_queue):
            self._metrics.update_queue_depth(queue, await self._store.length(queue))

    async def run_once(self) -> list[SweepOutcome]:
        """
        Run the sweeper once (for testing or cron-style execution).
        """
        return await self.sweep()


async def run_async() -> None:
    """Run the sweeper asynchronously."""
    setup_logging(component="sweeper")
    setup_tracing()
    instrument_redis()
    store = await init_store()

    sweeper = Sweeper(store)

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(sweeper.stop())
        )

    try:
        await sweeper.start()
    finally:
        await close_store()


def run() -> None:
    """Run the sweeper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
