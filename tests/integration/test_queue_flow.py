"""
Integration tests for the full queue lifecycle.

Producer, dispatcher and sweeper run together against each store backend.
"""

import asyncio

import pytest
from fakeredis import FakeAsyncRedis, FakeRedis, FakeServer

from listqueue.lock import LockManager
from listqueue.producer import Producer
from listqueue.store import ListStore, RedisListStore
from listqueue.sweeper.main import Sweeper, SweepOutcome
from listqueue.types.job import JobContext, JobRecord, JobResult
from listqueue.worker.main import Dispatcher, DispatchOutcome


async def ids_in(store: ListStore, queue: str) -> list[str]:
    return [r.id for r in await store.records(queue)]


async def assert_disjoint(store: ListStore, pending: str, in_flight: str) -> None:
    """No job is visible in both lists at once."""
    overlap = set(await ids_in(store, pending)) & set(await ids_in(store, in_flight))
    assert overlap == set()


class TestQueueLifecycle:
    """End-to-end lifecycle scenarios."""

    @pytest.fixture
    def sweeper(self, store: ListStore, locks: LockManager, clock) -> Sweeper:
        return Sweeper(
            store,
            locks=locks,
            stale_threshold_seconds=600,
            max_attempts=3,
            clock=clock,
        )

    async def test_enqueue_dispatch_succeed(
        self,
        store: ListStore,
        locks: LockManager,
        producer: Producer,
        clock,
        pending_queue: str,
        in_flight_queue: str,
    ):
        """A job is claimed with one attempt, executed, and removed."""
        await producer.enqueue("echo", {"id": 1}, job_id="1")
        observed: list[JobRecord] = []

        async def executor(context: JobContext) -> JobResult:
            observed.extend(await store.records(in_flight_queue))
            return JobResult(success=True)

        dispatcher = Dispatcher(
            store, locks=locks, executor=executor, worker_id="w1", clock=clock
        )

        assert await dispatcher.dispatch_once() is DispatchOutcome.SUCCEEDED

        [in_flight] = observed
        assert in_flight.id == "1"
        assert in_flight.attempts == 1
        assert in_flight.claimed_at == clock.now
        assert await store.length(pending_queue) == 0
        assert await store.length(in_flight_queue) == 0

    async def test_failed_job_is_retried_then_discarded(
        self,
        store: ListStore,
        locks: LockManager,
        producer: Producer,
        sweeper: Sweeper,
        clock,
        pending_queue: str,
        in_flight_queue: str,
    ):
        """A job that always fails is claimed exactly max_attempts times."""
        await producer.enqueue("failing_job", job_id="doomed")
        dispatcher = Dispatcher(store, locks=locks, worker_id="w1", clock=clock)
        claims = 0

        for attempt in (1, 2, 3):
            assert await dispatcher.dispatch_once() is DispatchOutcome.FAILED
            claims += 1
            await assert_disjoint(store, pending_queue, in_flight_queue)

            [record] = await store.records(in_flight_queue)
            assert record.attempts == attempt

            # Too young to reclaim
            assert await sweeper.sweep_once() is SweepOutcome.FRESH

            clock.advance(minutes=11)
            expected = SweepOutcome.REQUEUED if attempt < 3 else SweepOutcome.DISCARDED
            assert await sweeper.sweep_once() is expected
            await assert_disjoint(store, pending_queue, in_flight_queue)

        assert claims == 3
        assert await store.length(pending_queue) == 0
        assert await store.length(in_flight_queue) == 0
        assert await dispatcher.dispatch_once() is DispatchOutcome.EMPTY

    async def test_retry_succeeds_on_second_attempt(
        self,
        store: ListStore,
        locks: LockManager,
        producer: Producer,
        sweeper: Sweeper,
        clock,
        pending_queue: str,
        in_flight_queue: str,
    ):
        await producer.enqueue("flaky", job_id="1")
        attempts_seen: list[int] = []

        async def flaky(context: JobContext) -> JobResult:
            attempts_seen.append(context.attempt)
            return JobResult(success=context.attempt >= 2)

        dispatcher = Dispatcher(
            store, locks=locks, executor=flaky, worker_id="w1", clock=clock
        )

        assert await dispatcher.dispatch_once() is DispatchOutcome.FAILED
        clock.advance(minutes=11)
        assert await sweeper.sweep_once() is SweepOutcome.REQUEUED
        assert await dispatcher.dispatch_once() is DispatchOutcome.SUCCEEDED

        assert attempts_seen == [1, 2]
        assert await store.length(pending_queue) == 0
        assert await store.length(in_flight_queue) == 0

    async def test_crashed_execution_is_recovered(
        self,
        store: ListStore,
        locks: LockManager,
        producer: Producer,
        sweeper: Sweeper,
        clock,
        pending_queue: str,
        in_flight_queue: str,
    ):
        """A worker dying mid-job leaves the job discoverable until swept."""
        await producer.enqueue("echo", job_id="1")
        started = asyncio.Event()

        async def hangs(context: JobContext) -> JobResult:
            started.set()
            await asyncio.Event().wait()
            return JobResult(success=True)

        crashing = Dispatcher(
            store, locks=locks, executor=hangs, worker_id="w1", clock=clock
        )
        task = asyncio.create_task(crashing.dispatch_once())
        await asyncio.wait_for(started.wait(), timeout=2.0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert crashing.running_count == 0
        assert await ids_in(store, in_flight_queue) == ["1"]

        clock.advance(minutes=11)
        assert await sweeper.sweep_once() is SweepOutcome.REQUEUED

        survivor = Dispatcher(store, locks=locks, worker_id="w2", clock=clock)
        assert await survivor.dispatch_once() is DispatchOutcome.SUCCEEDED
        assert await store.length(pending_queue) == 0
        assert await store.length(in_flight_queue) == 0


class TestCompetingDispatchers:
    """Several dispatchers sharing one store."""

    async def test_single_job_claimed_once(
        self,
        store: ListStore,
        locks: LockManager,
        producer: Producer,
        clock,
        in_flight_queue: str,
    ):
        await producer.enqueue("echo", job_id="1")
        executed: list[str] = []

        async def executor(context: JobContext) -> JobResult:
            executed.append(context.worker_id)
            return JobResult(success=True)

        first = Dispatcher(store, locks=locks, executor=executor, worker_id="a", clock=clock)
        second = Dispatcher(store, locks=locks, executor=executor, worker_id="b", clock=clock)

        outcomes = await asyncio.gather(first.dispatch_once(), second.dispatch_once())

        assert sorted(outcomes) == sorted([DispatchOutcome.SUCCEEDED, DispatchOutcome.EMPTY])
        assert len(executed) == 1
        assert await store.length(in_flight_queue) == 0

    async def test_held_lock_defers_claim(
        self,
        store: ListStore,
        locks: LockManager,
        producer: Producer,
        clock,
        pending_queue: str,
    ):
        """A dispatcher finding the pending lock taken retries on its next poll."""
        await producer.enqueue("echo", job_id="1")
        await locks.acquire(pending_queue)

        dispatcher = Dispatcher(store, locks=locks, worker_id="w1", clock=clock)
        task = asyncio.create_task(dispatcher.dispatch_once())

        await asyncio.sleep(0.05)
        assert not task.done()
        assert await ids_in(store, pending_queue) == ["1"]

        await locks.release(pending_queue)
        assert await asyncio.wait_for(task, timeout=2.0) is DispatchOutcome.SUCCEEDED

    async def test_separate_redis_clients(self, clock, pending_queue: str, in_flight_queue: str):
        """Dispatchers in different processes coordinate only through Redis."""
        server = FakeServer()
        stores = [
            RedisListStore(FakeAsyncRedis(server=server, decode_responses=True))
            for _ in range(3)
        ]
        for i in range(6):
            await Producer(stores[0]).enqueue("echo", job_id=str(i))

        executed: list[str] = []

        async def executor(context: JobContext) -> JobResult:
            executed.append(context.job_id)
            await asyncio.sleep(0)
            return JobResult(success=True)

        dispatchers = [
            Dispatcher(
                s,
                locks=LockManager(s, poll_interval=0.01),
                executor=executor,
                worker_id=f"w{i}",
                clock=clock,
            )
            for i, s in enumerate(stores)
        ]

        outcomes = await asyncio.gather(
            *(d.dispatch_once() for d in dispatchers for _ in range(2))
        )

        assert outcomes.count(DispatchOutcome.SUCCEEDED) == 6
        assert sorted(executed) == [str(i) for i in range(6)]
        assert await stores[0].length(pending_queue) == 0
        assert await stores[0].length(in_flight_queue) == 0

        for s in stores:
            await s.close()


class AppendingClock:
    """Clock that lets another client append a job each time it is read."""

    def __init__(self, clock, server: FakeServer, queue: str):
        self._clock = clock
        self._client = FakeRedis(server=server, decode_responses=True)
        self._queue = queue
        self.appended = 0

    def __call__(self):
        self.appended += 1
        record = JobRecord(id=f"late-{self.appended}", name="echo")
        self._client.rpush(self._queue, record.encode())
        return self._clock()


class TestConcurrentAppends:
    """Writes to a list tail while its head is being claimed or swept."""

    async def test_enqueue_during_claim(
        self,
        redis_store: RedisListStore,
        fake_redis_server: FakeServer,
        clock,
        pending_queue: str,
        in_flight_queue: str,
    ):
        await Producer(redis_store).enqueue("echo", job_id="1")
        executed: list[str] = []

        async def executor(context: JobContext) -> JobResult:
            executed.append(context.job_id)
            return JobResult(success=False)

        dispatcher = Dispatcher(
            redis_store,
            locks=LockManager(redis_store, poll_interval=0.01),
            executor=executor,
            worker_id="w1",
            clock=AppendingClock(clock, fake_redis_server, pending_queue),
        )

        assert await dispatcher.dispatch_once() is DispatchOutcome.FAILED

        assert executed == ["1"]
        [claimed] = await redis_store.records(in_flight_queue)
        assert (claimed.id, claimed.attempts) == ("1", 1)
        assert await ids_in(redis_store, pending_queue) == ["late-1"]

    async def test_claim_during_sweep(
        self,
        redis_store: RedisListStore,
        fake_redis_server: FakeServer,
        clock,
        pending_queue: str,
        in_flight_queue: str,
    ):
        await redis_store.append(
            in_flight_queue,
            JobRecord(id="1", name="echo", attempts=1, claimed_at=clock.now),
        )
        clock.advance(minutes=11)
        sweeper = Sweeper(
            redis_store,
            locks=LockManager(redis_store, poll_interval=0.01),
            stale_threshold_seconds=600,
            max_attempts=3,
            clock=AppendingClock(clock, fake_redis_server, in_flight_queue),
        )

        assert await sweeper.sweep_once() is SweepOutcome.REQUEUED

        assert await ids_in(redis_store, pending_queue) == ["1"]
        assert await ids_in(redis_store, in_flight_queue) == ["late-1"]
