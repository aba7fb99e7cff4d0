"""
Advisory list locks.

Each queue list is guarded by a key named ``<list>-lock``. A lock is taken by
setting that key only if it is absent, with an expiry so a crashed holder
cannot wedge the queue forever. Expiry trades strict mutual exclusion for
availability: a holder that stalls past the TTL may overlap with the next one.

Locks protect list mutation only. Job bodies always run outside them.
"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from listqueue.config import get_settings
from listqueue.constants import LOCK_KEY_SUFFIX
from listqueue.observability.metrics import get_metrics
from listqueue.store.base import ListStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Lock:
    """A held list lock."""

    name: str
    key: str
    ttl_seconds: int


def lock_key(name: str) -> str:
    """Store key guarding the named list."""
    return f"{name}{LOCK_KEY_SUFFIX}"


class LockManager:
    """
    Polling lock manager over a list store.

    Acquisition never gives up: it retries on a fixed interval until the key
    is free. Store errors propagate to the caller.
    """

    def __init__(
        self,
        store: ListStore,
        ttl_seconds: int | None = None,
        poll_interval: float | None = None,
        sentinel: str | None = None,
    ):
        """
        Initialize the lock manager.

        Args:
            store: Store holding the lock keys.
            ttl_seconds: Expiry applied to every lock.
            poll_interval: Seconds between acquisition attempts.
            sentinel: Value written to a held lock key.
        """
        settings = get_settings()

        self._store = store
        self.ttl_seconds = ttl_seconds or settings.lock_ttl_seconds
        self.poll_interval = (
            poll_interval
            if poll_interval is not None
            else settings.lock_poll_interval_seconds
        )
        self.sentinel = sentinel or settings.lock_sentinel
        self._metrics = get_metrics()

    async def try_acquire(self, name: str) -> Lock | None:
        """
        Make a single attempt to take the lock.

        Returns:
            The Lock if it was taken, None if another holder has it.
        """
        key = lock_key(name)
        if await self._store.set_if_absent(key, self.sentinel, self.ttl_seconds):
            return Lock(name=name, key=key, ttl_seconds=self.ttl_seconds)
        return None

    async def acquire(self, name: str) -> Lock:
        """
        Take the lock, polling until it is free.

        Raises:
            StoreError: If the store cannot be reached.
        """
        started = time.monotonic()
        attempts = 0

        while True:
            attempts += 1
            lock = await self.try_acquire(name)
            if lock is not None:
                waited = time.monotonic() - started
                self._metrics.record_lock_wait(name, waited)
                if attempts > 1:
                    logger.debug(
                        "Acquired lock after contention",
                        extra={"lock": lock.key, "attempts": attempts, "waited": f"{waited:.2f}s"},
                    )
                return lock

            await asyncio.sleep(self.poll_interval)

    async def release(self, name: str) -> None:
        """Delete the lock key. Releasing a free lock is a no-op."""
        await self._store.delete(lock_key(name))

    @asynccontextmanager
    async def hold(self, name: str) -> AsyncGenerator[Lock]:
        """
        Hold the lock for the duration of a block.

        The lock is released on every exit path, including errors.
        """
        lock = await self.acquire(name)
        try:
            yield lock
        finally:
            await self.release(name)
