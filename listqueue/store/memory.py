"""
In-process list store.

For single-process deployments without a shared store. One asyncio lock
guards all state, so every operation and every transaction is atomic with
respect to other tasks on the same event loop. Key expiry follows an
injectable monotonic clock.
"""

import asyncio
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from listqueue.errors import StoreError, TransactionError
from listqueue.store.base import ListOp, ListStore, OpKind, Transaction
from listqueue.types.job import JobRecord


def _apply(lists: dict[str, list[str]], op: ListOp) -> None:
    """Apply one mutation to a set of lists, raising StoreError if it cannot."""
    entries = lists.setdefault(op.queue, [])
    if op.kind is OpKind.APPEND:
        entries.append(op.record.encode())
    elif op.kind is OpKind.REPLACE_HEAD:
        if not entries:
            raise StoreError(f"no such key: {op.queue}")
        entries[0] = op.record.encode()
    elif op.kind is OpKind.MOVE_HEAD_TO_TAIL:
        if entries:
            lists.setdefault(op.destination, []).append(entries.pop(0))
    elif op.kind is OpKind.REMOVE_FIRST_MATCHING:
        raw = op.record.encode()
        if raw in entries:
            entries.remove(raw)
    elif op.kind is OpKind.POP_HEAD:
        if entries:
            entries.pop(0)
    else:
        raise ValueError(f"Unsupported list operation: {op.kind}")


class MemoryTransaction(Transaction):
    """Batch applied to a copy of the store's lists and swapped in on success."""

    def __init__(self, store: "MemoryListStore"):
        super().__init__()
        self._store = store

    async def peek_head(self, queue: str) -> JobRecord | None:
        return self._store._head(queue)

    async def execute(self) -> None:
        if not self._ops:
            return

        touched = {op.queue for op in self._ops}
        touched.update(op.destination for op in self._ops if op.destination)
        working = {
            name: list(self._store._lists.get(name, [])) for name in touched
        }

        try:
            for op in self._ops:
                _apply(working, op)
        except StoreError as e:
            raise TransactionError(f"Batch command failed: {e}") from e

        self._store._lists.update(working)


class MemoryListStore(ListStore):
    """List store held in process memory."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the store.

        Args:
            clock: Monotonic clock in seconds, used for key expiry.
        """
        self._lists: dict[str, list[str]] = {}
        self._keys: dict[str, tuple[str, float]] = {}
        self._mutex = asyncio.Lock()
        self._clock = clock

    def _head(self, queue: str) -> JobRecord | None:
        entries = self._lists.get(queue)
        return JobRecord.decode(entries[0]) if entries else None

    async def _mutate(self, op: ListOp) -> None:
        async with self._mutex:
            _apply(self._lists, op)

    async def append(self, queue: str, record: JobRecord) -> None:
        await self._mutate(ListOp(OpKind.APPEND, queue, record))

    async def peek_head(self, queue: str) -> JobRecord | None:
        async with self._mutex:
            return self._head(queue)

    async def replace_head(self, queue: str, record: JobRecord) -> None:
        await self._mutate(ListOp(OpKind.REPLACE_HEAD, queue, record))

    async def move_head_to_tail(self, source: str, destination: str) -> JobRecord | None:
        async with self._mutex:
            head = self._head(source)
            _apply(
                self._lists,
                ListOp(OpKind.MOVE_HEAD_TO_TAIL, source, destination=destination),
            )
            return head

    async def remove_first_matching(self, queue: str, record: JobRecord) -> int:
        async with self._mutex:
            before = len(self._lists.get(queue, []))
            _apply(self._lists, ListOp(OpKind.REMOVE_FIRST_MATCHING, queue, record))
            return before - len(self._lists[queue])

    async def pop_head(self, queue: str) -> JobRecord | None:
        async with self._mutex:
            head = self._head(queue)
            _apply(self._lists, ListOp(OpKind.POP_HEAD, queue))
            return head

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Transaction]:
        async with self._mutex:
            tx = MemoryTransaction(self)
            yield tx
            await tx.execute()

    async def length(self, queue: str) -> int:
        async with self._mutex:
            return len(self._lists.get(queue, []))

    async def records(self, queue: str) -> list[JobRecord]:
        async with self._mutex:
            return [JobRecord.decode(raw) for raw in self._lists.get(queue, [])]

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (_, deadline) in self._keys.items() if deadline <= now]
        for key in expired:
            del self._keys[key]

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        async with self._mutex:
            self._purge_expired()
            if key in self._keys:
                return False
            self._keys[key] = (value, self._clock() + ttl_seconds)
            return True

    async def delete(self, key: str) -> None:
        async with self._mutex:
            self._keys.pop(key, None)

    async def ping(self) -> bool:
        return True
