"""
Redis-backed list store.

Maps the list store contract onto Redis list commands. A transaction queues
its mutations into one MULTI/EXEC block. Reads are not watched: callers hold
the list lock, which already keeps other clients off the head. Appends to the
tail by producers and by claims from the other list do not disturb a batch.
"""

import logging
from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import RedisError, ResponseError

from listqueue.errors import StoreError, TransactionError
from listqueue.store.base import ListOp, ListStore, OpKind, Transaction
from listqueue.types.job import JobRecord

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate redis client errors into store errors."""
    try:
        yield
    except RedisError as e:
        raise StoreError(str(e)) from e


class RedisTransaction(Transaction):
    """MULTI/EXEC batch. Reads go straight to the server."""

    def __init__(self, client: Redis, pipe: Pipeline):
        super().__init__()
        self._client = client
        self._pipe = pipe

    async def peek_head(self, queue: str) -> JobRecord | None:
        with _store_errors():
            raw = await self._client.lindex(queue, 0)
        return JobRecord.decode(raw) if raw is not None else None

    async def execute(self) -> None:
        if not self._ops:
            return

        for op in self._ops:
            self._queue_op(op)

        try:
            await self._pipe.execute()
        except ResponseError as e:
            raise TransactionError(f"Batch command failed: {e}") from e
        except RedisError as e:
            raise StoreError(str(e)) from e

    def _queue_op(self, op: ListOp) -> None:
        pipe = self._pipe
        if op.kind is OpKind.APPEND:
            pipe.rpush(op.queue, op.record.encode())
        elif op.kind is OpKind.REPLACE_HEAD:
            pipe.lset(op.queue, 0, op.record.encode())
        elif op.kind is OpKind.MOVE_HEAD_TO_TAIL:
            pipe.lmove(op.queue, op.destination, "LEFT", "RIGHT")
        elif op.kind is OpKind.REMOVE_FIRST_MATCHING:
            pipe.lrem(op.queue, 1, op.record.encode())
        elif op.kind is OpKind.POP_HEAD:
            pipe.lpop(op.queue)
        else:
            raise ValueError(f"Unsupported list operation: {op.kind}")


class RedisListStore(ListStore):
    """List store on a shared Redis server."""

    def __init__(self, client: Redis):
        """
        Initialize the store.

        Args:
            client: An async Redis client created with decode_responses=True.
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisListStore":
        return cls(Redis.from_url(url, decode_responses=True))

    @property
    def client(self) -> Redis:
        return self._client

    async def append(self, queue: str, record: JobRecord) -> None:
        with _store_errors():
            await self._client.rpush(queue, record.encode())

    async def peek_head(self, queue: str) -> JobRecord | None:
        with _store_errors():
            raw = await self._client.lindex(queue, 0)
        return JobRecord.decode(raw) if raw is not None else None

    async def replace_head(self, queue: str, record: JobRecord) -> None:
        with _store_errors():
            await self._client.lset(queue, 0, record.encode())

    async def move_head_to_tail(self, source: str, destination: str) -> JobRecord | None:
        with _store_errors():
            raw = await self._client.lmove(source, destination, "LEFT", "RIGHT")
        return JobRecord.decode(raw) if raw is not None else None

    async def remove_first_matching(self, queue: str, record: JobRecord) -> int:
        with _store_errors():
            return await self._client.lrem(queue, 1, record.encode())

    async def pop_head(self, queue: str) -> JobRecord | None:
        with _store_errors():
            raw = await self._client.lpop(queue)
        return JobRecord.decode(raw) if raw is not None else None

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Transaction]:
        async with self._client.pipeline(transaction=True) as pipe:
            tx = RedisTransaction(self._client, pipe)
            yield tx
            await tx.execute()

    async def length(self, queue: str) -> int:
        with _store_errors():
            return await self._client.llen(queue)

    async def records(self, queue: str) -> list[JobRecord]:
        with _store_errors():
            raws = await self._client.lrange(queue, 0, -1)
        return [JobRecord.decode(raw) for raw in raws]

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        with _store_errors():
            result = await self._client.set(key, value, nx=True, ex=ttl_seconds)
        return bool(result)

    async def delete(self, key: str) -> None:
        with _store_errors():
            await self._client.delete(key)

    async def ping(self) -> bool:
        with _store_errors():
            return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis connection closed")
