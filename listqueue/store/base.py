"""
List store contract.

The queue needs a small set of primitives from its backing store: ordered
lists with head/tail access, an atomic list-to-list move, all-or-nothing
batches, and a conditional set-with-expiry for locking. Any store offering
these can back the queue.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from enum import StrEnum

from listqueue.types.job import JobRecord


class OpKind(StrEnum):
    """Mutations that may be batched in a transaction."""

    APPEND = "append"
    REPLACE_HEAD = "replace_head"
    MOVE_HEAD_TO_TAIL = "move_head_to_tail"
    REMOVE_FIRST_MATCHING = "remove_first_matching"
    POP_HEAD = "pop_head"


@dataclass(frozen=True)
class ListOp:
    """A buffered list mutation."""

    kind: OpKind
    queue: str
    record: JobRecord | None = None
    destination: str | None = None


class Transaction(ABC):
    """
    A unit of work against the store.

    Reads run immediately. Callers hold the lock of every list whose head
    they read, so the head cannot change before commit.
    Mutations are buffered and applied together when the owning context
    exits cleanly.
    """

    def __init__(self) -> None:
        self._ops: list[ListOp] = []

    @property
    def ops(self) -> list[ListOp]:
        return list(self._ops)

    @abstractmethod
    async def peek_head(self, queue: str) -> JobRecord | None:
        """Read the head of a list without modifying it."""

    @abstractmethod
    async def execute(self) -> None:
        """
        Apply the buffered mutations atomically.

        Raises:
            TransactionError: If the batch was rejected; nothing was applied.
        """

    def append(self, queue: str, record: JobRecord) -> None:
        self._ops.append(ListOp(OpKind.APPEND, queue, record))

    def replace_head(self, queue: str, record: JobRecord) -> None:
        self._ops.append(ListOp(OpKind.REPLACE_HEAD, queue, record))

    def move_head_to_tail(self, source: str, destination: str) -> None:
        self._ops.append(
            ListOp(OpKind.MOVE_HEAD_TO_TAIL, source, destination=destination)
        )

    def remove_first_matching(self, queue: str, record: JobRecord) -> None:
        self._ops.append(ListOp(OpKind.REMOVE_FIRST_MATCHING, queue, record))

    def pop_head(self, queue: str) -> None:
        self._ops.append(ListOp(OpKind.POP_HEAD, queue))


class ListStore(ABC):
    """
    Abstract list store used by the producer, dispatcher, sweeper and locks.

    All methods raise StoreError (or a subclass) on backend failure.
    """

    @abstractmethod
    async def append(self, queue: str, record: JobRecord) -> None:
        """Push a record to the tail of a list."""

    @abstractmethod
    async def peek_head(self, queue: str) -> JobRecord | None:
        """Read the head of a list, or None when it is empty."""

    @abstractmethod
    async def replace_head(self, queue: str, record: JobRecord) -> None:
        """Overwrite the entry at the head of a non-empty list."""

    @abstractmethod
    async def move_head_to_tail(self, source: str, destination: str) -> JobRecord | None:
        """Atomically pop the head of source and push it to the tail of destination."""

    @abstractmethod
    async def remove_first_matching(self, queue: str, record: JobRecord) -> int:
        """Delete the first entry equal to record. Returns the number removed."""

    @abstractmethod
    async def pop_head(self, queue: str) -> JobRecord | None:
        """Remove and return the head of a list."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[Transaction]:
        """
        Open an all-or-nothing batch.

        Usage:
            async with store.transaction() as tx:
                head = await tx.peek_head("pending")
                tx.replace_head("pending", stamped)
                tx.move_head_to_tail("pending", "in-flight")
        """

    @abstractmethod
    async def length(self, queue: str) -> int:
        """Number of entries in a list."""

    @abstractmethod
    async def records(self, queue: str) -> list[JobRecord]:
        """All entries of a list, head first."""

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set key with an expiry only if it does not exist. Returns True if set."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a key. Deleting a missing key is a no-op."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity."""

    async def close(self) -> None:
        """Release any connections held by the store."""
