"""
Job producer.

Appends new job records to the tail of the pending list. A single append is
atomic in the store, so producers never take the pending lock.
"""

import logging
from typing import Any
from uuid import uuid4

from listqueue.config import get_settings
from listqueue.observability.metrics import get_metrics
from listqueue.store.base import ListStore
from listqueue.types.job import JobRecord

logger = logging.getLogger(__name__)


class Producer:
    """Submits jobs to the pending list."""

    def __init__(self, store: ListStore, pending_queue: str | None = None):
        self._store = store
        self.pending_queue = pending_queue or get_settings().pending_queue
        self._metrics = get_metrics()

    async def enqueue(
        self,
        name: str,
        payload: Any = None,
        job_id: str | None = None,
    ) -> JobRecord:
        """
        Add a job to the tail of the pending list.

        Args:
            name: Handler name the job will be executed with.
            payload: Opaque data handed to the handler.
            job_id: Caller-supplied id. A random id is generated when omitted.

        Returns:
            The stored record, with zero attempts and no claim timestamp.

        Raises:
            StoreError: If the store cannot be reached.
        """
        record = JobRecord(id=job_id or uuid4().hex, name=name, payload=payload)
        await self._store.append(self.pending_queue, record)

        self._metrics.record_job_enqueued(name)
        logger.info(
            "Job enqueued",
            extra={"job_id": record.id, "job_name": name, "queue": self.pending_queue},
        )
        return record
