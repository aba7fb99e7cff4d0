"""
Job-related type definitions.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from listqueue.constants import ALLOWED_TRANSITIONS, JobState
from listqueue.errors import InvalidTransitionError, RecordDecodeError


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def check_transition(current: JobState, target: JobState) -> None:
    """
    Validate a lifecycle transition.

    Raises:
        InvalidTransitionError: If the transition is not permitted.
    """
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)


class JobRecord(BaseModel):
    """
    A job as stored in the pending and in-flight lists.

    Records are stored as compact JSON. Encoding is deterministic, so two
    equal records always produce the same list entry; completion relies on
    this to remove a record by value.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    payload: Any = None
    attempts: int = Field(default=0, ge=0)
    claimed_at: datetime | None = Field(default=None, alias="claimedAt")

    def encode(self) -> str:
        """Serialize to the stored JSON form."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def decode(cls, raw: str | bytes) -> "JobRecord":
        """
        Parse a stored list entry.

        Raises:
            RecordDecodeError: If the entry is not a valid job record.
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise RecordDecodeError(raw) from e

    def claim(self, now: datetime) -> "JobRecord":
        """Return a copy stamped for a pending -> in-flight move."""
        return self.model_copy(
            update={"attempts": self.attempts + 1, "claimed_at": now}
        )

    def unclaimed(self) -> "JobRecord":
        """Return a copy with the claim timestamp cleared."""
        return self.model_copy(update={"claimed_at": None})

    def is_stale(self, now: datetime, threshold: timedelta) -> bool:
        """
        Check whether an in-flight record is old enough to reclaim.

        A record without a claim timestamp cannot be aged and counts as stale.
        """
        if self.claimed_at is None:
            return True
        return now - self.claimed_at >= threshold


class JobResult(BaseModel):
    """
    Result of job execution.
    Returned by job handlers after processing.
    """

    success: bool
    output: dict[str, Any] | None = None
    error: str | None = None


@dataclass
class JobContext:
    """
    Context passed to job handlers during execution.
    """

    job_id: str
    name: str
    attempt: int
    max_attempts: int
    payload: Any
    claimed_at: datetime | None
    worker_id: str

    @classmethod
    def from_record(
        cls,
        record: JobRecord,
        max_attempts: int,
        worker_id: str,
    ) -> "JobContext":
        return cls(
            job_id=record.id,
            name=record.name,
            attempt=record.attempts,
            max_attempts=max_attempts,
            payload=record.payload,
            claimed_at=record.claimed_at,
            worker_id=worker_id,
        )

    @property
    def data(self) -> dict[str, Any]:
        """Payload as a mapping; empty when the payload is not an object."""
        return self.payload if isinstance(self.payload, dict) else {}

    @property
    def is_last_attempt(self) -> bool:
        """Check if this is the last retry attempt."""
        return self.attempt >= self.max_attempts

    @property
    def remaining_attempts(self) -> int:
        """Get remaining retry attempts."""
        return max(0, self.max_attempts - self.attempt)
