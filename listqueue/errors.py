"""
Exception hierarchy for the queue.
"""


class QueueError(Exception):
    """Base exception for queue errors."""


class StoreError(QueueError):
    """The backing list store failed or could not be reached."""


class TransactionError(StoreError):
    """A multi-operation batch was aborted; none of its operations applied."""


class RecordDecodeError(StoreError):
    """A list entry could not be decoded into a job record."""

    def __init__(self, raw: str | bytes):
        super().__init__(f"Malformed job record in store: {raw!r}")
        self.raw = raw


class InvalidTransitionError(QueueError):
    def __init__(self, current_state, target_state):
        super().__init__(f"Cannot transition from {current_state} to {target_state}")
        self.current_state = current_state
        self.target_state = target_state
