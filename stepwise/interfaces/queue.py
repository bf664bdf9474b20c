# stepwise/interfaces/queue.py

from dataclasses import dataclass
from typing import List, Optional
from .run_state import JobPayload

@dataclass
class QueueOptions:
    """Configuration options for queue transports."""
    queue_name: str = "default"
    database_path: Optional[str] = None

@dataclass
class FailureRecord:
    """A job run that ended in an unhandled error."""
    job_id: str
    job_class: str
    error_class: str
    message: str
    payload: JobPayload
    failed_at: str

    @property
    def is_cursor_error(self) -> bool:
        return self.error_class == "CursorError"

class QueueInterface:
    """Interface for the transport that stores and redelivers job payloads."""

    def enqueue(self, payload: JobPayload) -> str:
        """
        Submit a payload for immediate pickup.

        Returns:
            A handle identifying the submission
        """
        raise NotImplementedError("Subclasses must implement enqueue")

    def enqueue_delayed(self, payload: JobPayload, delay: float) -> str:
        """Submit a payload that becomes available after ``delay`` seconds."""
        raise NotImplementedError("Subclasses must implement enqueue_delayed")

    def reserve(self) -> Optional[JobPayload]:
        """
        Take the oldest available payload off the queue.

        Returns:
            The payload, or None if nothing is ready
        """
        raise NotImplementedError("Subclasses must implement reserve")

    def record_failure(self, payload: JobPayload, error: BaseException) -> None:
        """Record an unhandled error with its class name and message."""
        raise NotImplementedError("Subclasses must implement record_failure")

    def failures(self) -> List[FailureRecord]:
        raise NotImplementedError("Subclasses must implement failures")

    def size(self) -> int:
        """Number of payloads waiting, delayed ones included."""
        raise NotImplementedError("Subclasses must implement size")
