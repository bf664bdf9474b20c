# stepwise/core/memory_queue.py

import time
import logging
import itertools
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..interfaces.queue import QueueInterface, FailureRecord
from ..interfaces.cursor_codec import CursorCodecInterface
from ..interfaces.run_state import JobPayload
from .cursor_codec import JsonCursorCodec

logger = logging.getLogger(__name__)

class InMemoryQueue(QueueInterface):
    """
    Process-local queue for tests and the harness.

    Payloads are stored encoded, exactly as a real transport would store
    them, so whatever does not survive the encoding is visible on reserve.
    """

    def __init__(self, codec: Optional[CursorCodecInterface] = None,
                 clock: Callable[[], float] = time.time,
                 queue_name: str = "default"):
        self.codec = codec or JsonCursorCodec()
        self.clock = clock
        self.queue_name = queue_name
        self._entries: List[Dict[str, Any]] = []
        self._failures: List[FailureRecord] = []
        self._ids = itertools.count(1)
        logger.debug(f"InMemoryQueue '{queue_name}' initialized")

    def _push(self, payload: JobPayload, run_at: float) -> str:
        handle = f"{self.queue_name}:{next(self._ids)}"
        self._entries.append({
            "handle": handle,
            "run_at": run_at,
            "data": self.codec.encode(payload.to_dict()),
        })
        return handle

    def enqueue(self, payload: JobPayload) -> str:
        return self._push(payload, self.clock())

    def enqueue_delayed(self, payload: JobPayload, delay: float) -> str:
        return self._push(payload, self.clock() + max(delay, 0.0))

    def reserve(self) -> Optional[JobPayload]:
        now = self.clock()
        for index, entry in enumerate(self._entries):
            if entry["run_at"] <= now:
                del self._entries[index]
                return JobPayload.from_dict(self.codec.decode(entry["data"]))
        return None

    def record_failure(self, payload: JobPayload, error: BaseException) -> None:
        self._failures.append(FailureRecord(
            job_id=payload.job_id,
            job_class=payload.job_class,
            error_class=type(error).__name__,
            message=str(error),
            payload=payload,
            failed_at=datetime.now().isoformat(),
        ))
        logger.debug(f"InMemoryQueue: recorded {type(error).__name__} for job {payload.job_id}")

    def failures(self) -> List[FailureRecord]:
        return list(self._failures)

    def size(self) -> int:
        return len(self._entries)

    @property
    def enqueued_jobs(self) -> List[Dict[str, Any]]:
        """Decoded payload dicts in submission order, delayed ones included."""
        return [self.codec.decode(entry["data"]) for entry in self._entries]

    def peek_payloads(self) -> List[JobPayload]:
        return [JobPayload.from_dict(data) for data in self.enqueued_jobs]

    def clear(self) -> None:
        self._entries.clear()
        self._failures.clear()
