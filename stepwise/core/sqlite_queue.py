# File: stepwise/core/sqlite_queue.py

import time
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..interfaces.queue import QueueInterface, QueueOptions, FailureRecord
from ..interfaces.cursor_codec import CursorCodecInterface
from ..interfaces.run_state import JobPayload
from ..errors import ConfigError
from ..database import (
    SQLiteDBConnection,
    QueuedJobRepository,
    FailedJobRepository,
    QueuedJobModel,
    FailedJobModel,
)
from .cursor_codec import JsonCursorCodec

logger = logging.getLogger(__name__)

class SQLiteQueue(QueueInterface):
    """
    Durable queue backed by an SQLite file.

    Each payload is one row holding its JSON encoding. Reserving a payload
    deletes its row; a row that another worker deleted first is skipped.
    Failures land in a separate table together with the error class name.
    """

    def __init__(self,
                 db_conn: SQLiteDBConnection,
                 options: Optional[QueueOptions] = None,
                 codec: Optional[CursorCodecInterface] = None,
                 clock: Callable[[], float] = time.time):
        self.options = options or QueueOptions()
        self.queue_name = self.options.queue_name
        self.codec = codec or JsonCursorCodec()
        self.clock = clock
        self._db = db_conn
        self._jobs = QueuedJobRepository(db_conn)
        self._failures = FailedJobRepository(db_conn)
        logger.info(f"SQLiteQueue '{self.queue_name}' ready on {db_conn.db_path}")

    @classmethod
    def open(cls, db_path: Optional[Union[str, Path]] = None,
             options: Optional[QueueOptions] = None,
             codec: Optional[CursorCodecInterface] = None) -> "SQLiteQueue":
        options = options or QueueOptions()
        path = db_path or options.database_path
        if not path:
            raise ConfigError("A database path is required for SQLiteQueue but was not provided.")
        return cls(SQLiteDBConnection(path), options, codec)

    def _push(self, payload: JobPayload, run_at: float) -> str:
        row_id = self._jobs.add(QueuedJobModel(
            queue=self.queue_name,
            job_id=payload.job_id,
            job_class=payload.job_class,
            payload=self.codec.encode(payload.to_dict()),
            run_at=run_at,
            created_at=datetime.now().isoformat(),
        ))
        return f"{self.queue_name}:{row_id}"

    def enqueue(self, payload: JobPayload) -> str:
        return self._push(payload, self.clock())

    def enqueue_delayed(self, payload: JobPayload, delay: float) -> str:
        return self._push(payload, self.clock() + max(delay, 0.0))

    def reserve(self) -> Optional[JobPayload]:
        while True:
            queued = self._jobs.next_ready(self.queue_name, self.clock())
            if queued is None:
                return None
            if self._jobs.claim(queued.id):
                logger.debug(f"Reserved job {queued.job_id} (row {queued.id})")
                return JobPayload.from_dict(self.codec.decode(queued.payload))
            logger.debug(f"Row {queued.id} was claimed by another worker, trying the next one")

    def record_failure(self, payload: JobPayload, error: BaseException) -> None:
        self._failures.add(FailedJobModel(
            queue=self.queue_name,
            job_id=payload.job_id,
            job_class=payload.job_class,
            error_class=type(error).__name__,
            message=str(error),
            payload=self.codec.encode(payload.to_dict()),
            failed_at=datetime.now().isoformat(),
        ))
        logger.info(f"Recorded {type(error).__name__} for job {payload.job_id}")

    def failures(self) -> List[FailureRecord]:
        return [
            FailureRecord(
                job_id=model.job_id,
                job_class=model.job_class,
                error_class=model.error_class,
                message=model.message,
                payload=JobPayload.from_dict(self.codec.decode(model.payload)),
                failed_at=model.failed_at or "",
            )
            for model in self._failures.list_all(self.queue_name)
        ]

    def size(self) -> int:
        return self._jobs.count(self.queue_name)

    def peek_payloads(self) -> List[JobPayload]:
        return [JobPayload.from_dict(self.codec.decode(model.payload))
                for model in self._jobs.list_all(self.queue_name)]

    def close(self) -> None:
        self._db.close()
