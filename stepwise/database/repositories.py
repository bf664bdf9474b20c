# File: stepwise/database/repositories.py

import logging
import sqlite3
from typing import List, Optional

from .connection import SQLiteDBConnection
from .models import QueuedJobModel, FailedJobModel
from ..errors import DatabaseError

logger = logging.getLogger(__name__)

class QueuedJobRepository:
    TABLE_NAME = "queued_jobs"

    def __init__(self, db_conn: SQLiteDBConnection):
        self._db = db_conn

    def add(self, job: QueuedJobModel) -> int:
        """Inserts a queued job and returns its row ID."""
        payload = job.to_db_dict(for_insert=True)
        fields = ", ".join(payload.keys())
        placeholders = ", ".join(["?"] * len(payload))
        sql = f"INSERT INTO {self.TABLE_NAME} ({fields}) VALUES ({placeholders})"
        try:
            cursor = self._db.execute(sql, tuple(payload.values()))
            self._db.commit()
            logger.debug(f"Queued job {job.job_id} on '{job.queue}' as row {cursor.lastrowid}")
            return cursor.lastrowid
        except sqlite3.Error as e:
            logger.error(f"SQLite error queueing job {job.job_id}: {e}", exc_info=True)
            self._db.rollback()
            raise DatabaseError(f"Failed to queue job: {e}") from e

    def next_ready(self, queue: str, now: float) -> Optional[QueuedJobModel]:
        sql = (f"SELECT * FROM {self.TABLE_NAME} WHERE queue = ? AND run_at <= ? "
               f"ORDER BY run_at, id LIMIT 1")
        return QueuedJobModel.from_row(self._db.fetchone(sql, (queue, now)))

    def claim(self, row_id: int) -> bool:
        """
        Deletes a queued row. Returns False if another worker already took it.
        """
        try:
            cursor = self._db.execute(f"DELETE FROM {self.TABLE_NAME} WHERE id = ?", (row_id,))
            self._db.commit()
            return cursor.rowcount == 1
        except sqlite3.Error as e:
            logger.error(f"SQLite error claiming queued row {row_id}: {e}", exc_info=True)
            self._db.rollback()
            raise DatabaseError(f"Failed to claim queued job: {e}") from e

    def count(self, queue: str) -> int:
        row = self._db.fetchone(f"SELECT COUNT(*) AS n FROM {self.TABLE_NAME} WHERE queue = ?", (queue,))
        return row["n"] if row else 0

    def list_all(self, queue: str) -> List[QueuedJobModel]:
        rows = self._db.fetchall(f"SELECT * FROM {self.TABLE_NAME} WHERE queue = ? ORDER BY id", (queue,))
        return [QueuedJobModel.from_row(row) for row in rows]


class FailedJobRepository:
    TABLE_NAME = "failed_jobs"

    def __init__(self, db_conn: SQLiteDBConnection):
        self._db = db_conn

    def add(self, failure: FailedJobModel) -> int:
        payload = failure.to_db_dict(for_insert=True)
        fields = ", ".join(payload.keys())
        placeholders = ", ".join(["?"] * len(payload))
        sql = f"INSERT INTO {self.TABLE_NAME} ({fields}) VALUES ({placeholders})"
        try:
            cursor = self._db.execute(sql, tuple(payload.values()))
            self._db.commit()
            return cursor.lastrowid
        except sqlite3.Error as e:
            logger.error(f"SQLite error recording failure for job {failure.job_id}: {e}", exc_info=True)
            self._db.rollback()
            raise DatabaseError(f"Failed to record job failure: {e}") from e

    def list_all(self, queue: str) -> List[FailedJobModel]:
        rows = self._db.fetchall(f"SELECT * FROM {self.TABLE_NAME} WHERE queue = ? ORDER BY id", (queue,))
        return [FailedJobModel.from_row(row) for row in rows]
