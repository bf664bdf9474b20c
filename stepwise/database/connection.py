# File: stepwise/database/connection.py

import sqlite3
import logging
from pathlib import Path
from typing import Optional, Any, Dict, List, Union

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

class SQLiteDBConnection:
    """
    Manages an SQLite database connection.
    Ensures the database file exists, and the queue tables too unless
    ``queue_tables`` is False (e.g. for a data database read by a sequence).
    """
    def __init__(self, db_path: Union[str, Path], queue_tables: bool = True):
        self.db_path = str(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        self._ensure_db_directory()
        self._connect()
        if queue_tables:
            self._create_tables_if_not_exist()

    def _ensure_db_directory(self):
        if self.db_path != MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self):
        try:
            self.conn = sqlite3.connect(self.db_path, timeout=10)
            self.conn.row_factory = sqlite3.Row
            logger.info(f"Connected to SQLite database: {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Error connecting to SQLite database at {self.db_path}: {e}", exc_info=True)
            raise

    def cursor(self) -> sqlite3.Cursor:
        if not self.conn:
            self._connect()
        if not self.conn:
            raise sqlite3.OperationalError("Database connection is not available.")
        return self.conn.cursor()

    def commit(self):
        if self.conn:
            self.conn.commit()

    def rollback(self):
        if self.conn:
            self.conn.rollback()

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info(f"Closed SQLite database connection: {self.db_path}")

    def _create_tables_if_not_exist(self):
        """Creates the 'queued_jobs' and 'failed_jobs' tables."""
        try:
            cursor = self.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS queued_jobs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    queue TEXT NOT NULL,
                    job_id TEXT NOT NULL,
                    job_class TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    run_at REAL NOT NULL,
                    created_at TEXT
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_queued_jobs_ready ON queued_jobs (queue, run_at, id)")

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS failed_jobs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    queue TEXT NOT NULL,
                    job_id TEXT NOT NULL,
                    job_class TEXT NOT NULL,
                    error_class TEXT NOT NULL,
                    message TEXT,
                    payload TEXT NOT NULL,
                    failed_at TEXT
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_failed_jobs_job_id ON failed_jobs (job_id)")
            logger.info("Ensured 'queued_jobs' and 'failed_jobs' tables exist.")
            self.commit()
        except sqlite3.Error as e:
            logger.error(f"Error creating tables: {e}", exc_info=True)
            self.rollback()
            raise

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        cur = self.cursor()
        cur.execute(sql, params)
        return cur

    def fetchone(self, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Executes a SQL query and returns a single row as a dict, or None."""
        cur = self.execute(sql, params)
        row = cur.fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Executes a SQL query and returns all rows as a list of dicts."""
        cur = self.execute(sql, params)
        return [dict(row) for row in cur.fetchall()]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
