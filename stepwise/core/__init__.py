# stepwise/core/__init__.py
from .event_bus import EventBus
from .cursor_codec import JsonCursorCodec
from .interruption import InterruptionPolicy
from .runner import IterationRunner
from .dispatcher import ResumeDispatcher
from .memory_queue import InMemoryQueue
from .sqlite_queue import SQLiteQueue
from .executor import JobExecutor, JobRegistry, default_registry, register_job
from .worker import Worker, ShutdownFlag
from .stats_tracker import StatsTracker, RunStats
from .sequences import (
    array_sequence,
    range_sequence,
    csv_sequence,
    records_sequence,
    record_batches_sequence,
    nested_sequence,
    throttle_sequence,
)

__all__ = [
    "EventBus",
    "JsonCursorCodec",
    "InterruptionPolicy",
    "IterationRunner",
    "ResumeDispatcher",
    "InMemoryQueue",
    "SQLiteQueue",
    "JobExecutor",
    "JobRegistry",
    "default_registry",
    "register_job",
    "Worker",
    "ShutdownFlag",
    "StatsTracker",
    "RunStats",
    "array_sequence",
    "range_sequence",
    "csv_sequence",
    "records_sequence",
    "record_batches_sequence",
    "nested_sequence",
    "throttle_sequence",
]

"""
Core components for the stepwise package.
"""
