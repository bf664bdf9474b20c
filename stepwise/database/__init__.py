# File: stepwise/database/__init__.py

from .connection import SQLiteDBConnection
from .models import QueuedJobModel, FailedJobModel
from .repositories import QueuedJobRepository, FailedJobRepository

__all__ = [
    "SQLiteDBConnection",
    "QueuedJobModel",
    "FailedJobModel",
    "QueuedJobRepository",
    "FailedJobRepository",
]
