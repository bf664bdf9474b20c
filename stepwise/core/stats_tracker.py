"""
Centralized statistics tracking for workers and harness runs.
"""

import logging
import time
from dataclasses import dataclass, asdict
from typing import Dict, Any

from ..interfaces.event_bus import EventBus as EventBusInterface
from ..events import EventType

logger = logging.getLogger(__name__)

@dataclass
class RunStats:
    """Statistics about iteration runs"""
    # Run counts
    runs_started: int = 0
    runs_resumed: int = 0
    runs_interrupted: int = 0
    runs_completed: int = 0
    runs_failed: int = 0

    # Item and transport counts
    items_processed: int = 0
    jobs_resubmitted: int = 0
    cursor_errors: int = 0

    # Current state
    current_job: str = ""
    status_message: str = ""

    # Error tracking
    errors: int = 0

    # Timing
    start_time: float = 0.0

    @property
    def runs_performed(self) -> int:
        return self.runs_started + self.runs_resumed

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

class StatsTracker:
    """
    Counts run lifecycle events. Attach it to an event bus and read
    ``stats`` or ``get_summary()``.
    """

    def __init__(self):
        self._stats = RunStats()
        self._stats.start_time = time.time()
        self._counters = {
            EventType.RUN_STARTED: "runs_started",
            EventType.RUN_RESUMED: "runs_resumed",
            EventType.RUN_INTERRUPTED: "runs_interrupted",
            EventType.RUN_COMPLETED: "runs_completed",
            EventType.RUN_FAILED: "runs_failed",
            EventType.ITEM_PROCESSED: "items_processed",
            EventType.JOB_RESUBMITTED: "jobs_resubmitted",
            EventType.CURSOR_ERROR: "cursor_errors",
            EventType.JOB_FAILED: "errors",
        }

    @property
    def stats(self) -> RunStats:
        return self._stats

    def attach(self, event_bus: EventBusInterface) -> None:
        for event_type in self._counters:
            event_bus.subscribe(event_type, self._handle_event)
        event_bus.subscribe(EventType.JOB_RESERVED, self._handle_reserved)

    def _handle_event(self, event_enum: EventType, **data: Any) -> None:
        self.increment(self._counters[event_enum])

    def _handle_reserved(self, **data: Any) -> None:
        self.update(current_job=f"{data.get('job_class', '?')} {data.get('job_id', '')}")

    def update(self, **kwargs: Any) -> None:
        for key, value in kwargs.items():
            if hasattr(self._stats, key):
                setattr(self._stats, key, value)
            else:
                logger.warning(f"Attempted to update non-existent stat: {key}")

    def increment(self, stat_name: str, amount: int = 1) -> None:
        if hasattr(self._stats, stat_name):
            setattr(self._stats, stat_name, getattr(self._stats, stat_name) + amount)
        else:
            logger.warning(f"Attempted to increment non-existent stat: {stat_name}")

    def get_elapsed_time(self) -> float:
        return time.time() - self._stats.start_time

    def get_summary(self) -> Dict[str, Any]:
        return {
            "runs": {
                "performed": self._stats.runs_performed,
                "interrupted": self._stats.runs_interrupted,
                "completed": self._stats.runs_completed,
                "failed": self._stats.runs_failed,
            },
            "items_processed": self._stats.items_processed,
            "jobs_resubmitted": self._stats.jobs_resubmitted,
            "cursor_errors": self._stats.cursor_errors,
            "errors": self._stats.errors,
            "elapsed_time": self.get_elapsed_time(),
        }
