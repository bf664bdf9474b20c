# stepwise/__init__.py

"""
Interruptible, resumable iteration jobs.

A job describes a lazy sequence of ``(item, cursor)`` pairs and how to
process one item. The runner processes items until an interruption policy
asks it to stop, then hands back a run state that resumes right after the
last processed item.
"""

from .interfaces.iteration_job import IterationJobInterface
from .interfaces.run_state import (
    RunState,
    RunContext,
    RunPhase,
    StopReason,
    JobPayload,
    RunOutcome,
    Resubmit,
    Finished,
)
from .errors import (
    IterationError,
    CursorError,
    SequenceConstructionError,
    SequenceThrottled,
    ConfigError,
    DatabaseError,
    PayloadError,
    JobNotRegisteredError,
)
from .config import IterationConfig, load_config

__version__ = "0.1.0"

__all__ = [
    "IterationJobInterface",
    "RunState",
    "RunContext",
    "RunPhase",
    "StopReason",
    "JobPayload",
    "RunOutcome",
    "Resubmit",
    "Finished",
    "IterationError",
    "CursorError",
    "SequenceConstructionError",
    "SequenceThrottled",
    "ConfigError",
    "DatabaseError",
    "PayloadError",
    "JobNotRegisteredError",
    "IterationConfig",
    "load_config",
]
