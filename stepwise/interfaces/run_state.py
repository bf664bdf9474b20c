# stepwise/interfaces/run_state.py

import time
import uuid
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional

from ..errors import PayloadError

# Field order of a serialized payload. Some transports encode positionally,
# so this order must never change.
PAYLOAD_FIELDS = ("job_class", "job_id", "arguments", "cursor_position", "times_interrupted")


class RunPhase(Enum):
    STARTING = "starting"
    RUNNING = "running"
    CHECKPOINTING = "checkpointing"
    STOPPED = "stopped"
    FINISHED = "finished"
    FAILED = "failed"


class StopReason(Enum):
    SHUTDOWN = "shutdown"
    MAX_DURATION = "max_duration"
    PREDICATE = "predicate"
    FORCED = "forced"
    THROTTLED = "throttled"


def _check_times_interrupted(value: Any) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise PayloadError(f"times_interrupted must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class RunState:
    """The minimal data needed to resume iteration exactly where it stopped."""
    cursor: Any = None
    times_interrupted: int = 0

    def __post_init__(self):
        _check_times_interrupted(self.times_interrupted)

    @property
    def is_fresh(self) -> bool:
        return self.cursor is None and self.times_interrupted == 0

    def advance(self, cursor: Any) -> "RunState":
        """State for the next submission after a checkpoint at ``cursor``."""
        return RunState(cursor=cursor, times_interrupted=self.times_interrupted + 1)


@dataclass(frozen=True)
class JobPayload:
    """A unit-of-work submission: the original arguments plus the run state."""
    job_class: str
    job_id: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    cursor_position: Any = None
    times_interrupted: int = 0

    def __post_init__(self):
        _check_times_interrupted(self.times_interrupted)

    @classmethod
    def new(cls, job_class: str, arguments: Optional[Dict[str, Any]] = None,
            job_id: Optional[str] = None) -> "JobPayload":
        return cls(
            job_class=job_class,
            job_id=job_id or uuid.uuid4().hex,
            arguments=dict(arguments or {}),
        )

    @property
    def run_state(self) -> RunState:
        return RunState(cursor=self.cursor_position, times_interrupted=self.times_interrupted)

    def with_run_state(self, run_state: RunState) -> "JobPayload":
        """Copy of this payload where only the run state fields differ."""
        return replace(
            self,
            cursor_position=run_state.cursor,
            times_interrupted=run_state.times_interrupted,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in PAYLOAD_FIELDS}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobPayload":
        if not isinstance(data, dict):
            raise PayloadError(f"Payload must be a mapping, got {type(data).__name__}")
        missing = [name for name in ("job_class", "job_id") if name not in data]
        if missing:
            raise PayloadError(f"Payload is missing fields: {', '.join(missing)}")
        arguments = data.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise PayloadError(f"Payload arguments must be a mapping, got {type(arguments).__name__}")
        return cls(
            job_class=data["job_class"],
            job_id=data["job_id"],
            arguments=arguments,
            cursor_position=data.get("cursor_position"),
            times_interrupted=data.get("times_interrupted", 0),
        )


@dataclass
class RunContext:
    """
    Per-run view handed to ``process_item``, the stop predicate and the hooks.

    ``run_state`` is the state this run started from and never changes;
    ``cursor`` is the last checkpoint cursor consumed during this run.
    """
    job_id: str
    job_class: str
    arguments: Dict[str, Any]
    run_state: RunState
    clock: Callable[[], float] = time.monotonic
    phase: RunPhase = RunPhase.STARTING
    items_processed: int = 0
    cursor: Any = None
    started_at: float = 0.0

    def __post_init__(self):
        self.started_at = self.clock()
        self.cursor = self.run_state.cursor

    @property
    def times_interrupted(self) -> int:
        return self.run_state.times_interrupted

    @property
    def is_resumed(self) -> bool:
        return self.run_state.times_interrupted > 0

    @property
    def elapsed(self) -> float:
        return self.clock() - self.started_at


@dataclass(frozen=True)
class RunOutcome:
    """Result of one runner pass."""
    run_state: RunState
    items_processed: int = 0


@dataclass(frozen=True)
class Resubmit(RunOutcome):
    """The run stopped at a checkpoint; ``run_state`` must be submitted again."""
    reason: StopReason = StopReason.FORCED
    delay: float = 0.0


@dataclass(frozen=True)
class Finished(RunOutcome):
    """The sequence was exhausted; ``run_state`` is terminal and must not be resubmitted."""
    pass
