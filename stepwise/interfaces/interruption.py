# stepwise/interfaces/interruption.py

from dataclasses import dataclass
from typing import Any, Optional
from .run_state import RunContext, StopReason

@dataclass
class InterruptionOptions:
    """Configuration options for interruption checks"""
    max_run_duration: Optional[float] = 300.0  # seconds, None disables
    interruption_check_throttle: float = 1.0  # seconds between shutdown/duration samples

class InterruptionPolicyInterface:
    """Decides, after each processed item, whether the current run must stop."""

    stop_reason: Optional[StopReason] = None

    def should_stop(self, item: Any, context: RunContext) -> bool:
        """
        Answer whether the run must checkpoint now.

        Must not mutate the context or the run state. Once it answers True
        for a run it keeps answering True, with ``stop_reason`` set.
        """
        raise NotImplementedError("Subclasses must implement should_stop")
