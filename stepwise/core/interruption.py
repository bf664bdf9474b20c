# stepwise/core/interruption.py

import time
import logging
from typing import Any, Callable, Optional

from ..interfaces.interruption import InterruptionPolicyInterface, InterruptionOptions
from ..interfaces.run_state import RunContext, StopReason

logger = logging.getLogger(__name__)

StopPredicate = Callable[[Any, RunContext], bool]


class InterruptionPolicy(InterruptionPolicyInterface):
    """
    Default interruption policy. Stops on the first of:

    1. the host's shutdown flag,
    2. the run exceeding ``max_run_duration``,
    3. the caller's predicate.

    The shutdown flag and the duration are sampled at most once per
    ``interruption_check_throttle`` seconds (the first item is always
    sampled). A run can therefore outlive its budget, or a shutdown request,
    by at most one throttle interval plus the duration of one item. The
    predicate is asked after every item. Build one policy per run: the
    duration budget counts from construction.
    """

    def __init__(self,
                 shutdown_requested: Optional[Callable[[], bool]] = None,
                 options: Optional[InterruptionOptions] = None,
                 predicate: Optional[StopPredicate] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.shutdown_requested = shutdown_requested or (lambda: False)
        self.options = options or InterruptionOptions()
        self.predicate = predicate
        self.clock = clock
        self.started_at = clock()
        self.stop_reason: Optional[StopReason] = None
        self._last_sample_at: Optional[float] = None

    @classmethod
    def from_config(cls, config, shutdown_requested: Optional[Callable[[], bool]] = None,
                    predicate: Optional[StopPredicate] = None,
                    clock: Callable[[], float] = time.monotonic) -> "InterruptionPolicy":
        options = InterruptionOptions(
            max_run_duration=config.max_run_duration,
            interruption_check_throttle=config.interruption_check_throttle,
        )
        return cls(shutdown_requested=shutdown_requested, options=options, predicate=predicate, clock=clock)

    def _sample_due(self, now: float) -> bool:
        if self._last_sample_at is None:
            return True
        return now - self._last_sample_at >= self.options.interruption_check_throttle

    def _stop(self, reason: StopReason, context: RunContext) -> bool:
        self.stop_reason = reason
        logger.info(f"Job {context.job_id}: stop requested ({reason.value}) after "
                    f"{context.items_processed} items")
        return True

    def should_stop(self, item: Any, context: RunContext) -> bool:
        if self.stop_reason is not None:
            return True

        now = self.clock()
        if self._sample_due(now):
            self._last_sample_at = now
            if self.shutdown_requested():
                return self._stop(StopReason.SHUTDOWN, context)
            max_duration = self.options.max_run_duration
            if max_duration and now - self.started_at >= max_duration:
                return self._stop(StopReason.MAX_DURATION, context)

        if self.predicate is not None and self.predicate(item, context):
            return self._stop(StopReason.PREDICATE, context)

        return False
