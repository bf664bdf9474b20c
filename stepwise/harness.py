# File: stepwise/harness.py

"""
Helpers for driving iteration jobs in tests.

``IterationHarness`` performs a job through the real runner and dispatcher
on an ``InMemoryQueue`` and lets a test force interruptions, so resumption
can be checked without signals or wall-clock budgets:

    harness = IterationHarness(MyJob)
    harness.iterate_exact_times(2)
    payload = harness.iterate_once()
    harness.continue_iterating(payload)
"""

import logging
from typing import Any, Dict, List, Optional, Type

from .interfaces.interruption import InterruptionPolicyInterface
from .interfaces.iteration_job import IterationJobInterface
from .interfaces.run_state import JobPayload, RunContext, RunOutcome, Resubmit, StopReason
from .core.runner import IterationRunner
from .core.dispatcher import ResumeDispatcher
from .core.memory_queue import InMemoryQueue
from .core.event_bus import EventBus
from .core.executor import check_arguments

logger = logging.getLogger(__name__)


class ForcedInterruptionPolicy(InterruptionPolicyInterface):
    """Stops the run after ``stop_after`` items; ``None`` never stops."""

    def __init__(self, stop_after: Optional[int] = 1):
        self.stop_after = stop_after
        self.stop_reason: Optional[StopReason] = None

    def should_stop(self, item: Any, context: RunContext) -> bool:
        if self.stop_after is not None and context.items_processed >= self.stop_after:
            self.stop_reason = StopReason.FORCED
            return True
        return False


class IterationHarness:

    def __init__(self, job_cls: Type[IterationJobInterface],
                 arguments: Optional[Dict[str, Any]] = None,
                 queue: Optional[InMemoryQueue] = None,
                 event_bus: Optional[EventBus] = None):
        self.job_cls = job_cls
        self.arguments = dict(arguments or {})
        self.queue = queue or InMemoryQueue()
        self.event_bus = event_bus or EventBus()
        self.dispatcher = ResumeDispatcher(self.queue, self.event_bus)
        self.job: Optional[IterationJobInterface] = None
        self.outcomes: List[RunOutcome] = []

    def new_payload(self) -> JobPayload:
        check_arguments(self.job_cls.__name__, self.arguments)
        return JobPayload.new(self.job_cls.__name__, self.arguments)

    def perform(self, payload: JobPayload, policy: InterruptionPolicyInterface) -> RunOutcome:
        """Run ``payload`` once under ``policy``; a Resubmit goes onto the queue."""
        self.job = self.job_cls()
        runner = IterationRunner(policy=policy, event_bus=self.event_bus)
        outcome = runner.run_payload(self.job, payload)
        self.outcomes.append(outcome)
        if isinstance(outcome, Resubmit):
            self.dispatcher.resubmit(payload, outcome)
        return outcome

    def _take_resubmitted(self) -> Optional[JobPayload]:
        payload = self.queue.reserve()
        if payload is None:
            logger.debug("No payload was resubmitted")
        return payload

    def iterate_exact_times(self, times: int, payload: Optional[JobPayload] = None) -> Optional[JobPayload]:
        """
        Process exactly ``times`` items of a fresh (or given) payload and stop.

        Returns:
            The resubmitted payload, or None if the sequence ran out first
        """
        self.perform(payload or self.new_payload(), ForcedInterruptionPolicy(stop_after=times))
        return self._take_resubmitted()

    def iterate_once(self, payload: Optional[JobPayload] = None) -> Optional[JobPayload]:
        return self.iterate_exact_times(1, payload)

    def continue_iterating(self, payload: JobPayload) -> RunOutcome:
        """Run a resubmitted payload to the end of its sequence without interruptions."""
        return self.perform(payload, ForcedInterruptionPolicy(stop_after=None))

    def run_to_completion(self, payload: Optional[JobPayload] = None,
                          stop_after: int = 1, max_runs: int = 1000) -> List[JobPayload]:
        """
        Interrupt every ``stop_after`` items and resume until the job finishes.

        Returns:
            Every payload that was performed, in order
        """
        current = payload or self.new_payload()
        performed = []
        for _ in range(max_runs):
            performed.append(current)
            outcome = self.perform(current, ForcedInterruptionPolicy(stop_after=stop_after))
            if not isinstance(outcome, Resubmit):
                return performed
            current = self._take_resubmitted()
        raise RuntimeError(f"{self.job_cls.__name__} did not finish within {max_runs} runs")
