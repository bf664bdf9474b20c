# stepwise/core/dispatcher.py

import logging
from typing import Optional

from ..interfaces.queue import QueueInterface
from ..interfaces.event_bus import EventBus as EventBusInterface
from ..interfaces.run_state import JobPayload, Resubmit
from ..events import EventType
from .event_bus import EventBus

logger = logging.getLogger(__name__)

class ResumeDispatcher:
    """
    Turns a ``Resubmit`` outcome into exactly one new submission.

    Only the run state fields of the payload change; the job class, job id
    and arguments are carried over untouched. When the resumed run executes
    is up to the queue and whoever works it.
    """

    def __init__(self, queue: QueueInterface, event_bus: Optional[EventBusInterface] = None):
        self.queue = queue
        self.event_bus = event_bus or EventBus()

    def resubmit(self, payload: JobPayload, outcome: Resubmit) -> str:
        next_payload = payload.with_run_state(outcome.run_state)
        if outcome.delay and outcome.delay > 0:
            handle = self.queue.enqueue_delayed(next_payload, outcome.delay)
        else:
            handle = self.queue.enqueue(next_payload)

        logger.info(f"Job {payload.job_id}: resubmitted as {handle} with cursor "
                    f"{next_payload.cursor_position!r} (times_interrupted={next_payload.times_interrupted}, "
                    f"delay={outcome.delay}s)")
        self.event_bus.publish(
            EventType.JOB_RESUBMITTED,
            job_id=payload.job_id,
            handle=handle,
            cursor=next_payload.cursor_position,
            times_interrupted=next_payload.times_interrupted,
            delay=outcome.delay,
        )
        return handle
