# File: stepwise/core/runner.py

import time
import logging
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from ..interfaces.iteration_job import IterationJobInterface
from ..interfaces.interruption import InterruptionPolicyInterface
from ..interfaces.cursor_codec import CursorCodecInterface
from ..interfaces.event_bus import EventBus as EventBusInterface
from ..interfaces.run_state import (
    RunState, RunContext, RunPhase, StopReason, JobPayload,
    RunOutcome, Resubmit, Finished,
)
from ..events import EventType
from ..errors import CursorError, SequenceConstructionError, SequenceThrottled
from .cursor_codec import JsonCursorCodec
from .event_bus import EventBus

logger = logging.getLogger(__name__)

_EXHAUSTED = object()

class IterationRunner:
    """
    Drives one run of an iteration job.

    A run starts from a RunState, pulls ``(item, cursor)`` pairs from the
    job's sequence, processes each item, validates the item's cursor and asks
    the interruption policy whether to stop. It ends in one of three ways:

    - ``Resubmit``: the policy (or a throttled sequence) stopped the run; the
      returned state carries the last processed cursor and an incremented
      interruption counter.
    - ``Finished``: the sequence is exhausted; the returned state is terminal.
    - an exception: ``CursorError`` for a cursor that does not round-trip,
      ``SequenceConstructionError`` for a sequence that cannot be built, or
      whatever the job raised. Nothing is resubmitted.

    The runner never transports anything itself; see ResumeDispatcher.
    """

    def __init__(self,
                 policy: InterruptionPolicyInterface,
                 codec: Optional[CursorCodecInterface] = None,
                 event_bus: Optional[EventBusInterface] = None,
                 resume_backoff: float = 0.0,
                 clock: Callable[[], float] = time.monotonic):
        self.policy = policy
        self.codec = codec or JsonCursorCodec()
        self.event_bus = event_bus or EventBus()
        self.resume_backoff = resume_backoff
        self.clock = clock

    def run_payload(self, job: IterationJobInterface, payload: JobPayload) -> RunOutcome:
        """Run ``job`` from the state and arguments carried by ``payload``."""
        return self.run(job, payload.run_state, payload.arguments, job_id=payload.job_id)

    def run(self,
            job: IterationJobInterface,
            run_state: RunState,
            arguments: Optional[Dict[str, Any]] = None,
            job_id: str = "-") -> RunOutcome:
        context = RunContext(
            job_id=job_id,
            job_class=type(job).__name__,
            arguments=dict(arguments or {}),
            run_state=run_state,
            clock=self.clock,
        )
        try:
            self._announce_start(job, context)
            iterator = self._build_sequence(job, context)
            return self._iterate(job, iterator, context)
        except Exception as e:
            context.phase = RunPhase.FAILED
            logger.error(f"Job {job_id}: run failed after {context.items_processed} items - "
                         f"{type(e).__name__}: {e}")
            if isinstance(e, CursorError):
                self.event_bus.publish(EventType.CURSOR_ERROR, job_id=job_id,
                                       cursor=repr(e.cursor), cursor_type=e.cursor_type)
            self.event_bus.publish(EventType.RUN_FAILED, job_id=job_id, error=str(e),
                                   error_type=type(e).__name__)
            raise

    # --- Starting ---

    def _announce_start(self, job: IterationJobInterface, context: RunContext) -> None:
        if context.is_resumed:
            logger.info(f"Job {context.job_id}: resuming {context.job_class} at cursor "
                        f"{context.run_state.cursor!r} (interrupted {context.times_interrupted} times)")
            job.on_resume(context)
            self.event_bus.publish(EventType.RUN_RESUMED, job_id=context.job_id,
                                   job_class=context.job_class, cursor=context.run_state.cursor,
                                   times_interrupted=context.times_interrupted)
        else:
            logger.info(f"Job {context.job_id}: starting {context.job_class}")
            job.on_start(context)
            self.event_bus.publish(EventType.RUN_STARTED, job_id=context.job_id,
                                   job_class=context.job_class)

    def _build_sequence(self, job: IterationJobInterface, context: RunContext) -> Iterator:
        cursor = context.run_state.cursor
        try:
            sequence = job.build_sequence(cursor, **context.arguments)
        except Exception as e:
            raise SequenceConstructionError(
                f"{context.job_class} could not build its sequence from cursor {cursor!r}: {e}"
            ) from e

        if sequence is None:
            logger.warning(f"Job {context.job_id}: build_sequence returned None, nothing to iterate")
            return iter(())
        try:
            return iter(sequence)
        except TypeError as e:
            raise SequenceConstructionError(
                f"{context.job_class}.build_sequence must return an iterable of (item, cursor) "
                f"pairs, got {type(sequence).__name__}"
            ) from e

    # --- Running ---

    def _iterate(self, job: IterationJobInterface, iterator: Iterator, context: RunContext) -> RunOutcome:
        pair = self._pull(iterator, context)
        while pair is not _EXHAUSTED:
            if isinstance(pair, SequenceThrottled):
                return self._stop(job, context, StopReason.THROTTLED, pair.backoff)

            item, cursor = self._unpack(pair, context)
            context.phase = RunPhase.RUNNING
            job.process_item(item, context)
            self._checkpoint(cursor, context)
            self.event_bus.publish(EventType.ITEM_PROCESSED, job_id=context.job_id,
                                   cursor=cursor, items_processed=context.items_processed)

            if self.policy.should_stop(item, context):
                return self._stop_or_finish(job, iterator, context)
            pair = self._pull(iterator, context)

        return self._finish(job, context)

    def _stop_or_finish(self, job: IterationJobInterface, iterator: Iterator, context: RunContext) -> RunOutcome:
        """
        Look one pair ahead after the policy said stop, so a run that consumed
        the last item finishes instead of resubmitting an empty remainder.
        Only an exhausted sequence turns the stop into Finished. The pulled
        pair is dropped and rebuilt from the cursor by the resumed run; if the
        pull itself fails the run still stops at the validated cursor.
        """
        reason = self.policy.stop_reason or StopReason.FORCED
        try:
            pair = self._pull(iterator, context)
        except Exception as e:
            logger.warning(f"Job {context.job_id}: lookahead after stop failed, stopping at cursor "
                           f"{context.cursor!r} - {type(e).__name__}: {e}")
            return self._stop(job, context, reason, self.resume_backoff)

        if pair is _EXHAUSTED:
            return self._finish(job, context)
        if isinstance(pair, SequenceThrottled):
            return self._stop(job, context, StopReason.THROTTLED, pair.backoff)
        return self._stop(job, context, reason, self.resume_backoff)

    def _pull(self, iterator: Iterator, context: RunContext) -> Any:
        """Next pair, ``_EXHAUSTED``, or the ``SequenceThrottled`` the sequence raised."""
        try:
            return next(iterator)
        except StopIteration:
            return _EXHAUSTED
        except SequenceThrottled as throttled:
            logger.info(f"Job {context.job_id}: sequence throttled, backing off {throttled.backoff}s")
            return throttled

    def _unpack(self, pair: Any, context: RunContext) -> Tuple[Any, Any]:
        if not isinstance(pair, (tuple, list)) or len(pair) != 2:
            raise SequenceConstructionError(
                f"{context.job_class} sequence must yield (item, cursor) pairs, got {pair!r:.80}"
            )
        return pair[0], pair[1]

    # --- Checkpointing ---

    def _checkpoint(self, cursor: Any, context: RunContext) -> None:
        """Validate the cursor of a processed item and record it as the resume point."""
        context.phase = RunPhase.CHECKPOINTING
        self.codec.validate(cursor)
        context.cursor = cursor
        context.items_processed += 1
        context.phase = RunPhase.RUNNING

    # --- Terminal states ---

    def _stop(self, job: IterationJobInterface, context: RunContext,
              reason: StopReason, delay: float) -> Resubmit:
        next_state = context.run_state.advance(context.cursor)
        context.phase = RunPhase.STOPPED
        job.on_shutdown(context)
        logger.info(f"Job {context.job_id}: interrupted ({reason.value}) at cursor {context.cursor!r} "
                    f"after {context.items_processed} items, {context.elapsed:.2f}s")
        self.event_bus.publish(EventType.RUN_INTERRUPTED, job_id=context.job_id,
                               reason=reason.value, cursor=context.cursor,
                               times_interrupted=next_state.times_interrupted,
                               items_processed=context.items_processed)
        return Resubmit(run_state=next_state, items_processed=context.items_processed,
                        reason=reason, delay=delay)

    def _finish(self, job: IterationJobInterface, context: RunContext) -> Finished:
        context.phase = RunPhase.FINISHED
        job.on_complete(context)
        job.on_shutdown(context)
        logger.info(f"Job {context.job_id}: completed after {context.items_processed} items in this run "
                    f"(interrupted {context.times_interrupted} times)")
        self.event_bus.publish(EventType.RUN_COMPLETED, job_id=context.job_id,
                               items_processed=context.items_processed,
                               times_interrupted=context.times_interrupted)
        terminal = RunState(cursor=context.cursor, times_interrupted=context.times_interrupted)
        return Finished(run_state=terminal, items_processed=context.items_processed)
