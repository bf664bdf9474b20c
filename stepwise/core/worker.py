# File: stepwise/core/worker.py

import time
import signal
import logging
import threading
from typing import Callable, Dict, Optional

from ..interfaces.queue import QueueInterface
from ..interfaces.event_bus import EventBus as EventBusInterface
from ..interfaces.run_state import JobPayload, RunOutcome
from ..events import EventType
from ..config import IterationConfig
from .executor import JobExecutor
from .event_bus import EventBus
from .stats_tracker import StatsTracker

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ShutdownFlag:
    """Process-wide shutdown request, set from a signal handler or by hand."""

    def __init__(self):
        self._event = threading.Event()
        self._previous_handlers: Dict[int, object] = {}

    def request(self, *_args) -> None:
        if not self._event.is_set():
            logger.info("Shutdown requested, current runs will stop at their next checkpoint")
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self.is_set()

    def install_signal_handlers(self) -> bool:
        """Route SIGTERM and SIGINT to ``request``. Only possible on the main thread."""
        try:
            for signum in SHUTDOWN_SIGNALS:
                self._previous_handlers[signum] = signal.signal(signum, self.request)
        except ValueError as e:
            logger.warning(f"Could not install shutdown signal handlers: {e}")
            self.restore_signal_handlers()
            return False
        logger.debug("Shutdown signal handlers installed")
        return True

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()


class Worker:
    """
    Reserves payloads from a queue and performs them one at a time.

    A job that raises is recorded on the queue's failure channel and is not
    retried. The worker stops when the shutdown flag is set; in burst mode it
    also stops once the queue has nothing ready.
    """

    def __init__(self,
                 queue: QueueInterface,
                 executor: JobExecutor,
                 shutdown_flag: Optional[ShutdownFlag] = None,
                 config: Optional[IterationConfig] = None,
                 event_bus: Optional[EventBusInterface] = None,
                 stats: Optional[StatsTracker] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.queue = queue
        self.executor = executor
        self.shutdown_flag = shutdown_flag or ShutdownFlag()
        self.config = config or IterationConfig()
        self.event_bus = event_bus or EventBus()
        self.stats = stats
        self.sleep = sleep

    def process(self, payload: JobPayload) -> Optional[RunOutcome]:
        """Perform one payload; failures are recorded rather than raised."""
        self.event_bus.publish(EventType.JOB_RESERVED, job_id=payload.job_id,
                               job_class=payload.job_class,
                               times_interrupted=payload.times_interrupted)
        try:
            return self.executor.perform(payload)
        except Exception as e:
            logger.error(f"Job {payload.job_id} ({payload.job_class}) failed: {type(e).__name__}: {e}")
            self.queue.record_failure(payload, e)
            self.event_bus.publish(EventType.JOB_FAILED, job_id=payload.job_id,
                                   job_class=payload.job_class,
                                   error=str(e), error_type=type(e).__name__)
            return None

    def work(self, burst: bool = False, max_jobs: Optional[int] = None) -> int:
        """
        Run the work loop until shutdown (or an empty queue in burst mode).

        Returns:
            The number of payloads performed
        """
        installed = self.config.autoconfigure and self.shutdown_flag.install_signal_handlers()
        logger.info(f"Worker started on queue '{self.config.queue_name}' (burst={burst})")
        self.event_bus.publish(EventType.WORKER_STARTED, queue=self.config.queue_name, burst=burst)
        performed = 0
        try:
            while not self.shutdown_flag.is_set():
                if max_jobs is not None and performed >= max_jobs:
                    break
                payload = self.queue.reserve()
                if payload is None:
                    if burst:
                        logger.info("Queue drained, burst worker exiting")
                        break
                    if self.stats:
                        self.stats.update(status_message="Waiting for jobs")
                    self.sleep(self.config.poll_interval)
                    continue
                self.process(payload)
                performed += 1
        finally:
            if installed:
                self.shutdown_flag.restore_signal_handlers()
            logger.info(f"Worker stopped after {performed} jobs")
            self.event_bus.publish(EventType.WORKER_STOPPED, jobs_performed=performed)
        return performed
