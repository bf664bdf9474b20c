import signal
from datetime import datetime
import unittest
from unittest.mock import Mock

from ..config import IterationConfig
from ..core.event_bus import EventBus
from ..core.executor import JobExecutor, JobRegistry, register_job
from ..core.dispatcher import ResumeDispatcher
from ..core.memory_queue import InMemoryQueue
from ..core.stats_tracker import StatsTracker
from ..core.worker import Worker, ShutdownFlag
from ..harness import ForcedInterruptionPolicy
from ..interfaces.run_state import Finished, Resubmit
from ..errors import JobNotRegisteredError, PayloadError
from ..events import EventType
from .sample_jobs import RecordingJob, TimestampCursorJob, ExplodingJob


class TestJobRegistry(unittest.TestCase):
    def test_register_and_resolve(self):
        registry = JobRegistry()
        registry.register(RecordingJob)
        self.assertIs(registry.resolve("RecordingJob"), RecordingJob)
        self.assertEqual(registry.names(), ["RecordingJob"])

    def test_unknown_job(self):
        with self.assertRaises(JobNotRegisteredError):
            JobRegistry().resolve("Nope")

    def test_decorator_with_and_without_arguments(self):
        registry = JobRegistry()

        @register_job(registry=registry)
        class FirstJob(RecordingJob):
            pass

        @register_job(name="renamed", registry=registry)
        class SecondJob(RecordingJob):
            pass

        self.assertIs(registry.resolve("FirstJob"), FirstJob)
        self.assertIs(registry.resolve("renamed"), SecondJob)


class WorkerTestCase(unittest.TestCase):
    def setUp(self):
        RecordingJob.reset()
        TimestampCursorJob.processed = []
        ExplodingJob.processed = []
        self.registry = JobRegistry()
        for job_cls in (RecordingJob, TimestampCursorJob, ExplodingJob):
            self.registry.register(job_cls)
        self.queue = InMemoryQueue()
        self.event_bus = EventBus()
        self.tracker = StatsTracker()
        self.tracker.attach(self.event_bus)
        self.dispatcher = ResumeDispatcher(self.queue, self.event_bus)

    def make_executor(self, stop_after=1):
        return JobExecutor(
            self.registry,
            self.dispatcher,
            policy_factory=lambda predicate: ForcedInterruptionPolicy(stop_after),
            event_bus=self.event_bus,
        )

    def make_worker(self, executor, shutdown_flag=None, sleep=None):
        config = IterationConfig(autoconfigure=False, poll_interval=0.5)
        return Worker(self.queue, executor, shutdown_flag or ShutdownFlag(), config,
                      self.event_bus, self.tracker, sleep=sleep or Mock())


class TestJobExecutor(WorkerTestCase):
    def test_submit_enqueues_fresh_payload(self):
        executor = self.make_executor()
        published = []
        self.event_bus.subscribe(EventType.JOB_ENQUEUED, lambda **data: published.append(data))

        payload = executor.submit(RecordingJob, {"items": [1, 2]})

        self.assertEqual(payload.times_interrupted, 0)
        self.assertIsNone(payload.cursor_position)
        self.assertEqual(self.queue.peek_payloads(), [payload])
        self.assertEqual(published[0]["job_class"], "RecordingJob")

    def test_submit_rejects_arguments_the_queue_would_change(self):
        executor = self.make_executor()
        published = []
        self.event_bus.subscribe(EventType.JOB_ENQUEUED, lambda **data: published.append(data))

        for arguments in ({"since": datetime(2024, 1, 1)}, {"window": (1, 2)}, {5: "numeric key"}):
            with self.assertRaises(PayloadError):
                executor.submit("RecordingJob", arguments)

        self.assertEqual(self.queue.size(), 0)
        self.assertEqual(published, [])

    def test_submitted_arguments_reach_the_job_unchanged(self):
        executor = self.make_executor(stop_after=None)
        items = ["x", 2, None, {"nested": True}]
        executor.submit("RecordingJob", {"items": items})

        payload = self.queue.reserve()
        executor.perform(payload)

        self.assertEqual(payload.arguments, {"items": items})
        self.assertEqual(RecordingJob.processed, ["x", 2, None, {"nested": True}])

    def test_submit_unknown_job_fails(self):
        with self.assertRaises(JobNotRegisteredError):
            self.make_executor().submit("Missing")

    def test_perform_resubmits_on_interruption(self):
        executor = self.make_executor(stop_after=1)
        payload = executor.submit("RecordingJob")
        self.queue.reserve()

        outcome = executor.perform(payload)

        self.assertIsInstance(outcome, Resubmit)
        resubmitted = self.queue.reserve()
        self.assertEqual(resubmitted.job_id, payload.job_id)
        self.assertEqual(resubmitted.cursor_position, 0)

    def test_perform_finished_enqueues_nothing(self):
        executor = self.make_executor(stop_after=None)
        payload = executor.submit("RecordingJob")
        self.queue.reserve()

        self.assertIsInstance(executor.perform(payload), Finished)
        self.assertEqual(self.queue.size(), 0)

    def test_job_should_stop_reaches_policy_factory(self):
        factory = Mock(return_value=ForcedInterruptionPolicy(None))
        executor = JobExecutor(self.registry, self.dispatcher, policy_factory=factory)
        executor.perform(executor.submit("RecordingJob"))

        predicate = factory.call_args[0][0]
        self.assertEqual(predicate.__name__, "should_stop")

    def test_from_config_builds_real_policy(self):
        config = IterationConfig(max_run_duration=None, resume_backoff=2.5)
        executor = JobExecutor.from_config(config, self.registry, self.dispatcher,
                                           shutdown_requested=lambda: True)
        payload = executor.submit("RecordingJob")
        self.queue.reserve()

        outcome = executor.perform(payload)

        self.assertIsInstance(outcome, Resubmit)
        self.assertEqual(outcome.delay, 2.5)
        self.assertEqual(self.queue.size(), 1)
        self.assertIsNone(self.queue.reserve())


class TestWorker(WorkerTestCase):
    def test_burst_drains_the_chain(self):
        executor = self.make_executor(stop_after=1)
        executor.submit("RecordingJob")
        worker = self.make_worker(executor)

        performed = worker.work(burst=True)

        self.assertEqual(performed, 3)
        self.assertEqual(RecordingJob.processed, [0, 1, 2])
        self.assertEqual(self.queue.size(), 0)
        stats = self.tracker.stats
        self.assertEqual(stats.runs_started, 1)
        self.assertEqual(stats.runs_resumed, 2)
        self.assertEqual(stats.runs_interrupted, 2)
        self.assertEqual(stats.runs_completed, 1)
        self.assertEqual(stats.items_processed, 3)

    def test_failures_are_recorded_not_retried(self):
        executor = self.make_executor(stop_after=None)
        executor.submit("ExplodingJob", {"fail_on": 2})
        executor.submit("TimestampCursorJob")
        worker = self.make_worker(executor)

        worker.work(burst=True)

        failures = self.queue.failures()
        self.assertEqual([f.error_class for f in failures], ["RuntimeError", "CursorError"])
        self.assertEqual(self.queue.size(), 0)
        self.assertEqual(ExplodingJob.processed, [0, 1])
        self.assertEqual(self.tracker.stats.errors, 2)
        self.assertEqual(self.tracker.stats.cursor_errors, 1)

    def test_unregistered_job_is_recorded(self):
        from ..interfaces.run_state import JobPayload
        self.queue.enqueue(JobPayload.new("GhostJob"))
        worker = self.make_worker(self.make_executor())

        worker.work(burst=True)

        self.assertEqual(self.queue.failures()[0].error_class, "JobNotRegisteredError")

    def test_sleeps_when_idle_until_shutdown(self):
        flag = ShutdownFlag()
        sleep = Mock(side_effect=lambda seconds: flag.request())
        worker = self.make_worker(self.make_executor(), shutdown_flag=flag, sleep=sleep)

        self.assertEqual(worker.work(), 0)
        sleep.assert_called_once_with(0.5)

    def test_max_jobs(self):
        executor = self.make_executor(stop_after=1)
        executor.submit("RecordingJob")
        worker = self.make_worker(executor)

        self.assertEqual(worker.work(burst=True, max_jobs=1), 1)
        self.assertEqual(self.queue.size(), 1)

    def test_publishes_start_and_stop(self):
        seen = []
        self.event_bus.subscribe_all(lambda event_enum, **data: seen.append(event_enum))
        self.make_worker(self.make_executor()).work(burst=True)
        self.assertEqual(seen, [EventType.WORKER_STARTED, EventType.WORKER_STOPPED])


class TestShutdownFlag(unittest.TestCase):
    def test_request(self):
        flag = ShutdownFlag()
        self.assertFalse(flag())
        flag.request()
        self.assertTrue(flag.is_set())
        self.assertTrue(flag())

    def test_signal_handlers_installed_and_restored(self):
        previous = signal.getsignal(signal.SIGTERM)
        flag = ShutdownFlag()
        try:
            self.assertTrue(flag.install_signal_handlers())
            self.assertEqual(signal.getsignal(signal.SIGTERM), flag.request)
        finally:
            flag.restore_signal_handlers()
        self.assertEqual(signal.getsignal(signal.SIGTERM), previous)

    def test_worker_wires_flag_into_policy(self):
        flag = ShutdownFlag()
        flag.request()
        queue = InMemoryQueue()
        registry = JobRegistry()
        registry.register(RecordingJob)
        RecordingJob.reset()
        config = IterationConfig(autoconfigure=False)
        executor = JobExecutor.from_config(config, registry, ResumeDispatcher(queue),
                                           shutdown_requested=flag.is_set)

        outcome = executor.perform(executor.submit("RecordingJob"))

        self.assertIsInstance(outcome, Resubmit)
        self.assertEqual(RecordingJob.processed, [0])


if __name__ == '__main__':
    unittest.main()
