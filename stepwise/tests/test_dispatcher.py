import unittest
from unittest.mock import Mock

from ..core.dispatcher import ResumeDispatcher
from ..core.memory_queue import InMemoryQueue
from ..interfaces.queue import QueueInterface
from ..interfaces.event_bus import EventBus
from ..interfaces.run_state import JobPayload, RunState, Resubmit, StopReason, PAYLOAD_FIELDS
from ..events import EventType


class TestResumeDispatcher(unittest.TestCase):
    def setUp(self):
        self.payload = JobPayload(
            job_class="ImportJob",
            job_id="job-1",
            arguments={"account_id": 7, "dry_run": False},
            cursor_position=None,
            times_interrupted=0,
        )
        self.outcome = Resubmit(run_state=RunState(cursor={"id": 40}, times_interrupted=1), items_processed=3)

    def test_only_run_state_changes(self):
        queue = InMemoryQueue()
        ResumeDispatcher(queue).resubmit(self.payload, self.outcome)

        self.assertEqual(queue.enqueued_jobs, [{
            "job_class": "ImportJob",
            "job_id": "job-1",
            "arguments": {"account_id": 7, "dry_run": False},
            "cursor_position": {"id": 40},
            "times_interrupted": 1,
        }])

    def test_field_order_is_stable(self):
        queue = InMemoryQueue()
        ResumeDispatcher(queue).resubmit(self.payload, self.outcome)

        self.assertEqual(tuple(queue.enqueued_jobs[0].keys()), PAYLOAD_FIELDS)

    def test_exactly_one_submission_per_stop(self):
        queue = Mock(spec=QueueInterface)
        queue.enqueue.return_value = "default:1"

        handle = ResumeDispatcher(queue).resubmit(self.payload, self.outcome)

        self.assertEqual(handle, "default:1")
        queue.enqueue.assert_called_once()
        queue.enqueue_delayed.assert_not_called()

    def test_delay_uses_delayed_enqueue(self):
        queue = Mock(spec=QueueInterface)
        queue.enqueue_delayed.return_value = "default:2"
        outcome = Resubmit(run_state=self.outcome.run_state, reason=StopReason.THROTTLED, delay=30.0)

        ResumeDispatcher(queue).resubmit(self.payload, outcome)

        queue.enqueue.assert_not_called()
        next_payload, delay = queue.enqueue_delayed.call_args[0]
        self.assertEqual(delay, 30.0)
        self.assertEqual(next_payload.cursor_position, {"id": 40})

    def test_publishes_resubmitted_event(self):
        event_bus = Mock(spec=EventBus)
        ResumeDispatcher(InMemoryQueue(), event_bus).resubmit(self.payload, self.outcome)

        event_bus.publish.assert_called_once_with(
            EventType.JOB_RESUBMITTED,
            job_id="job-1",
            handle="default:1",
            cursor={"id": 40},
            times_interrupted=1,
            delay=0.0,
        )


if __name__ == '__main__':
    unittest.main()
