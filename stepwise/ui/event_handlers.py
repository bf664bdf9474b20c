# File: stepwise/ui/event_handlers.py

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

class EventHandlers:
    """
    Turns bus events into status messages, recent-event lines and item
    progress. Counters are kept by the StatsTracker, not here.
    """

    def __init__(self,
                 update_callback: Callable,
                 add_event_callback: Callable,
                 begin_run_callback: Callable,
                 advance_run_callback: Callable):
        self.update_stats_display = update_callback
        self.add_event = add_event_callback
        self.begin_run = begin_run_callback
        self.advance_run = advance_run_callback
        self.current_job_id: Optional[str] = None

    def handle_worker_started(self, event_type: str, **data):
        self.update_stats_display(status_message=f"Working queue '{data.get('queue', '?')}'")
        self.add_event("Worker", f"Started (burst={data.get('burst', False)})")

    def handle_worker_stopped(self, event_type: str, **data):
        self.update_stats_display(status_message="Stopped")
        self.add_event("Worker", f"Stopped after {data.get('jobs_performed', 0)} jobs")

    def handle_job_reserved(self, event_type: str, **data):
        self.current_job_id = data.get('job_id')
        self.update_stats_display(current_job=f"{data.get('job_class', '?')} {self.current_job_id}")
        self.add_event("Job", f"Reserved {data.get('job_class', '?')} "
                              f"(interrupted {data.get('times_interrupted', 0)} times)")

    def handle_run_started(self, event_type: str, **data):
        self.begin_run(f"{data.get('job_class', '?')} from the start")
        self.update_stats_display(status_message="Running")
        self.add_event("Run", f"Started {data.get('job_class', '?')}")

    def handle_run_resumed(self, event_type: str, **data):
        cursor = data.get('cursor')
        self.begin_run(f"{data.get('job_class', '?')} from cursor {cursor!r}")
        self.update_stats_display(status_message="Running (resumed)")
        self.add_event("Run", f"Resumed at cursor {cursor!r}")

    def handle_item_processed(self, event_type: str, **data):
        self.advance_run(data.get('items_processed', 0), f"cursor {data.get('cursor')!r}")

    def handle_run_interrupted(self, event_type: str, **data):
        self.update_stats_display(status_message=f"Interrupted ({data.get('reason', '?')})")
        self.add_event("Interrupt", f"{data.get('reason', '?')} after {data.get('items_processed', 0)} items, "
                                    f"cursor {data.get('cursor')!r}")

    def handle_job_resubmitted(self, event_type: str, **data):
        delay = data.get('delay') or 0
        suffix = f" in {delay}s" if delay else ""
        self.add_event("Resubmit", f"Job {data.get('job_id')} requeued as {data.get('handle')}{suffix}")

    def handle_run_completed(self, event_type: str, **data):
        self.update_stats_display(status_message="Completed", current_job="")
        self.add_event("Complete", f"Finished after {data.get('times_interrupted', 0)} interruptions")

    def handle_cursor_error(self, event_type: str, **data):
        self.add_event("Cursor", f"Unserializable cursor {data.get('cursor')} ({data.get('cursor_type')})")

    def handle_error(self, event_type: str, **data):
        error_message = data.get('error', 'Unknown error')
        logger.debug(f"Displaying {event_type}: {error_message}")
        self.update_stats_display(status_message=f"Error: {data.get('error_type', 'Exception')}")
        self.add_event("Error", f"{data.get('error_type', 'Exception')}: {error_message}")
