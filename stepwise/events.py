# File: stepwise/events.py

from enum import Enum

class EventType(Enum):
    # Worker events
    WORKER_STARTED = "worker_started"
    WORKER_STOPPED = "worker_stopped"
    JOB_RESERVED = "job_reserved"

    # Run lifecycle events
    RUN_STARTED = "run_started"
    RUN_RESUMED = "run_resumed"
    ITEM_PROCESSED = "item_processed"
    RUN_INTERRUPTED = "run_interrupted"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"

    # Transport events
    JOB_ENQUEUED = "job_enqueued"
    JOB_RESUBMITTED = "job_resubmitted"
    JOB_FAILED = "job_failed"

    # Error events
    CURSOR_ERROR = "cursor_error"
