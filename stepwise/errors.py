# stepwise/errors.py

from typing import Any


class IterationError(Exception):
    """Base class for all stepwise errors."""
    pass


class CursorError(IterationError):
    """
    A checkpoint cursor does not survive a round trip through the transport
    encoding. The resume point cannot be trusted, so the run fails and is
    never resubmitted.
    """

    def __init__(self, message: str, cursor: Any = None, decoded: Any = None):
        super().__init__(message)
        self.cursor = cursor
        self.cursor_type = type(cursor).__name__
        self.decoded = decoded


class SequenceConstructionError(IterationError):
    """The sequence source could not be built from the given resume cursor."""
    pass


class SequenceThrottled(IterationError):
    """
    Raised by a throttled sequence before pulling its next item.
    The runner turns it into a delayed resubmission, not a failure.
    """

    def __init__(self, backoff: float, message: str = "Sequence throttled"):
        super().__init__(f"{message} (backoff {backoff}s)")
        self.backoff = backoff


class ConfigError(IterationError):
    """Error related to configuration."""
    pass


class DatabaseError(IterationError):
    """Error related to database operations."""
    pass


class PayloadError(IterationError):
    """A payload the queue cannot store or read back intact."""
    pass


class JobNotRegisteredError(IterationError):
    """A payload names a job class the registry does not know."""
    pass
