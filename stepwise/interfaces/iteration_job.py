# stepwise/interfaces/iteration_job.py

from typing import Any, Iterable, Optional, Tuple
from .run_state import RunContext

class IterationJobInterface:
    """
    Capabilities a job needs to be driven by the iteration runner.

    ``build_sequence`` and ``process_item`` are required. The hooks and
    ``should_stop`` are optional and default to doing nothing.
    """

    def build_sequence(self, cursor: Any, **arguments: Any) -> Optional[Iterable[Tuple[Any, Any]]]:
        """
        Build the lazy sequence of ``(item, cursor)`` pairs to iterate.

        Args:
            cursor: Cursor of the last processed item, or None for a fresh job
            **arguments: The job's original arguments

        Returns:
            An iterable of ``(item, cursor)`` pairs that starts right after
            ``cursor``. Building from the same cursor must always produce the
            same remaining sequence. None is treated as an empty sequence.
        """
        raise NotImplementedError("Subclasses must implement build_sequence")

    def process_item(self, item: Any, context: RunContext) -> None:
        """
        Process one item. Raising aborts the run without a checkpoint for
        this item, so a retry of the job sees it again.
        """
        raise NotImplementedError("Subclasses must implement process_item")

    def should_stop(self, item: Any, context: RunContext) -> bool:
        """Job-specific early stop, asked after every processed item."""
        return False

    def on_start(self, context: RunContext) -> None:
        """Called once, before the first item of the first run."""

    def on_resume(self, context: RunContext) -> None:
        """Called before the first item of every resumed run."""

    def on_shutdown(self, context: RunContext) -> None:
        """Called whenever a run ends cleanly, interrupted or finished."""

    def on_complete(self, context: RunContext) -> None:
        """Called once the sequence is exhausted."""
