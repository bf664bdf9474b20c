# stepwise/interfaces/progress.py

from typing import Any

class ProgressDisplay:
    """Interface for displaying worker progress."""

    def initialize(self) -> None:
        """Start the display and subscribe to events."""
        raise NotImplementedError("Subclasses must implement this method")

    def update(self, **stats: Any) -> None:
        """
        Update the displayed statistics.

        Args:
            **stats: Key-value pairs of statistics to update
        """
        raise NotImplementedError("Subclasses must implement this method")

    def add_event(self, event_type: str, message: str) -> None:
        """
        Add an event to the recent events list.

        Args:
            event_type: Category shown in front of the message
            message: Description of the event
        """
        raise NotImplementedError("Subclasses must implement this method")

    def finalize(self) -> None:
        """Stop the display and show summary statistics."""
        raise NotImplementedError("Subclasses must implement this method")
