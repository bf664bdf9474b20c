# stepwise/interfaces/event_bus.py

from typing import Callable, Any, Set
from ..events import EventType

class EventBus:
    """Interface for publishing run lifecycle events to interested listeners."""

    def subscribe(self, event_type: EventType, callback: Callable[..., Any]) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to subscribe to (EventType enum)
            callback: Called with ``event_type=<str>, event_enum=<EventType>, **data``
        """
        raise NotImplementedError("Subclasses must implement this method")

    def subscribe_all(self, callback: Callable[..., Any]) -> None:
        """Subscribe a callback to every event type (used by recorders and displays)."""
        raise NotImplementedError("Subclasses must implement this method")

    def unsubscribe(self, event_type: EventType, callback: Callable[..., Any]) -> bool:
        """
        Unsubscribe from an event type.

        Returns:
            True if the callback was subscribed, False otherwise
        """
        raise NotImplementedError("Subclasses must implement this method")

    def publish(self, event_type: EventType, **data: Any) -> None:
        """
        Publish an event. Listener failures must never reach the publisher.

        Args:
            event_type: Type of event to publish (EventType enum)
            **data: Data associated with the event
        """
        raise NotImplementedError("Subclasses must implement this method")

    def get_event_types(self) -> Set[EventType]:
        """Event types with at least one dedicated subscriber."""
        raise NotImplementedError("Subclasses must implement this method")

    def get_subscriber_count(self, event_type: EventType) -> int:
        """Number of subscribers that will receive ``event_type`` (wildcards included)."""
        raise NotImplementedError("Subclasses must implement this method")

    def has_subscribers(self, event_type: EventType) -> bool:
        raise NotImplementedError("Subclasses must implement this method")

    def clear_all_subscriptions(self) -> None:
        """Clear all event subscriptions, wildcard ones included."""
        raise NotImplementedError("Subclasses must implement this method")
