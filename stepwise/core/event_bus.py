# stepwise/core/event_bus.py

import logging
from typing import Callable, Dict, Any, List, Set
from ..interfaces.event_bus import EventBus as EventBusInterface
from ..events import EventType

logger = logging.getLogger(__name__)

class EventBus(EventBusInterface):
    """
    Synchronous in-process event bus.

    Runners, dispatchers and workers publish lifecycle events here; the
    progress display and the stats tracker listen. Publishing happens on the
    caller's thread, so listeners should be quick.
    """

    def __init__(self, debug_logging: bool = False):
        self.listeners: Dict[EventType, List[Callable[..., Any]]] = {}
        self.wildcard_listeners: List[Callable[..., Any]] = []
        self.debug_logging = debug_logging

    def subscribe(self, event_type: EventType, callback: Callable[..., Any]) -> None:
        callbacks = self.listeners.setdefault(event_type, [])
        if callback not in callbacks:
            callbacks.append(callback)
            logger.debug(f"Subscribed to event '{event_type.name}'")

    def subscribe_all(self, callback: Callable[..., Any]) -> None:
        if callback not in self.wildcard_listeners:
            self.wildcard_listeners.append(callback)
            logger.debug("Subscribed to all events")

    def unsubscribe(self, event_type: EventType, callback: Callable[..., Any]) -> bool:
        callbacks = self.listeners.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)
            logger.debug(f"Unsubscribed from event '{event_type.name}'")
            return True
        return False

    def publish(self, event_type: EventType, **data: Any) -> None:
        if self.debug_logging:
            logger.debug(f"Event published: {event_type.name} - {data}")

        event_data = {
            "event_type": event_type.value,
            "event_enum": event_type,
            **data
        }

        for callback in self.listeners.get(event_type, []) + self.wildcard_listeners:
            try:
                callback(**event_data)
            except Exception as e:
                logger.error(f"Error in event handler for '{event_type.name}': {e}", exc_info=True)

    def get_event_types(self) -> Set[EventType]:
        return {event_type for event_type, callbacks in self.listeners.items() if callbacks}

    def get_subscriber_count(self, event_type: EventType) -> int:
        return len(self.listeners.get(event_type, [])) + len(self.wildcard_listeners)

    def has_subscribers(self, event_type: EventType) -> bool:
        return self.get_subscriber_count(event_type) > 0

    def clear_all_subscriptions(self) -> None:
        self.listeners.clear()
        self.wildcard_listeners.clear()
        logger.debug("All event subscriptions cleared")
