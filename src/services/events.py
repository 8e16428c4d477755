"""
Domain Event Dispatcher

Delivers the events drained from aggregates to in-process listeners.
Listeners register per event type (e.g. "story.published") or "*" for all.
"""

import logging
from typing import Dict, Callable, List, Iterable

from src.models.events import DomainEvent

logger = logging.getLogger(__name__)

WILDCARD = "*"


class DomainEventDispatcher:
    """
    Synchronous event dispatcher.

    Listeners are called in registration order; a failing listener is
    logged and does not stop the others.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[DomainEvent], None]]] = {}
        self._history: List[DomainEvent] = []
        self.keep_history = False

    def on(self, event_type: str, callback: Callable[[DomainEvent], None]):
        """Register event listener"""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)

    def off(self, event_type: str, callback: Callable[[DomainEvent], None]):
        """Remove event listener"""
        if event_type in self._listeners and callback in self._listeners[event_type]:
            self._listeners[event_type].remove(callback)

    def clear(self):
        self._listeners.clear()
        self._history.clear()

    @property
    def history(self) -> List[DomainEvent]:
        return list(self._history)

    def dispatch(self, event: DomainEvent):
        """Deliver one event to its listeners, then to wildcard listeners"""
        if self.keep_history:
            self._history.append(event)

        callbacks = self._listeners.get(event.event_type, []) + self._listeners.get(WILDCARD, [])
        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in event listener for {event.event_type}: {e}", exc_info=True)

    def dispatch_all(self, events: Iterable[DomainEvent]):
        for event in events:
            self.dispatch(event)


# Global dispatcher instance
domain_events = DomainEventDispatcher()
