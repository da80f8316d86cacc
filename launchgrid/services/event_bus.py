"""
Event bus implementation for LaunchGrid.
Provides decoupled communication between components using the observer pattern.
"""

from __future__ import annotations
from typing import Dict, List, Callable, Any, Optional
from collections import defaultdict
import weakref
from dataclasses import dataclass
from datetime import datetime

from .interfaces import IEventBus, ILogger


@dataclass
class EventData:
    """Container for event data."""
    event_type: str
    data: Any
    timestamp: datetime


class EventBus(IEventBus):
    """Concrete implementation of event bus."""

    def __init__(self, logger: ILogger, max_history: int = 1000):
        self._logger = logger
        self._handlers: Dict[str, List[weakref.ref]] = defaultdict(list)
        self._event_history: List[EventData] = []
        self._max_history = max_history
        self._enabled = True

    def subscribe(self, event_type: str, handler: Callable) -> None:
        """Subscribe to an event type."""
        if not callable(handler):
            self._logger.error(f"Handler for event '{event_type}' is not callable")
            return

        try:
            # Weak references keep destroyed widgets from being kept alive
            if hasattr(handler, '__self__') and hasattr(handler, '__func__'):
                weak_handler = weakref.WeakMethod(handler, self._cleanup_handler)
            else:
                weak_handler = weakref.ref(handler, self._cleanup_handler)
            self._handlers[event_type].append(weak_handler)
            self._logger.debug(f"Subscribed to event '{event_type}'", handler=str(handler))

        except TypeError as e:
            self._logger.error(f"Failed to subscribe to event '{event_type}'", exception=e)

    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        """Unsubscribe from an event type."""
        if event_type not in self._handlers:
            return

        handlers = self._handlers[event_type]
        for weak_handler in list(handlers):
            actual_handler = weak_handler()
            if actual_handler is None or actual_handler == handler:
                handlers.remove(weak_handler)

        if not handlers:
            del self._handlers[event_type]
        self._logger.debug(f"Unsubscribed from event '{event_type}'", handler=str(handler))

    def publish(self, event_type: str, data: Any = None) -> None:
        """Publish an event."""
        if not self._enabled:
            return

        self._add_to_history(EventData(event_type=event_type, data=data, timestamp=datetime.now()))

        handlers = self._handlers.get(event_type, [])
        if not handlers:
            return

        dead_handlers = []
        for weak_handler in list(handlers):
            handler = weak_handler()
            if handler is None:
                dead_handlers.append(weak_handler)
                continue

            try:
                if data is not None:
                    handler(data)
                else:
                    handler()
            except Exception as e:
                self._logger.error(
                    f"Error in event handler for '{event_type}'",
                    exception=e,
                    handler=str(handler)
                )

        for dead_handler in dead_handlers:
            if dead_handler in handlers:
                handlers.remove(dead_handler)

    def _cleanup_handler(self, weak_ref) -> None:
        """Clean up dead weak references."""
        for event_type, handlers in list(self._handlers.items()):
            if weak_ref in handlers:
                handlers.remove(weak_ref)
                if not handlers:
                    del self._handlers[event_type]
                break

    def _add_to_history(self, event_data: EventData) -> None:
        self._event_history.append(event_data)
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

    def get_event_history(self, event_type: Optional[str] = None,
                          limit: Optional[int] = None) -> List[EventData]:
        """Get event history, optionally filtered by type and limited."""
        history = self._event_history
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        if limit:
            history = history[-limit:]
        return history.copy()

    def clear_history(self) -> None:
        self._event_history.clear()

    def get_subscriber_count(self, event_type: Optional[str] = None) -> Dict[str, int]:
        """Get count of subscribers for each event type."""
        if event_type:
            return {event_type: len(self._handlers.get(event_type, []))}
        return {et: len(handlers) for et, handlers in self._handlers.items()}

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled
