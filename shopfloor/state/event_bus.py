"""
Event bus for training progress and session lifecycle.

Provides decoupled communication between the core and whatever front end
is rendering it.

Usage:
    from .event_bus import get_event_bus, EventType

    bus = get_event_bus()
    bus.on(EventType.LEVEL_UP, my_handler)

    bus.emit(EventType.LEVEL_UP, profile="Anna", before="junior", after="middle")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Events that can be published."""

    # Session lifecycle
    SESSION_STARTED = "session.started"
    SESSION_PENALTY = "session.penalty"
    SESSION_FINISHED = "session.finished"
    SESSION_CLOSED = "session.closed"

    # Progress
    PROGRESS_SAVED = "progress.saved"
    LEVEL_UP = "level.up"
    ACHIEVEMENT_GRANTED = "achievement.granted"


@dataclass
class TrainerEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type
        data: Event-specific payload
        session_id: Session the event belongs to, if any
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    session_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[TrainerEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(). A failing listener is
    logged and does not stop the others.
    """

    def __init__(self):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[TrainerEvent] = []
        self._history_limit = 100

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to an event type."""
        handlers = self._listeners.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if handler in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(handler)

    def emit(self, event_type: EventType, session_id: str = "", **data) -> TrainerEvent:
        """
        Emit an event to all subscribers.

        Returns:
            The emitted TrainerEvent (for chaining/testing)
        """
        event = TrainerEvent(type=event_type, data=data, session_id=session_id)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]

        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Error in handler for {event_type.value}")

        return event

    def clear(self) -> None:
        """Clear all listeners. Useful for testing."""
        self._listeners.clear()

    def get_history(self, event_type: EventType | None = None) -> list[TrainerEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        return len(self._listeners.get(event_type, []))


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus. Useful for testing."""
    global _event_bus
    _event_bus = None
