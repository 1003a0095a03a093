"""
Event bus for underworld state changes.

Resolvers publish what happened; the activity feed, the CLI and tests
subscribe without the resolvers knowing about them.

Usage:
    from .event_bus import get_event_bus, EventType

    bus = get_event_bus()
    bus.on(EventType.ACTIVITY, my_handler)

    bus.emit(EventType.COMBAT_RESOLVED, agent_id="a1b2", winner_id="a1b2")

    def my_handler(event: GameEvent):
        print(event.data["result_text"])
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .schema import ActivityEvent

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Game events that can be published."""

    # Feed entry, payload is an ActivityEvent dump
    ACTIVITY = "activity"

    # Resolver events
    COMBAT_RESOLVED = "combat.resolved"
    JOB_COMPLETED = "job.completed"
    JOB_FAILED = "job.failed"
    INCOME_COLLECTED = "income.collected"
    ENERGY_REGENERATED = "energy.regenerated"
    LEVEL_UP = "agent.level_up"

    # Family events
    FAMILY_CREATED = "family.created"
    FAMILY_JOINED = "family.joined"
    FAMILY_LEFT = "family.left"

    # Economy events
    ITEM_PURCHASED = "market.purchased"
    BUILDING_VISITED = "building.visited"

    # Scheduler events
    TICK_COMPLETED = "tick.completed"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        agent_id: Agent the event is about, if any
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    agent_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(). A failing listener is
    logged and skipped; it never fails the action that emitted.
    """

    def __init__(self, history_limit: int = 200):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = history_limit

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to an event type."""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        if handler not in self._listeners[event_type]:
            self._listeners[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if event_type in self._listeners and handler in self._listeners[event_type]:
            self._listeners[event_type].remove(handler)

    def emit(
        self,
        event_type: EventType,
        agent_id: str = "",
        **data,
    ) -> GameEvent:
        """
        Emit an event to all subscribers.

        Args:
            event_type: The type of event
            agent_id: Agent context (optional)
            **data: Event-specific data

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data, agent_id=agent_id)

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

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        return len(self._listeners.get(event_type, []))


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """
    Get the global event bus instance.

    Returns the same instance across all calls (singleton pattern).
    """
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus. Useful for testing."""
    global _event_bus
    _event_bus = None


def publish_activity(activity: "ActivityEvent", agent_id: str = "") -> GameEvent:
    """Emit a feed entry as a plain JSON-ready payload."""
    return get_event_bus().emit(
        EventType.ACTIVITY,
        agent_id=agent_id,
        **activity.model_dump(mode="json"),
    )
