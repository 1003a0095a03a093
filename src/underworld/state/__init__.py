"""State management for the underworld."""

from .schema import (
    ActionKind,
    ActivityEvent,
    Agent,
    CombatRecord,
    Cooldown,
    CrewMember,
    Equipment,
    EquipmentTemplate,
    Family,
    InteractionType,
    JobHistoryRecord,
    JobTemplate,
    Property,
    PropertyTemplate,
    WorldSnapshot,
)
from .store import WorldStore, MemoryWorldStore, JsonWorldStore
from .event_bus import (
    EventBus,
    EventType,
    GameEvent,
    get_event_bus,
    reset_event_bus,
    publish_activity,
)
from .manager import WorldManager

__all__ = [
    # Schema
    "ActionKind",
    "ActivityEvent",
    "Agent",
    "CombatRecord",
    "Cooldown",
    "CrewMember",
    "Equipment",
    "EquipmentTemplate",
    "Family",
    "InteractionType",
    "JobHistoryRecord",
    "JobTemplate",
    "Property",
    "PropertyTemplate",
    "WorldSnapshot",
    # Store
    "WorldStore",
    "MemoryWorldStore",
    "JsonWorldStore",
    # Event Bus
    "EventBus",
    "EventType",
    "GameEvent",
    "get_event_bus",
    "reset_event_bus",
    "publish_activity",
    # Manager
    "WorldManager",
]
