"""State models, persistence and notifications for Northern Journey."""

from .schema import (
    ERA_ORDER,
    Building,
    BuildingDefinition,
    Creature,
    CreatureDefinition,
    DialogueChoice,
    DialogueGraph,
    DialogueNode,
    Era,
    EventCategory,
    EventChoice,
    EventDefinition,
    EventFlags,
    EventHistoryEntry,
    Hostility,
    ResourceDefinition,
    SeasonDefinition,
    TriggerConditions,
    is_era_reached,
)
from .schemas import GameSnapshot, TurnResult
from .store import JsonSnapshotStore, MemorySnapshotStore, SnapshotStore
from .event_bus import EventBus, EventType, GameEvent

__all__ = [
    # Schema
    "ERA_ORDER",
    "Building",
    "BuildingDefinition",
    "Creature",
    "CreatureDefinition",
    "DialogueChoice",
    "DialogueGraph",
    "DialogueNode",
    "Era",
    "EventCategory",
    "EventChoice",
    "EventDefinition",
    "EventFlags",
    "EventHistoryEntry",
    "Hostility",
    "ResourceDefinition",
    "SeasonDefinition",
    "TriggerConditions",
    "is_era_reached",
    # Serialized artifacts
    "GameSnapshot",
    "TurnResult",
    # Store
    "SnapshotStore",
    "JsonSnapshotStore",
    "MemorySnapshotStore",
    # Event Bus
    "EventBus",
    "EventType",
    "GameEvent",
]
