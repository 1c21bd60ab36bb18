"""
Event bus for Northern Journey state changes.

Provides decoupled communication between the simulation and whatever
presentation layer sits on top of it. Sub-systems emit, subscribers react.

The bus is owned by the TurnOrchestrator and handed to each sub-system
through its constructor. There is no module-level instance.

Usage:
    bus = EventBus()
    bus.on(EventType.RESOURCES_UPDATED, my_handler)

    # Emit (inside a sub-system when state changes)
    bus.emit(EventType.RESOURCES_UPDATED, resources={"food": 12})

    # Handler receives event
    def my_handler(event: GameEvent):
        print(event.data["resources"])
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Notification channels consumed by the presentation layer."""

    # Ledger
    RESOURCES_UPDATED = "resources:updated"

    # Buildings
    BUILDING_PLACED = "building:placed"
    BUILDING_PLACEMENT_STARTED = "building:placement_started"
    BUILDING_PLACEMENT_CANCELLED = "building:placement_cancelled"
    BUILDING_INSUFFICIENT_RESOURCES = "building:insufficient_resources"
    BUILDING_INVALID_PLACEMENT = "building:invalid_placement"
    BUILDING_UPGRADED = "building:upgraded"
    BUILDING_WORKERS_ASSIGNED = "building:workers_assigned"

    # Events
    EVENT_TRIGGERED = "event:triggered"
    EVENT_SEASONAL = "event:seasonal"
    EVENT_STARVATION = "event:starvation"
    LORE_UNLOCKED = "lore:unlocked"

    # Dialogue
    DIALOGUE_START = "dialogue:start"
    DIALOGUE_CONTINUE = "dialogue:continue"
    DIALOGUE_END = "dialogue:end"
    DIALOGUE_INSUFFICIENT_RESOURCES = "dialogue:insufficient_resources"
    DIALOGUE_RISK_FAILED = "dialogue:risk_failed"
    DIALOGUE_COMBAT_START = "dialogue:combat_start"

    # Creatures
    CREATURE_SPAWNED = "creature:spawned"
    CREATURE_REMOVED = "creature:removed"
    CREATURE_INTERACTION = "creature:interaction"

    # Calendar and progression
    SEASON_CHANGED = "season:changed"
    ERA_ADVANCED = "era:advanced"

    # Generic rejection (invalid index, bad placement, ...)
    ACTION_REJECTED = "action:rejected"

    # Game lifecycle
    GAME_STARTED = "game:started"
    GAME_LOADED = "game:loaded"
    GAME_SAVED = "game:saved"
    GAME_OVER = "game:over"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


# Type alias for event handlers
EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(), in subscription order.
    Handlers must not call back into the orchestrator's end_turn(); the
    orchestrator rejects re-entrant turns and the bus logs the failure.
    """

    def __init__(self, history_limit: int = 100):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = history_limit

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: The type of event to listen for
            handler: Callback function that receives GameEvent
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        if handler not in self._listeners[event_type]:
            self._listeners[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._listeners and handler in self._listeners[event_type]:
            self._listeners[event_type].remove(handler)

    def emit(self, event_type: EventType, **data) -> GameEvent:
        """
        Emit an event to all subscribers.

        Args:
            event_type: The type of event
            **data: Event-specific data

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]

        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception:
                # One bad listener shouldn't break the others or the turn
                logger.exception(f"Error in handler for {event_type.value}")

        return event

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """
        Get recent event history.

        Args:
            event_type: Filter by type, or None for all events
        """
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        """Get number of listeners for an event type."""
        return len(self._listeners.get(event_type, []))
