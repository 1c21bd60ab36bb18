"""
Pytest fixtures for Northern Journey tests.

Provides a private event bus, seeded dice, a small hand-built catalog and
an orchestrator wired to an in-memory store.
"""

import pytest
from pathlib import Path

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from northern_journey.config import GameConfig, StartingBuilding
from northern_journey.content import Catalog
from northern_journey.state import (
    BuildingDefinition,
    CreatureDefinition,
    DialogueGraph,
    EventBus,
    EventDefinition,
    EventType,
    MemorySnapshotStore,
    ResourceDefinition,
    SeasonDefinition,
)
from northern_journey.systems import ResourceLedger, TurnOrchestrator
from northern_journey.tools import Dice


class FixedDice(Dice):
    """Dice that replays a fixed sequence of random() values."""

    def __init__(self, *values: float):
        super().__init__(seed=0)
        self.values = list(values)

    def random(self) -> float:
        if self.values:
            return self.values.pop(0)
        return 0.99


@pytest.fixture
def bus():
    """Private event bus."""
    return EventBus(history_limit=1000)


@pytest.fixture
def dice():
    """Seeded dice for reproducible rolls."""
    return Dice(seed=1234)


@pytest.fixture
def resource_definitions():
    return [
        ResourceDefinition(id="food", min=0),
        ResourceDefinition(id="wood", min=0),
        ResourceDefinition(id="stone", min=0),
        ResourceDefinition(id="gold", min=0),
        ResourceDefinition(id="population", min=0),
        ResourceDefinition(id="morale", min=0, max=100),
    ]


@pytest.fixture
def ledger(bus, resource_definitions):
    """Ledger with a small starting village."""
    ledger = ResourceLedger(bus, resource_definitions)
    ledger.reset({"food": 20, "wood": 20, "stone": 5, "gold": 3, "population": 5, "morale": 50})
    return ledger


@pytest.fixture
def world_map():
    """5x4 grid: water bottom row, a mountain and a path tile."""
    return [
        ["grass", "grass", "mountain", "grass", "grass"],
        ["grass", "path", "grass", "grass", "grass"],
        ["grass", "grass", "grass", "grass", "grass"],
        ["water", "water", "water", "water", "water"],
    ]


@pytest.fixture
def catalog(resource_definitions):
    """Minimal catalog exercising every table."""
    return Catalog(
        resources=resource_definitions,
        buildings=[
            BuildingDefinition(id="hut", cost={"wood": 5}, production={"food": 2},
                               workers={"max": 2}, upgrades_to="longhouse"),
            BuildingDefinition(id="longhouse", era="settlement", cost={"wood": 10},
                               production={"food": 5}, workers={"max": 4}, build_time=2),
            BuildingDefinition(id="farm", cost={"wood": 4}, production={"food": 3},
                               workers={"max": 3}, build_time=1),
            BuildingDefinition(id="dock", cost={"wood": 3}, production={"food": 1},
                               placement_rules=["can_build_on_water"]),
            BuildingDefinition(id="shrine", cost={"stone": 1}, requires_unlock=True,
                               effects={"morale_bonus": 3}),
        ],
        seasons=[
            SeasonDefinition(id="spring", duration_turns=2, effects={"food_production_modifier": 1.0}),
            SeasonDefinition(id="winter", duration_turns=2, effects={"food_production_modifier": 0.5}),
        ],
        creatures=[
            CreatureDefinition(id="gnome", hostility="friendly", dialogue_file="gnome_talk",
                               trade_offers=[{"give": {"gold": 1}, "receive": {"food": 4}}]),
        ],
        seasonal_events=[
            EventDefinition(id="thaw", category="seasonal", season="spring", automatic=True,
                            effects={"morale": 5}),
            EventDefinition(id="long_night", category="seasonal", season="winter",
                            choices=[{"text": "Light fires", "effects": {"wood": -2}}]),
        ],
        story_events=[
            EventDefinition(id="first_gathering", category="story",
                            trigger_conditions={"population": 5, "buildings": 1}),
        ],
        dialogues={
            "gnome_talk": DialogueGraph.model_validate({
                "id": "gnome_talk",
                "start_node": "hello",
                "nodes": {
                    "hello": {"speaker": "Gnome", "text": "Hullo!",
                              "choices": [{"text": "Bye"}]},
                },
            }),
        },
    )


@pytest.fixture
def config():
    """Config with no random events or spawns unless a test turns them on."""
    return GameConfig(
        starting_resources={"food": 20, "wood": 20, "stone": 5, "gold": 3, "population": 5, "morale": 50},
        event_check_chance=0.0,
        creature_spawn_chance=0.0,
        grace_period_turns=0,
        map_width=5,
        map_height=4,
        starting_buildings=[StartingBuilding(id="hut", x=1, y=1)],
    )


@pytest.fixture
def memory_store():
    """In-memory snapshot store for testing."""
    return MemorySnapshotStore()


@pytest.fixture
def orchestrator(catalog, config, dice, memory_store, world_map, bus):
    """Orchestrator with a fresh game started."""
    orchestrator = TurnOrchestrator(
        catalog,
        config=config,
        dice=dice,
        store=memory_store,
        world_map=world_map,
        bus=bus,
    )
    orchestrator.new_game()
    return orchestrator


@pytest.fixture
def recorder(bus):
    """Collects every event emitted on the bus fixture."""
    received = []
    for event_type in EventType:
        bus.on(event_type, received.append)
    return received
