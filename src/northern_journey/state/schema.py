"""
Pydantic models for Northern Journey content and runtime state.

Definitions are immutable catalog content supplied from outside the
engine. Instances (Building, Creature) reference their definition by id
only, so every runtime object serializes to plain JSON.
"""

from enum import Enum
from typing import Any, Iterator
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def generate_id() -> str:
    """Short unique id for runtime instances."""
    return str(uuid4())[:8]


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class Era(str, Enum):
    VILLAGE = "village"
    SETTLEMENT = "settlement"
    TOWN = "town"
    KINGDOM = "kingdom"


ERA_ORDER: list[str] = [e.value for e in Era]


def era_index(era: str) -> int:
    """Position of an era in the progression order (-1 if unknown)."""
    try:
        return ERA_ORDER.index(era)
    except ValueError:
        return -1


def is_era_reached(required: str, current: str) -> bool:
    """True when the current era is at or past the required one."""
    return era_index(current) >= era_index(required)


class EventCategory(str, Enum):
    STORY = "story"
    RANDOM = "random"
    SEASONAL = "seasonal"


class Hostility(str, Enum):
    HOSTILE = "hostile"
    NEUTRAL = "neutral"
    FRIENDLY = "friendly"


# Effect keys with special meaning; every other key is a ledger delta
EVENT_FLAG_EFFECT = "event_flag"
LORE_EFFECT = "lore_unlocked"

Effects = dict[str, Any]
Costs = dict[str, float]


# -----------------------------------------------------------------------------
# Resources
# -----------------------------------------------------------------------------

class ResourceDefinition(BaseModel):
    """A tracked resource and its optional bounds."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    min: float | None = None
    max: float | None = None

    def clamp(self, amount: float) -> float:
        if self.min is not None:
            amount = max(self.min, amount)
        if self.max is not None:
            amount = min(self.max, amount)
        return amount


# -----------------------------------------------------------------------------
# Buildings
# -----------------------------------------------------------------------------

class WorkerSlots(BaseModel):
    model_config = ConfigDict(frozen=True)

    max: int = 0


class BuildingDefinition(BaseModel):
    """
    Catalog entry for a building type.

    placement_rules tags:
      - "can_build_on_water": may only be placed on water tiles
      - "can_build_on_<terrain>": additionally allowed on that terrain
      - "adjacent_to_water" / "not_adjacent_to_water": 4-neighbour check
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    era: str = Era.VILLAGE.value
    cost: Costs = Field(default_factory=dict)
    production: dict[str, float] = Field(default_factory=dict)
    effects: dict[str, float] = Field(default_factory=dict)
    placement_rules: list[str] = Field(default_factory=list)
    workers: WorkerSlots = Field(default_factory=WorkerSlots)
    build_time: int = 0
    upgrades_to: str | None = None
    requires_unlock: bool = False
    sprite: str | None = None


class Building(BaseModel):
    """A placed building. `id` is the definition id; position is unique."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    x: int
    y: int
    level: int = 1
    workers: int = 0
    construction_turns_left: int = Field(default=0, alias="constructionTurnsLeft")

    @property
    def is_operational(self) -> bool:
        return self.construction_turns_left <= 0


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------

class TriggerConditions(BaseModel):
    """All present conditions must hold (AND)."""
    population: int | None = None
    buildings: int | None = None
    era: str | None = None
    flag: str | None = None  # "!name" means the flag must be absent


class EventChoice(BaseModel):
    text: str = ""
    requires: Costs | None = None
    effects: Effects = Field(default_factory=dict)
    risk: float | None = Field(default=None, ge=0.0, le=1.0)
    skill_check: dict[str, float] | None = None
    success_effects: Effects = Field(default_factory=dict)
    failure_effects: Effects = Field(default_factory=dict)
    failure_message: str | None = None


class EventDefinition(BaseModel):
    id: str
    category: EventCategory = EventCategory.RANDOM
    title: str = ""
    description: str = ""
    trigger_conditions: TriggerConditions | None = None
    probability: float = 0.0
    era: list[str] | None = None
    season: list[str] | None = None
    automatic: bool = False
    effects: Effects = Field(default_factory=dict)
    choices: list[EventChoice] = Field(default_factory=list)

    @field_validator("era", "season", mode="before")
    @classmethod
    def _coerce_to_list(cls, value):
        # Seasonal tables name a single season; random tables list several
        if isinstance(value, str):
            return [value]
        return value

    @property
    def has_choices(self) -> bool:
        return len(self.choices) > 0


class EventHistoryEntry(BaseModel):
    id: str
    turn: int
    timestamp: int  # epoch milliseconds


class EventFlags:
    """
    Monotonically growing set of flag identifiers.

    Flags are only ever added within a run; there is no removal.
    """

    def __init__(self, flags: list[str] | None = None):
        self._flags: set[str] = set(flags or [])

    def add(self, flag: str) -> None:
        self._flags.add(flag)

    def has(self, flag: str) -> bool:
        return flag in self._flags

    def matches(self, predicate: str) -> bool:
        """Evaluate a flag predicate; a leading "!" negates it."""
        if predicate.startswith("!"):
            return not self.has(predicate[1:])
        return self.has(predicate)

    def __contains__(self, flag: str) -> bool:
        return self.has(flag)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._flags))

    def __len__(self) -> int:
        return len(self._flags)

    def to_list(self) -> list[str]:
        return sorted(self._flags)


# -----------------------------------------------------------------------------
# Dialogue
# -----------------------------------------------------------------------------

class DialogueChoice(BaseModel):
    text: str = ""
    requires: Costs | None = None
    effects: Effects = Field(default_factory=dict)
    next: str | None = None
    risk: float | None = Field(default=None, ge=0.0, le=1.0)
    success_effects: Effects = Field(default_factory=dict)
    failure_effects: Effects = Field(default_factory=dict)
    failure_message: str | None = None
    skill_check: dict[str, float] | None = None
    success: str | None = None  # node id on skill check success
    failure: str | None = None  # node id on skill check failure


class DialogueNode(BaseModel):
    speaker: str = ""
    text: str = ""
    portrait: str | None = None
    effects: Effects = Field(default_factory=dict)
    choices: list[DialogueChoice] = Field(default_factory=list)
    action: str | None = None  # e.g. "start_combat"
    enemy: str | None = None
    on_win: str | None = None
    on_lose: str | None = None
    end: bool = False


class DialogueGraph(BaseModel):
    id: str
    start_node: str
    nodes: dict[str, DialogueNode] = Field(default_factory=dict)


# -----------------------------------------------------------------------------
# Seasons
# -----------------------------------------------------------------------------

class SeasonDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    duration_turns: int | None = None  # falls back to config.season_duration_turns
    effects: dict[str, float] = Field(default_factory=dict)


# -----------------------------------------------------------------------------
# Creatures
# -----------------------------------------------------------------------------

class SpawnConditions(BaseModel):
    min_era: str | None = None
    season: list[str] | None = None

    @field_validator("season", mode="before")
    @classmethod
    def _coerce_to_list(cls, value):
        if isinstance(value, str):
            return [value]
        return value


class CombatStats(BaseModel):
    health: int = 100
    attack: int = 0
    defense: int = 0


class CreatureDefinition(BaseModel):
    id: str
    name: str = ""
    spawn_conditions: SpawnConditions = Field(default_factory=SpawnConditions)
    combat_stats: CombatStats | None = None
    dialogue_file: str | None = None
    hostility: Hostility = Hostility.NEUTRAL
    trade_offers: list[dict[str, Any]] | None = None

    @property
    def starting_health(self) -> int:
        return self.combat_stats.health if self.combat_stats else 100


class Creature(BaseModel):
    """An active creature on the map."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    definition_id: str = Field(alias="definitionId")
    x: int
    y: int
    health: int
