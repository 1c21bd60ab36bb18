"""
Creature director for Northern Journey.

Rolls for creature arrivals each turn, places them on a map edge, and
resolves player interaction in priority order: dialogue, then combat for
hostile creatures, then trade.
"""

import logging
from enum import Enum
from pathlib import PurePosixPath

from ..errors import NotFoundError
from ..state.event_bus import EventBus, EventType
from ..state.schema import (
    Creature,
    CreatureDefinition,
    Hostility,
    generate_id,
    is_era_reached,
)
from ..tools.dice import Dice
from .dialogue import DialogueEngine
from .resources import ResourceLedger

logger = logging.getLogger(__name__)


class InteractionType(str, Enum):
    DIALOGUE = "dialogue"
    COMBAT = "combat"
    TRADE = "trade"


def dialogue_id_for(definition: CreatureDefinition) -> str | None:
    """Graph id named by a creature's dialogue_file (path and extension dropped)."""
    if not definition.dialogue_file:
        return None
    return PurePosixPath(definition.dialogue_file).stem


class CreatureDirector:
    """Active creatures plus spawn and interaction rules."""

    def __init__(
        self,
        bus: EventBus,
        dice: Dice,
        definitions: list[CreatureDefinition],
        dialogue: DialogueEngine,
        spawn_chance: float = 0.1,
        map_width: int = 12,
        map_height: int = 10,
    ):
        self._bus = bus
        self._dice = dice
        self._definitions: dict[str, CreatureDefinition] = {d.id: d for d in definitions}
        self._dialogue = dialogue
        self.spawn_chance = spawn_chance
        self.map_width = map_width
        self.map_height = map_height
        self._active: list[Creature] = []

    def get_definition(self, definition_id: str) -> CreatureDefinition:
        definition = self._definitions.get(definition_id)
        if definition is None:
            raise NotFoundError("creature", definition_id)
        return definition

    def active_creatures(self) -> list[Creature]:
        return [c.model_copy() for c in self._active]

    def get_creature(self, creature_id: str) -> Creature | None:
        return next((c for c in self._active if c.id == creature_id), None)

    # -------------------------------------------------------------------------
    # Spawning
    # -------------------------------------------------------------------------

    def check_spawns(self, season: str, era: str) -> Creature | None:
        """
        Roll for an arrival this turn.

        Returns:
            The spawned creature, or None
        """
        if self._dice.random() > self.spawn_chance:
            return None

        eligible = self.eligible_creatures(season, era)
        if not eligible:
            logger.debug(f"Spawn roll passed but nothing eligible in {season}/{era}")
            return None

        return self.spawn_creature(self._dice.choice(eligible))

    def eligible_creatures(self, season: str, era: str) -> list[CreatureDefinition]:
        eligible = []
        for definition in self._definitions.values():
            conditions = definition.spawn_conditions
            if conditions.min_era and not is_era_reached(conditions.min_era, era):
                continue
            if conditions.season is not None and season not in conditions.season:
                continue
            eligible.append(definition)
        return eligible

    def spawn_creature(self, definition: CreatureDefinition) -> Creature:
        x, y = self._spawn_position()
        creature = Creature(
            id=f"{definition.id}_{generate_id()}",
            definition_id=definition.id,
            x=x,
            y=y,
            health=definition.starting_health,
        )
        self._active.append(creature)

        logger.info(f"{definition.id} appeared at ({x}, {y})")
        self._bus.emit(EventType.CREATURE_SPAWNED, creature=creature.model_dump(by_alias=True))
        return creature

    def _spawn_position(self) -> tuple[int, int]:
        """A uniform point along a uniformly chosen map edge."""
        edge = self._dice.randint(0, 3)
        if edge == 0:  # top
            return self._dice.randint(0, self.map_width - 1), 0
        if edge == 1:  # right
            return self.map_width - 1, self._dice.randint(0, self.map_height - 1)
        if edge == 2:  # bottom
            return self._dice.randint(0, self.map_width - 1), self.map_height - 1
        return 0, self._dice.randint(0, self.map_height - 1)

    # -------------------------------------------------------------------------
    # Interaction
    # -------------------------------------------------------------------------

    def interact_with_creature(self, creature_id: str, ledger: ResourceLedger) -> bool:
        """
        Resolve a player interaction.

        Dialogue wins when the creature's graph is registered and starts;
        otherwise hostile creatures fight and creatures with offers trade.

        Returns:
            False for an unknown creature or when no interaction applies
        """
        creature = self.get_creature(creature_id)
        if creature is None:
            logger.warning(f"Unknown creature: {creature_id}")
            return False

        definition = self.get_definition(creature.definition_id)
        payload = creature.model_dump(by_alias=True)

        dialogue_id = dialogue_id_for(definition)
        if dialogue_id and self._dialogue.has_dialogue(dialogue_id):
            if self._dialogue.start_dialogue(dialogue_id, ledger):
                self._bus.emit(
                    EventType.CREATURE_INTERACTION,
                    creature=payload,
                    interaction_type=InteractionType.DIALOGUE.value,
                    dialogue=dialogue_id,
                )
                return True

        if definition.hostility == Hostility.HOSTILE:
            self._bus.emit(
                EventType.CREATURE_INTERACTION,
                creature=payload,
                interaction_type=InteractionType.COMBAT.value,
                combat_stats=definition.combat_stats.model_dump() if definition.combat_stats else None,
            )
            return True

        if definition.trade_offers:
            self._bus.emit(
                EventType.CREATURE_INTERACTION,
                creature=payload,
                interaction_type=InteractionType.TRADE.value,
                offers=list(definition.trade_offers),
            )
            return True

        logger.info(f"{definition.id} has nothing to say, fight or trade")
        return False

    def remove_creature(self, creature_id: str) -> bool:
        creature = self.get_creature(creature_id)
        if creature is None:
            return False

        self._active.remove(creature)
        self._bus.emit(EventType.CREATURE_REMOVED, creature=creature.model_dump(by_alias=True))
        return True

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        self._active = []

    def snapshot(self) -> list[Creature]:
        return self.active_creatures()

    def load(self, creatures: list[Creature]) -> None:
        """
        Restore saved creatures.

        Raises:
            NotFoundError: A saved creature references an unknown definition
        """
        for creature in creatures:
            self.get_definition(creature.definition_id)
        self._active = [c.model_copy() for c in creatures]
