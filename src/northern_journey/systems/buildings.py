"""
Building registry for Northern Journey.

Holds placed building instances, validates placement against the terrain
grid, and turns completed buildings into per-turn production. Instances
carry only their definition id; definitions are resolved on demand.
"""

import logging
import math

from ..errors import NotFoundError, RejectedError
from ..state.event_bus import EventBus, EventType
from ..state.schema import Building, BuildingDefinition, is_era_reached
from .resources import ResourceLedger

logger = logging.getLogger(__name__)


# Terrain every land building may use
BUILDABLE_TERRAIN = {"grass", "path"}

WATER = "water"
WATER_ONLY_RULE = "can_build_on_water"
BUILD_ON_PREFIX = "can_build_on_"
ADJACENT_TO_WATER = "adjacent_to_water"
NOT_ADJACENT_TO_WATER = "not_adjacent_to_water"

NEIGHBOURS = ((-1, 0), (1, 0), (0, -1), (0, 1))

WorldMap = list[list[str]]


def modifier_key(resource_id: str) -> str:
    """Season effect key that scales a resource's production."""
    return f"{resource_id}_production_modifier"


class BuildingRegistry:
    """
    Placed buildings plus the placement rules that govern them.

    At most one building per tile; buildings are never removed.
    """

    def __init__(self, bus: EventBus, definitions: list[BuildingDefinition]):
        self._bus = bus
        self._definitions: dict[str, BuildingDefinition] = {d.id: d for d in definitions}
        self._buildings: list[Building] = []
        self._placing: BuildingDefinition | None = None

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_definition(self, building_id: str) -> BuildingDefinition:
        definition = self._definitions.get(building_id)
        if definition is None:
            raise NotFoundError("building", building_id)
        return definition

    def buildings(self) -> list[Building]:
        """Copies of every placed building."""
        return [b.model_copy() for b in self._buildings]

    @property
    def count(self) -> int:
        return len(self._buildings)

    def building_at(self, x: int, y: int) -> Building | None:
        for building in self._buildings:
            if building.x == x and building.y == y:
                return building
        return None

    def is_tile_occupied(self, x: int, y: int) -> bool:
        return self.building_at(x, y) is not None

    def available_buildings(self, era: str, unlocked: set[str] | list[str] | None = None) -> list[BuildingDefinition]:
        """Build menu for an era: definitions whose era is reached and that are not locked."""
        unlocked = set(unlocked or ())
        return [
            d for d in self._definitions.values()
            if is_era_reached(d.era, era)
            and (not d.requires_unlock or d.id in unlocked)
        ]

    def total_workers(self) -> int:
        return sum(b.workers for b in self._buildings)

    # -------------------------------------------------------------------------
    # Placement mode
    # -------------------------------------------------------------------------

    @property
    def placing(self) -> BuildingDefinition | None:
        """Definition selected for placement, if placement mode is on."""
        return self._placing

    def enter_placement_mode(self, building_id: str) -> bool:
        try:
            definition = self.get_definition(building_id)
        except NotFoundError as e:
            logger.warning(str(e))
            return False

        self._placing = definition
        self._bus.emit(EventType.BUILDING_PLACEMENT_STARTED, building=definition.id)
        return True

    def exit_placement_mode(self) -> None:
        self._placing = None
        self._bus.emit(EventType.BUILDING_PLACEMENT_CANCELLED)

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def is_valid_placement(self, x: int, y: int, definition: BuildingDefinition, world_map: WorldMap) -> bool:
        if not world_map or x < 0 or y < 0 or y >= len(world_map) or x >= len(world_map[0]):
            return False

        tile = world_map[y][x]
        rules = definition.placement_rules

        if WATER_ONLY_RULE in rules:
            if tile != WATER:
                return False
        elif tile not in BUILDABLE_TERRAIN and f"{BUILD_ON_PREFIX}{tile}" not in rules:
            return False

        if ADJACENT_TO_WATER in rules and not self._is_adjacent_to_water(x, y, world_map):
            return False
        if NOT_ADJACENT_TO_WATER in rules and self._is_adjacent_to_water(x, y, world_map):
            return False

        return not self.is_tile_occupied(x, y)

    @staticmethod
    def _is_adjacent_to_water(x: int, y: int, world_map: WorldMap) -> bool:
        for dx, dy in NEIGHBOURS:
            nx, ny = x + dx, y + dy
            if 0 <= ny < len(world_map) and 0 <= nx < len(world_map[0]):
                if world_map[ny][nx] == WATER:
                    return True
        return False

    def place_building(self, x: int, y: int, building_id: str, ledger: ResourceLedger) -> bool:
        """
        Pay for and place a building. Tile validity is checked by the caller.

        Returns:
            False for an unknown id or when the cost cannot be paid
        """
        try:
            definition = self.get_definition(building_id)
        except NotFoundError as e:
            logger.warning(str(e))
            return False

        if not ledger.has_enough(definition.cost):
            self._bus.emit(
                EventType.BUILDING_INSUFFICIENT_RESOURCES,
                building=definition.id,
                cost=dict(definition.cost),
            )
            return False

        ledger.spend(definition.cost)

        building = Building(
            id=definition.id,
            x=x,
            y=y,
            construction_turns_left=definition.build_time,
        )
        self._buildings.append(building)

        logger.info(f"Placed {definition.id} at ({x}, {y})")
        self._bus.emit(EventType.BUILDING_PLACED, building=building.model_dump(by_alias=True))
        return True

    def place_starting_building(self, x: int, y: int, building_id: str) -> bool:
        """Free, already-built placement used when a new game starts."""
        try:
            definition = self.get_definition(building_id)
        except NotFoundError as e:
            logger.warning(str(e))
            return False

        self._buildings.append(Building(id=definition.id, x=x, y=y))
        return True

    # -------------------------------------------------------------------------
    # Management
    # -------------------------------------------------------------------------

    def assign_workers(self, x: int, y: int, count: int, population: float) -> Building:
        """
        Set the worker count of the building at (x, y).

        Raises:
            NotFoundError: No building on that tile
            RejectedError: Count outside 0..max, or more workers than villagers
        """
        building = self.building_at(x, y)
        if building is None:
            raise NotFoundError("building at", f"({x}, {y})")

        max_workers = self.get_definition(building.id).workers.max
        if count < 0 or count > max_workers:
            raise RejectedError(f"{building.id} takes 0 to {max_workers} workers, not {count}")

        others = self.total_workers() - building.workers
        if others + count > population:
            raise RejectedError(f"Not enough villagers for {count} more workers")

        building.workers = count
        self._bus.emit(
            EventType.BUILDING_WORKERS_ASSIGNED,
            building=building.id,
            x=x,
            y=y,
            workers=count,
        )
        return building

    def upgrade_building(self, x: int, y: int, ledger: ResourceLedger) -> Building:
        """
        Replace the building at (x, y) with its upgrade.

        The upgrade's cost is paid, the level goes up by one and construction
        restarts with the upgrade's build time. Workers carry over, capped to
        the new maximum.

        Raises:
            NotFoundError: No building on that tile, or unknown upgrade target
            RejectedError: No upgrade path or the cost cannot be paid
        """
        building = self.building_at(x, y)
        if building is None:
            raise NotFoundError("building at", f"({x}, {y})")

        current = self.get_definition(building.id)
        if not current.upgrades_to:
            raise RejectedError(f"{current.id} has no upgrade")
        if not building.is_operational:
            raise RejectedError(f"{current.id} is still under construction")

        target = self.get_definition(current.upgrades_to)
        if not ledger.spend(target.cost):
            self._bus.emit(
                EventType.BUILDING_INSUFFICIENT_RESOURCES,
                building=target.id,
                cost=dict(target.cost),
            )
            raise RejectedError(f"Not enough resources to upgrade to {target.id}")

        building.id = target.id
        building.level += 1
        building.workers = min(building.workers, target.workers.max)
        building.construction_turns_left = target.build_time

        logger.info(f"Upgraded {current.id} -> {target.id} at ({x}, {y})")
        self._bus.emit(
            EventType.BUILDING_UPGRADED,
            building=building.model_dump(by_alias=True),
            previous=current.id,
        )
        return building

    # -------------------------------------------------------------------------
    # Turn processing
    # -------------------------------------------------------------------------

    def process_turn(self, ledger: ResourceLedger, season_modifiers: dict[str, float] | None = None) -> dict[str, int]:
        """
        Run one turn of construction and production.

        Buildings under construction tick down and produce nothing. Completed
        buildings contribute amount * season modifier * max(workers, 1) per
        resource; totals are floored and applied once per resource.

        Returns:
            The whole units added per resource
        """
        season_modifiers = season_modifiers or {}
        totals: dict[str, float] = {}

        for building in self._buildings:
            if building.construction_turns_left > 0:
                building.construction_turns_left -= 1
                continue

            definition = self._definitions.get(building.id)
            if definition is None:
                continue

            for resource_id, amount in definition.production.items():
                modifier = season_modifiers.get(modifier_key(resource_id), 1.0)
                produced = amount * modifier * max(building.workers, 1)
                totals[resource_id] = totals.get(resource_id, 0) + produced

        applied: dict[str, int] = {}
        for resource_id, total in totals.items():
            whole = math.floor(total)
            applied[resource_id] = whole
            ledger.add(resource_id, whole)

        return applied

    def get_total_effect(self, effect_name: str) -> float:
        """Sum of a passive effect across completed buildings."""
        total = 0.0
        for building in self._buildings:
            if not building.is_operational:
                continue
            definition = self._definitions.get(building.id)
            if definition is not None:
                total += definition.effects.get(effect_name, 0)
        return total

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        self._buildings = []
        self._placing = None

    def snapshot(self) -> list[Building]:
        return self.buildings()

    def load(self, buildings: list[Building]) -> None:
        """
        Restore saved instances.

        Raises:
            NotFoundError: A saved building references an unknown definition
        """
        for building in buildings:
            self.get_definition(building.id)
        self._buildings = [b.model_copy() for b in buildings]
        self._placing = None
