"""
Resource ledger for Northern Journey.

Named counters with optional bounds (food, wood, morale, population, ...).
The turn counter and current era also live here so the whole ledger can
be broadcast and saved as one mapping. Every mutation emits
resources:updated with the full ledger.
"""

import logging
from typing import Any

from ..errors import CorruptSaveError
from ..state.event_bus import EventBus, EventType
from ..state.schema import ERA_ORDER, Era, ResourceDefinition

logger = logging.getLogger(__name__)


TURN_KEY = "turn"
ERA_KEY = "era"


class ResourceLedger:
    """
    Bounded named counters.

    Unknown ids read as 0 and are unbounded when written.
    """

    def __init__(
        self,
        bus: EventBus,
        definitions: list[ResourceDefinition] | None = None,
    ):
        self._bus = bus
        self._definitions: dict[str, ResourceDefinition] = {
            d.id: d for d in (definitions or [])
        }
        self._resources: dict[str, Any] = {TURN_KEY: 1, ERA_KEY: Era.VILLAGE.value}

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def reset(
        self,
        starting: dict[str, float],
        definitions: list[ResourceDefinition] | None = None,
    ) -> None:
        """
        Start a fresh ledger.

        Every defined resource starts at its configured amount (0 if none),
        the turn at 1 and the era at village. Starting amounts for
        undefined resources are kept as unbounded counters.
        """
        if definitions is not None:
            self._definitions = {d.id: d for d in definitions}

        amounts = {resource_id: 0 for resource_id in self._definitions}
        amounts.update(starting)
        self._resources = {}
        for resource_id, amount in amounts.items():
            definition = self._definitions.get(resource_id)
            self._resources[resource_id] = definition.clamp(amount) if definition else amount
        self._resources[TURN_KEY] = 1
        self._resources[ERA_KEY] = Era.VILLAGE.value
        self._emit_update()

    def snapshot(self) -> dict[str, Any]:
        """Copy of every counter, including turn and era."""
        return dict(self._resources)

    @staticmethod
    def validate_saved(saved: dict[str, Any]) -> None:
        """
        Check a saved mapping without touching the ledger.

        Raises:
            CorruptSaveError: The turn is not a positive integer, the era is
                unknown, or a counter is not a number
        """
        turn = saved.get(TURN_KEY, 1)
        if isinstance(turn, bool) or not isinstance(turn, int) or turn < 1:
            raise CorruptSaveError(f"Invalid saved turn: {turn!r}")

        era = saved.get(ERA_KEY, Era.VILLAGE.value)
        if era not in ERA_ORDER:
            raise CorruptSaveError(f"Invalid saved era: {era!r}")

        for resource_id, amount in saved.items():
            if resource_id in (TURN_KEY, ERA_KEY):
                continue
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                raise CorruptSaveError(f"Invalid saved amount for {resource_id}: {amount!r}")

    def load(self, saved: dict[str, Any]) -> None:
        """
        Replace the ledger with a saved mapping, clamped to the definitions.

        Raises:
            CorruptSaveError: See validate_saved()
        """
        self.validate_saved(saved)

        self._resources = {}
        for resource_id, amount in saved.items():
            definition = self._definitions.get(resource_id)
            self._resources[resource_id] = definition.clamp(amount) if definition else amount
        self._resources.setdefault(TURN_KEY, 1)
        self._resources.setdefault(ERA_KEY, Era.VILLAGE.value)
        self._emit_update()

    # -------------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------------

    def get(self, resource_id: str) -> Any:
        return self._resources.get(resource_id, 0)

    def has(self, resource_id: str) -> bool:
        """True if the counter exists (get() reads missing ones as 0)."""
        return resource_id in self._resources

    def set(self, resource_id: str, amount: float) -> None:
        """Write a value, clamped to the resource's bounds."""
        definition = self._definitions.get(resource_id)
        if definition is not None:
            amount = definition.clamp(amount)

        self._resources[resource_id] = amount
        self._emit_update()

    def add(self, resource_id: str, amount: float) -> None:
        self.set(resource_id, self.get(resource_id) + amount)

    def remove(self, resource_id: str, amount: float) -> None:
        self.add(resource_id, -amount)

    def has_enough(self, costs: dict[str, float] | None) -> bool:
        """True when every listed resource is at or above its cost."""
        if not costs:
            return True
        return all(self.get(resource_id) >= amount for resource_id, amount in costs.items())

    def spend(self, costs: dict[str, float] | None) -> bool:
        """
        Deduct every cost, or nothing.

        Returns:
            True if the costs were paid
        """
        if not self.has_enough(costs):
            logger.debug(f"Cannot afford {costs}")
            return False

        for resource_id, amount in (costs or {}).items():
            self.remove(resource_id, amount)
        return True

    # -------------------------------------------------------------------------
    # Turn / era
    # -------------------------------------------------------------------------

    @property
    def turn(self) -> int:
        return int(self._resources.get(TURN_KEY, 1))

    @property
    def era(self) -> str:
        return str(self._resources.get(ERA_KEY, Era.VILLAGE.value))

    @property
    def population(self) -> float:
        return self.get("population")

    def advance_turn(self) -> int:
        """Increment the turn counter. Only the orchestrator calls this."""
        self._resources[TURN_KEY] = self.turn + 1
        self._emit_update()
        return self.turn

    def set_era(self, era: str) -> None:
        self._resources[ERA_KEY] = era
        self._emit_update()

    def _emit_update(self) -> None:
        self._bus.emit(EventType.RESOURCES_UPDATED, resources=self.snapshot())
