"""
Turn orchestrator for Northern Journey.

Owns the event bus, the sub-systems and the phase state machine, and
sequences one turn per end_turn() call:

    1. advance the turn counter
    2. snapshot season / era / modifiers, advance the season clock,
       fire the new season's event on a change
    3. building production (with the snapshot modifiers)
    4. food consumption
    5. starvation
    6. event check (not during the grace period)
    7. apply choice-less events, queue choice-bearing ones
    8. creature spawn check (not during the grace period)
    9. game over check
   10. snapshot and persist

Phases:
    IDLE → RESOLVING → IDLE
                     → GAME_OVER → IDLE (new_game / load_state)

Player actions go through the orchestrator too. A refused action returns
False (or a rejected outcome) and is broadcast on action:rejected.

Usage:
    orchestrator = TurnOrchestrator(default_catalog(), dice=Dice(seed=7))
    orchestrator.new_game()
    result = orchestrator.end_turn()
"""

import logging
import math
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ..config import GameConfig, generate_default_map
from ..content import Catalog
from ..errors import CorruptSaveError, EngineError, NotFoundError
from ..state.event_bus import EventBus, EventType
from ..state.schema import ERA_ORDER, EventDefinition, era_index
from ..state.schemas.snapshot import SNAPSHOT_VERSION, GameSnapshot
from ..state.schemas.turn_result import TurnResult
from ..state.store import SnapshotStore
from ..tools.dice import Dice
from .buildings import BuildingRegistry, WorldMap
from .creatures import CreatureDirector
from .dialogue import DialogueEngine
from .events import ChoiceOutcome, EventEngine
from .resources import ResourceLedger
from .seasons import SeasonClock

logger = logging.getLogger(__name__)


POPULATION_LOST = "All villagers have perished."
MORALE_LOST = "The villagers have lost all hope and abandoned the village."


class TurnPhase(str, Enum):
    """Phase state machine for the run."""
    IDLE = "idle"              # Waiting for player actions or end_turn()
    RESOLVING = "resolving"    # end_turn() in progress
    GAME_OVER = "game_over"    # Run ended; only new_game / load_state leave


# Valid phase transitions
VALID_TRANSITIONS: dict[TurnPhase, set[TurnPhase]] = {
    TurnPhase.IDLE: {TurnPhase.RESOLVING},
    TurnPhase.RESOLVING: {TurnPhase.IDLE, TurnPhase.GAME_OVER},
    TurnPhase.GAME_OVER: {TurnPhase.IDLE},
}


class TurnError(Exception):
    """Error during turn processing."""
    pass


class InvalidPhaseError(TurnError):
    """Attempted operation not valid in current phase."""
    def __init__(self, current: TurnPhase, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} during {current.value} phase."
        )


class TurnOrchestrator:
    """
    Sequences the sub-systems once per turn. Delegates, never computes rules.

    Responsibilities:
    - Phase state machine (rejects re-entrant end_turn)
    - Passing read-only values (building count, population) between systems
    - Game over detection
    - Snapshot save / load of the aggregate state

    NOT responsible for:
    - Production, placement rules (BuildingRegistry)
    - Event selection and choice resolution (EventEngine)
    - Dialogue flow (DialogueEngine)
    - Spawning and interaction (CreatureDirector)
    """

    def __init__(
        self,
        catalog: Catalog,
        config: GameConfig | None = None,
        dice: Dice | None = None,
        store: SnapshotStore | None = None,
        bus: EventBus | None = None,
        world_map: WorldMap | None = None,
    ):
        self.catalog = catalog
        self.config = config or GameConfig()
        self.dice = dice or Dice()
        self.store = store
        self.bus = bus or EventBus()
        self.world_map: WorldMap = world_map or generate_default_map(
            self.config.map_width, self.config.map_height
        )

        self.ledger = ResourceLedger(self.bus, catalog.resources)
        self.seasons = SeasonClock(self.bus, catalog.seasons, self.config.season_duration_turns)
        self.buildings = BuildingRegistry(self.bus, catalog.buildings)
        self.events = EventEngine(
            self.bus,
            self.dice,
            random_events=catalog.random_events,
            seasonal_events=catalog.seasonal_events,
            story_events=catalog.story_events,
            event_check_chance=self.config.event_check_chance,
        )
        self.dialogue = DialogueEngine(self.bus, self.dice, self.events, catalog.dialogues)
        self.creatures = CreatureDirector(
            self.bus,
            self.dice,
            catalog.creatures,
            self.dialogue,
            spawn_chance=self.config.creature_spawn_chance,
            map_width=len(self.world_map[0]),
            map_height=len(self.world_map),
        )

        self._phase = TurnPhase.IDLE
        self._pending: list[EventDefinition] = []
        self._game_over_reason: str | None = None

    @property
    def phase(self) -> TurnPhase:
        """Current phase of the state machine."""
        return self._phase

    @property
    def is_game_over(self) -> bool:
        return self._phase == TurnPhase.GAME_OVER

    @property
    def game_over_reason(self) -> str | None:
        return self._game_over_reason

    @property
    def pending_events(self) -> list[EventDefinition]:
        """Choice-bearing events waiting for resolve_event_choice()."""
        return list(self._pending)

    def _transition(self, to: TurnPhase) -> None:
        """Transition to a new phase, enforcing valid transitions."""
        if to not in VALID_TRANSITIONS.get(self._phase, set()):
            raise InvalidPhaseError(
                self._phase,
                f"transition to {to.value}",
            )
        self._phase = to

    def in_grace_period(self, turn: int | None = None) -> bool:
        """True while the first grace_period_turns turns of a run are being ended."""
        turn = self.ledger.turn if turn is None else turn
        return (turn - 1) <= self.config.grace_period_turns

    # ─── Turn Pipeline ───────────────────────────────────────────

    def end_turn(self) -> TurnResult | None:
        """
        Simulate one turn.

        Returns:
            TurnResult, or None if the run is already over

        Raises:
            InvalidPhaseError: If a turn is already being resolved
        """
        if self._phase == TurnPhase.GAME_OVER:
            logger.warning(f"end_turn refused: game over ({self._game_over_reason})")
            return None
        if self._phase != TurnPhase.IDLE:
            raise InvalidPhaseError(self._phase, "end turn")

        self._transition(TurnPhase.RESOLVING)
        try:
            return self._resolve_turn()
        finally:
            if self._phase == TurnPhase.RESOLVING:
                self._transition(TurnPhase.IDLE)

    def _resolve_turn(self) -> TurnResult:
        ledger = self.ledger

        # 1. Turn counter
        turn = ledger.advance_turn()

        # 2. Season (modifiers are taken before the clock moves)
        season_id = self.seasons.current_id
        era = ledger.era
        modifiers = self.seasons.season_modifiers()

        surfaced: list[EventDefinition] = []
        triggered: list[str] = []

        new_season = self.seasons.process_turn()
        if new_season is not None:
            seasonal = self.events.trigger_seasonal_event(new_season, ledger)
            if seasonal is not None:
                if seasonal.automatic:
                    triggered.append(seasonal.id)
                else:
                    surfaced.append(seasonal)

        # 3. Production
        production = self.buildings.process_turn(ledger, modifiers)

        # 4-5. Consumption and starvation
        food_consumed, deaths = self._consume_food()

        # 6. Events
        in_grace = self.in_grace_period(turn)
        if not in_grace:
            surfaced.extend(self.events.check_events(season_id, era, ledger, self.buildings.count))

        # 7. Apply or queue
        for event in surfaced:
            self.events.trigger_event(event, turn)
            triggered.append(event.id)
            if event.has_choices:
                self._pending.append(event)
            else:
                self.events.apply_effects(event.effects, ledger, source=event.id)

        # 8. Creatures
        spawned = None
        if not in_grace:
            spawned = self.creatures.check_spawns(season_id, era)

        # 9. Game over
        reason = self._check_game_over()
        if reason is not None:
            self._game_over_reason = reason
            self._transition(TurnPhase.GAME_OVER)
            logger.info(f"Game over on turn {turn}: {reason}")
            self.bus.emit(EventType.GAME_OVER, reason=reason, turn=turn)

        # 10. Snapshot and persist
        snapshot = self.build_snapshot()
        self._persist(snapshot)

        logger.info(
            f"Turn {turn} ({season_id}/{era}): produced {production}, "
            f"ate {food_consumed}, deaths {deaths}, events {triggered}"
        )

        return TurnResult(
            turn_number=turn,
            season=season_id,
            era=era,
            production=production,
            food_consumed=food_consumed,
            starvation_deaths=deaths,
            season_changed_to=new_season,
            triggered_events=triggered,
            pending_events=[e.id for e in self._pending],
            in_grace_period=in_grace,
            spawned_creature=spawned.id if spawned else None,
            game_over_reason=reason,
            snapshot=snapshot,
        )

    def _consume_food(self) -> tuple[float, int]:
        """
        Feed the village.

        A shortfall kills ceil(deficit / rate) villagers (at most all of
        them), costs morale and leaves food at 0.

        Returns:
            (food consumed, starvation deaths)
        """
        ledger = self.ledger
        rate = self.config.consumption_rates.food_per_villager
        population = ledger.get("population")
        consumption = population * rate

        remaining = ledger.get("food") - consumption
        if remaining >= 0:
            ledger.set("food", remaining)
            return consumption, 0

        deaths = int(min(math.ceil(-remaining / rate), population))
        ledger.remove("population", deaths)
        ledger.remove("morale", self.config.starvation_morale_penalty)
        ledger.set("food", 0)

        logger.info(f"Starvation: {deaths} villagers died")
        self.bus.emit(EventType.EVENT_STARVATION, deaths=deaths)
        return consumption, deaths

    def _check_game_over(self) -> str | None:
        if self.ledger.has("population") and self.ledger.get("population") <= 0:
            return POPULATION_LOST
        if self.ledger.has("morale") and self.ledger.get("morale") <= 0:
            return MORALE_LOST
        return None

    # ─── Player Actions ──────────────────────────────────────────

    def _can_act(self, action: str) -> bool:
        if self._phase == TurnPhase.RESOLVING:
            raise InvalidPhaseError(self._phase, action)
        if self._phase == TurnPhase.GAME_OVER:
            self._reject(action, "The game is over")
            return False
        return True

    def _reject(self, action: str, reason: str) -> None:
        logger.warning(f"{action} rejected: {reason}")
        self.bus.emit(EventType.ACTION_REJECTED, action=action, reason=reason)

    def enter_placement_mode(self, building_id: str) -> bool:
        if not self._can_act("enter_placement_mode"):
            return False
        return self.buildings.enter_placement_mode(building_id)

    def cancel_placement(self) -> None:
        self.buildings.exit_placement_mode()

    def available_buildings(self):
        """Build menu for the current era; event flags unlock gated buildings."""
        return self.buildings.available_buildings(self.ledger.era, set(self.events.flags))

    def attempt_placement(self, x: int, y: int, building_id: str | None = None) -> bool:
        """
        Validate and place a building.

        Uses the placement-mode selection when no id is given. Leaves
        placement mode after a successful placement.
        """
        if not self._can_act("place_building"):
            return False

        if building_id is None:
            if self.buildings.placing is None:
                self._reject("place_building", "No building selected")
                return False
            building_id = self.buildings.placing.id

        try:
            definition = self.buildings.get_definition(building_id)
        except NotFoundError as e:
            self._reject("place_building", str(e))
            return False

        if definition not in self.available_buildings():
            self._reject("place_building", f"{definition.id} is not available in the {self.ledger.era} era")
            return False

        if not self.buildings.is_valid_placement(x, y, definition, self.world_map):
            self.bus.emit(EventType.BUILDING_INVALID_PLACEMENT, building=definition.id, x=x, y=y)
            return False

        if not self.buildings.place_building(x, y, definition.id, self.ledger):
            return False

        if self.buildings.placing is not None:
            self.buildings.exit_placement_mode()
        return True

    def assign_workers(self, x: int, y: int, count: int) -> bool:
        if not self._can_act("assign_workers"):
            return False
        try:
            self.buildings.assign_workers(x, y, count, self.ledger.get("population"))
        except EngineError as e:
            self._reject("assign_workers", str(e))
            return False
        return True

    def upgrade_building(self, x: int, y: int) -> bool:
        if not self._can_act("upgrade_building"):
            return False
        try:
            self.buildings.upgrade_building(x, y, self.ledger)
        except EngineError as e:
            self._reject("upgrade_building", str(e))
            return False
        return True

    def resolve_event_choice(self, event_id: str, index: int) -> ChoiceOutcome:
        """Resolve a pending event. Rejected choices leave it pending."""
        if not self._can_act("resolve_event_choice"):
            return ChoiceOutcome(success=False, message="The game is over", rejected=True)

        event = next((e for e in self._pending if e.id == event_id), None)
        if event is None:
            self._reject("resolve_event_choice", f"Event {event_id} is not pending")
            return ChoiceOutcome(success=False, message="Event not pending", rejected=True)

        outcome = self.events.select_event_choice(event, index, self.ledger)
        if outcome.rejected:
            self._reject("resolve_event_choice", outcome.message or "Choice rejected")
            return outcome

        self._pending.remove(event)
        return outcome

    def start_dialogue(self, dialogue_id: str) -> bool:
        if not self._can_act("start_dialogue"):
            return False
        if not self.dialogue.start_dialogue(dialogue_id, self.ledger):
            self._reject("start_dialogue", f"Could not start dialogue {dialogue_id}")
            return False
        return True

    def select_dialogue_choice(self, index: int) -> bool:
        if not self._can_act("select_dialogue_choice"):
            return False
        if not self.dialogue.select_choice(index, self.ledger):
            self._reject("select_dialogue_choice", f"Choice {index} not accepted")
            return False
        return True

    def interact_with_creature(self, creature_id: str) -> bool:
        if not self._can_act("interact_with_creature"):
            return False
        if not self.creatures.interact_with_creature(creature_id, self.ledger):
            self._reject("interact_with_creature", f"No interaction with {creature_id}")
            return False
        return True

    def advance_era(self) -> bool:
        """Move the village to the next era in the progression order."""
        if not self._can_act("advance_era"):
            return False

        previous = self.ledger.era
        index = era_index(previous)
        if index + 1 >= len(ERA_ORDER):
            self._reject("advance_era", f"{previous} is the final era")
            return False

        era = ERA_ORDER[index + 1]
        self.ledger.set_era(era)
        logger.info(f"Era advanced: {previous} -> {era}")
        self.bus.emit(EventType.ERA_ADVANCED, era=era, previous=previous)
        return True

    # ─── Lifecycle ───────────────────────────────────────────────

    def new_game(self) -> None:
        """Reset every sub-system and place the starting buildings."""
        self.ledger.reset(self.config.starting_resources, self.catalog.resources)
        self.seasons.reset()
        self.events.reset()
        self.dialogue.reset()
        self.creatures.reset()
        self.buildings.reset()

        for start in self.config.starting_buildings:
            if not self.buildings.place_starting_building(start.x, start.y, start.id):
                logger.warning(f"Skipped unknown starting building {start.id}")

        self._pending = []
        self._game_over_reason = None
        self._phase = TurnPhase.IDLE

        logger.info("New game started")
        self.bus.emit(EventType.GAME_STARTED)

    def build_snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            version=self.config.save_version,
            resources=self.ledger.snapshot(),
            buildings=self.buildings.snapshot(),
            events=self.events.snapshot(),
            season=self.seasons.snapshot(),
            creatures=self.creatures.snapshot(),
        )

    def _persist(self, snapshot: GameSnapshot) -> None:
        if self.store is None:
            return
        self.store.save(snapshot.to_dict())
        self.bus.emit(EventType.GAME_SAVED, turn=self.ledger.turn)

    def save_state(self) -> dict[str, Any]:
        """Serialize the aggregate state, writing it to the store if one is set."""
        snapshot = self.build_snapshot()
        self._persist(snapshot)
        return snapshot.to_dict()

    def load_state(self, data: dict[str, Any] | GameSnapshot) -> bool:
        """
        Restore a saved game.

        A snapshot that fails validation or references unknown content
        starts a new game instead.

        Returns:
            True if the snapshot was restored
        """
        if self._phase == TurnPhase.RESOLVING:
            raise InvalidPhaseError(self._phase, "load")

        try:
            snapshot = data if isinstance(data, GameSnapshot) else GameSnapshot.model_validate(data)
            self._restore(snapshot)
        except (ValidationError, CorruptSaveError) as e:
            logger.error(f"Corrupt save, starting a new game: {e}")
            self.new_game()
            return False

        self._pending = []
        self._game_over_reason = None
        self._phase = TurnPhase.IDLE

        logger.info(f"Loaded game at turn {self.ledger.turn}")
        self.bus.emit(EventType.GAME_LOADED, turn=self.ledger.turn)
        return True

    def _restore(self, snapshot: GameSnapshot) -> None:
        """Validate every reference first so a bad snapshot changes nothing."""
        if snapshot.version != SNAPSHOT_VERSION:
            logger.warning(f"Snapshot version {snapshot.version}, expected {SNAPSHOT_VERSION}")

        try:
            for building in snapshot.buildings:
                self.buildings.get_definition(building.id)
            for creature in snapshot.creatures:
                self.creatures.get_definition(creature.definition_id)
        except NotFoundError as e:
            raise CorruptSaveError(str(e)) from e
        self.ledger.validate_saved(snapshot.resources)

        self.seasons.load(snapshot.season)
        self.ledger.load(snapshot.resources)
        self.buildings.load(snapshot.buildings)
        self.events.load(snapshot.events)
        self.creatures.load(snapshot.creatures)
        self.dialogue.reset()

    def continue_game(self) -> bool:
        """
        Resume from the store, or start fresh.

        Returns:
            True if a saved game was loaded
        """
        data = self.store.load() if self.store is not None else None
        if data is None:
            self.new_game()
            return False
        return self.load_state(data)
