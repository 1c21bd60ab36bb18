"""
Tests for the turn orchestrator.

The conftest orchestrator starts a game with a hut at (1, 1) producing
2 food, five villagers eating 1 each, two-turn seasons, no grace period
and random events / spawns switched off.
"""

import pytest
from northern_journey.state import EventType, GameSnapshot, MemorySnapshotStore
from northern_journey.systems import (
    MORALE_LOST,
    POPULATION_LOST,
    InvalidPhaseError,
    TurnOrchestrator,
    TurnPhase,
)
from northern_journey.tools import Dice


def make_orchestrator(catalog, config, world_map, **overrides):
    orchestrator = TurnOrchestrator(
        catalog,
        config=config.model_copy(update=overrides),
        dice=Dice(seed=7),
        store=MemorySnapshotStore(),
        world_map=world_map,
    )
    orchestrator.new_game()
    return orchestrator


def emitted(recorder, event_type):
    return [e for e in recorder if e.type == event_type]


class TestNewGame:
    """Test new_game."""

    def test_starting_state(self, orchestrator):
        """A new game starts on turn 1 in the village era with its starting buildings."""
        assert orchestrator.ledger.turn == 1
        assert orchestrator.ledger.era == "village"
        assert orchestrator.seasons.current_id == "spring"
        assert orchestrator.buildings.building_at(1, 1).id == "hut"
        assert orchestrator.phase == TurnPhase.IDLE

    def test_started_event(self, catalog, config, world_map, bus, recorder):
        """new_game announces itself."""
        orchestrator = TurnOrchestrator(catalog, config=config, bus=bus, world_map=world_map)
        orchestrator.new_game()
        assert emitted(recorder, EventType.GAME_STARTED)


class TestEndTurn:
    """Test the turn pipeline."""

    def test_turn_advances(self, orchestrator):
        """Each end_turn bumps the counter and returns a result."""
        result = orchestrator.end_turn()
        assert result.turn_number == 2
        assert orchestrator.ledger.turn == 2
        assert orchestrator.phase == TurnPhase.IDLE

    def test_production_then_consumption(self, orchestrator):
        """Food goes 20 + 2 produced - 5 eaten."""
        result = orchestrator.end_turn()
        assert result.production == {"food": 2}
        assert result.food_consumed == 5
        assert orchestrator.ledger.get("food") == 17

    def test_starvation(self, orchestrator, recorder):
        """A shortfall kills ceil(deficit / rate) villagers and costs morale."""
        orchestrator.ledger.set("food", 0)

        result = orchestrator.end_turn()

        # 0 + 2 produced - 5 eaten leaves a deficit of 3
        assert result.starvation_deaths == 3
        assert orchestrator.ledger.get("population") == 2
        assert orchestrator.ledger.get("morale") == 35
        assert orchestrator.ledger.get("food") == 0
        assert emitted(recorder, EventType.EVENT_STARVATION)[0].data["deaths"] == 3

    def test_season_modifiers_taken_before_change(self, orchestrator):
        """The turn that rolls the season still produces at the old rate."""
        orchestrator.end_turn()
        second = orchestrator.end_turn()
        third = orchestrator.end_turn()

        assert second.season == "spring"
        assert second.season_changed_to == "winter"
        assert second.production == {"food": 2}
        assert third.season == "winter"
        assert third.production == {"food": 1}

    def test_seasonal_event_with_choices_goes_pending(self, orchestrator):
        """A non-automatic seasonal event waits for a choice."""
        orchestrator.end_turn()
        result = orchestrator.end_turn()

        assert "long_night" in result.triggered_events
        assert result.pending_events == ["long_night"]
        assert [e.id for e in orchestrator.pending_events] == ["long_night"]

    def test_automatic_seasonal_event_applies(self, orchestrator, recorder):
        """Returning to spring applies the thaw."""
        results = [orchestrator.end_turn() for _ in range(4)]

        assert results[-1].season_changed_to == "spring"
        assert "thaw" in results[-1].triggered_events
        assert emitted(recorder, EventType.EVENT_SEASONAL)[0].data["event"] == "thaw"

    def test_story_event_fires_once(self, orchestrator):
        """first_gathering fires on the first eligible turn only."""
        results = [orchestrator.end_turn() for _ in range(3)]

        fired = [r for r in results if "first_gathering" in r.triggered_events]
        assert len(fired) == 1
        assert fired[0].turn_number == 2
        assert orchestrator.events.has_flag("first_gathering")

    def test_each_turn_persists(self, orchestrator, memory_store, recorder):
        """The snapshot is written to the store every turn."""
        orchestrator.end_turn()
        orchestrator.end_turn()
        assert memory_store.save_count == 2
        assert memory_store.data["resources"]["turn"] == 3
        assert len(emitted(recorder, EventType.GAME_SAVED)) == 2

    def test_reentrant_end_turn_rejected(self, orchestrator, bus):
        """Calling end_turn from a listener mid-turn raises InvalidPhaseError."""
        errors = []

        def reenter(event):
            try:
                orchestrator.end_turn()
            except InvalidPhaseError as e:
                errors.append(e)

        bus.on(EventType.RESOURCES_UPDATED, reenter)
        result = orchestrator.end_turn()

        assert errors
        assert errors[0].current == TurnPhase.RESOLVING
        assert result.turn_number == 2
        assert orchestrator.phase == TurnPhase.IDLE


class TestGracePeriod:
    """Test the opening grace period."""

    def test_events_suppressed(self, catalog, config, world_map):
        """No story or random events during the first grace_period_turns turns."""
        orchestrator = make_orchestrator(catalog, config, world_map, grace_period_turns=3)

        results = [orchestrator.end_turn() for _ in range(4)]

        assert [r.in_grace_period for r in results] == [True, True, True, False]
        assert all("first_gathering" not in r.triggered_events for r in results[:3])
        assert "first_gathering" in results[3].triggered_events

    def test_spawns_suppressed(self, catalog, config, world_map):
        """Creatures don't spawn during the grace period."""
        orchestrator = make_orchestrator(
            catalog, config, world_map, grace_period_turns=1, creature_spawn_chance=1.0
        )

        first = orchestrator.end_turn()
        second = orchestrator.end_turn()

        assert first.spawned_creature is None
        assert second.spawned_creature.startswith("gnome_")


class TestGameOver:
    """Test game over detection."""

    def test_population_lost(self, orchestrator, recorder):
        """No villagers ends the run."""
        orchestrator.ledger.set("population", 0)

        result = orchestrator.end_turn()

        assert result.is_game_over
        assert result.game_over_reason == POPULATION_LOST
        assert orchestrator.phase == TurnPhase.GAME_OVER
        assert emitted(recorder, EventType.GAME_OVER)[0].data["reason"] == POPULATION_LOST

    def test_morale_lost(self, orchestrator):
        """Starvation that empties morale ends the run."""
        orchestrator.ledger.set("morale", 10)
        orchestrator.ledger.set("food", 0)

        result = orchestrator.end_turn()

        assert result.game_over_reason == MORALE_LOST

    def test_end_turn_after_game_over(self, orchestrator):
        """end_turn is refused once the run is over."""
        orchestrator.ledger.set("population", 0)
        orchestrator.end_turn()

        assert orchestrator.end_turn() is None
        assert orchestrator.ledger.turn == 2

    def test_actions_rejected_after_game_over(self, orchestrator, recorder):
        """Player actions are refused and broadcast on action:rejected."""
        orchestrator.ledger.set("population", 0)
        orchestrator.end_turn()

        assert not orchestrator.attempt_placement(2, 2, "farm")
        assert not orchestrator.advance_era()
        assert len(emitted(recorder, EventType.ACTION_REJECTED)) == 2

    def test_new_game_recovers(self, orchestrator):
        """new_game leaves GAME_OVER."""
        orchestrator.ledger.set("population", 0)
        orchestrator.end_turn()
        orchestrator.new_game()
        assert orchestrator.phase == TurnPhase.IDLE
        assert orchestrator.game_over_reason is None


class TestBuildingActions:
    """Test placement, workers and upgrades through the orchestrator."""

    def test_place(self, orchestrator):
        """A valid placement is paid for."""
        assert orchestrator.attempt_placement(2, 2, "farm")
        assert orchestrator.buildings.building_at(2, 2).id == "farm"
        assert orchestrator.ledger.get("wood") == 16

    def test_place_from_placement_mode(self, orchestrator):
        """Without an id the placement-mode selection is used, then cleared."""
        assert orchestrator.enter_placement_mode("farm")
        assert orchestrator.attempt_placement(3, 2)
        assert orchestrator.buildings.placing is None

    def test_nothing_selected(self, orchestrator, recorder):
        """Placing with no id and no selection is rejected."""
        assert not orchestrator.attempt_placement(3, 2)
        assert emitted(recorder, EventType.ACTION_REJECTED)

    def test_invalid_tile(self, orchestrator, recorder):
        """Bad tiles emit invalid_placement and cost nothing."""
        assert not orchestrator.attempt_placement(2, 0, "farm")
        assert not orchestrator.attempt_placement(1, 1, "farm")  # the hut

        invalid = emitted(recorder, EventType.BUILDING_INVALID_PLACEMENT)
        assert len(invalid) == 2
        assert orchestrator.ledger.get("wood") == 20

    def test_era_locked(self, orchestrator, recorder):
        """Buildings from a later era are rejected."""
        assert not orchestrator.attempt_placement(2, 2, "longhouse")
        assert emitted(recorder, EventType.ACTION_REJECTED)[0].data["action"] == "place_building"

        orchestrator.advance_era()
        assert orchestrator.attempt_placement(2, 2, "longhouse")

    def test_flag_unlocks_building(self, orchestrator):
        """An event flag with a building's id unlocks it."""
        assert not orchestrator.attempt_placement(0, 0, "shrine")
        orchestrator.events.set_flag("shrine")
        assert orchestrator.attempt_placement(0, 0, "shrine")

    def test_unknown_building(self, orchestrator, recorder):
        """Unknown ids are rejected."""
        assert not orchestrator.attempt_placement(2, 2, "castle")
        assert "castle" in emitted(recorder, EventType.ACTION_REJECTED)[0].data["reason"]

    def test_assign_workers(self, orchestrator, recorder):
        """Worker assignment goes through; over-limit is rejected."""
        assert orchestrator.assign_workers(1, 1, 2)
        assert not orchestrator.assign_workers(1, 1, 3)
        assert not orchestrator.assign_workers(0, 0, 1)
        assert len(emitted(recorder, EventType.ACTION_REJECTED)) == 2

    def test_upgrade(self, orchestrator, recorder):
        """The hut upgrades; an empty tile is rejected."""
        assert orchestrator.upgrade_building(1, 1)
        assert orchestrator.buildings.building_at(1, 1).id == "longhouse"
        assert not orchestrator.upgrade_building(0, 0)
        assert emitted(recorder, EventType.ACTION_REJECTED)[0].data["action"] == "upgrade_building"


class TestEventChoices:
    """Test resolve_event_choice."""

    @pytest.fixture
    def pending(self, orchestrator):
        orchestrator.end_turn()
        orchestrator.end_turn()
        return orchestrator

    def test_resolve(self, pending):
        """Resolving applies the choice and clears the event."""
        outcome = pending.resolve_event_choice("long_night", 0)
        assert outcome.success
        assert pending.ledger.get("wood") == 18
        assert pending.pending_events == []

    def test_bad_index_stays_pending(self, pending, recorder):
        """A rejected choice leaves the event pending."""
        outcome = pending.resolve_event_choice("long_night", 4)
        assert outcome.rejected
        assert [e.id for e in pending.pending_events] == ["long_night"]
        assert emitted(recorder, EventType.ACTION_REJECTED)

    def test_not_pending(self, orchestrator):
        """Events that aren't pending can't be resolved."""
        outcome = orchestrator.resolve_event_choice("long_night", 0)
        assert outcome.rejected


class TestDialogueAndCreatures:
    """Test dialogue and creature actions."""

    def test_dialogue(self, orchestrator):
        """Dialogue can be started and finished through the orchestrator."""
        assert orchestrator.start_dialogue("gnome_talk")
        assert orchestrator.select_dialogue_choice(0)
        assert not orchestrator.dialogue.is_active

    def test_unknown_dialogue_rejected(self, orchestrator, recorder):
        """Unknown dialogues are rejected."""
        assert not orchestrator.start_dialogue("dragon_talk")
        assert emitted(recorder, EventType.ACTION_REJECTED)

    def test_spawn_and_interact(self, catalog, config, world_map):
        """A spawned gnome opens its dialogue when interacted with."""
        orchestrator = make_orchestrator(catalog, config, world_map, creature_spawn_chance=1.0)

        result = orchestrator.end_turn()

        assert orchestrator.interact_with_creature(result.spawned_creature)
        assert orchestrator.dialogue.current_state()["dialogue_id"] == "gnome_talk"

    def test_unknown_creature_rejected(self, orchestrator, recorder):
        """Unknown creatures are rejected."""
        assert not orchestrator.interact_with_creature("ghost_1")
        assert emitted(recorder, EventType.ACTION_REJECTED)


class TestEras:
    """Test advance_era."""

    def test_advance(self, orchestrator, recorder):
        """Eras advance in order and are announced."""
        assert orchestrator.advance_era()
        assert orchestrator.ledger.era == "settlement"
        advanced = emitted(recorder, EventType.ERA_ADVANCED)[0]
        assert advanced.data == {"era": "settlement", "previous": "village"}

    def test_final_era(self, orchestrator):
        """There is nothing after the kingdom."""
        for _ in range(3):
            assert orchestrator.advance_era()
        assert orchestrator.ledger.era == "kingdom"
        assert not orchestrator.advance_era()


class TestPersistence:
    """Test save_state, load_state and continue_game."""

    def test_round_trip(self, catalog, config, world_map):
        """A restored game, creatures included, snapshots identically."""
        orchestrator = make_orchestrator(catalog, config, world_map, creature_spawn_chance=1.0)
        for _ in range(3):
            orchestrator.end_turn()
        orchestrator.attempt_placement(2, 2, "farm")
        saved = orchestrator.save_state()
        assert len(saved["creatures"]) == 3

        other = TurnOrchestrator(catalog, config=config, world_map=world_map)
        assert other.load_state(saved)

        assert other.build_snapshot().state_equals(GameSnapshot.model_validate(saved))
        assert [c.id for c in other.creatures.active_creatures()] == [c["id"] for c in saved["creatures"]]
        assert other.phase == TurnPhase.IDLE

    def test_loaded_event(self, orchestrator, recorder):
        """Loading announces the restored turn."""
        orchestrator.end_turn()
        saved = orchestrator.save_state()
        orchestrator.load_state(saved)
        assert emitted(recorder, EventType.GAME_LOADED)[0].data["turn"] == 2

    def test_unknown_building_starts_new_game(self, orchestrator):
        """A snapshot naming an unknown building falls back to a new game."""
        orchestrator.end_turn()
        saved = orchestrator.save_state()
        saved["buildings"].append({"id": "castle", "x": 0, "y": 0})

        assert not orchestrator.load_state(saved)
        assert orchestrator.ledger.turn == 1

    def test_bad_season_index_starts_new_game(self, orchestrator):
        """An out-of-range season index is treated as corrupt."""
        saved = orchestrator.save_state()
        saved["season"]["currentSeasonIndex"] = 9
        assert not orchestrator.load_state(saved)

    def test_malformed_snapshot_starts_new_game(self, orchestrator):
        """Data that fails validation falls back to a new game."""
        assert not orchestrator.load_state({"buildings": "lots"})
        assert orchestrator.buildings.building_at(1, 1).id == "hut"

    def test_non_numeric_turn_starts_new_game(self, orchestrator):
        """A turn counter that isn't an integer is treated as corrupt."""
        for _ in range(3):
            orchestrator.end_turn()
        saved = orchestrator.save_state()
        saved["resources"]["turn"] = "abc"

        assert not orchestrator.load_state(saved)

        assert orchestrator.ledger.turn == 1
        assert orchestrator.seasons.current_id == "spring"
        assert orchestrator.events.history() == []

    def test_non_numeric_resource_starts_new_game(self, orchestrator):
        """A counter that isn't a number is treated as corrupt; play goes on."""
        saved = orchestrator.save_state()
        saved["resources"]["food"] = "lots"

        assert not orchestrator.load_state(saved)

        assert orchestrator.ledger.get("food") == 20
        assert orchestrator.end_turn().turn_number == 2

    def test_out_of_bounds_resources_clamped(self, orchestrator):
        """Loaded counters respect their resource bounds."""
        saved = orchestrator.save_state()
        saved["resources"]["morale"] = 500
        saved["resources"]["food"] = -40

        assert orchestrator.load_state(saved)

        assert orchestrator.ledger.get("morale") == 100
        assert orchestrator.ledger.get("food") == 0

    def test_continue_without_save(self, catalog, config, world_map):
        """continue_game with an empty store starts fresh."""
        orchestrator = TurnOrchestrator(
            catalog, config=config, store=MemorySnapshotStore(), world_map=world_map
        )
        assert not orchestrator.continue_game()
        assert orchestrator.ledger.turn == 1

    def test_continue_from_save(self, orchestrator, memory_store, catalog, config, world_map):
        """continue_game resumes the stored run."""
        orchestrator.end_turn()
        orchestrator.end_turn()

        other = TurnOrchestrator(catalog, config=config, store=memory_store, world_map=world_map)
        assert other.continue_game()
        assert other.ledger.turn == 3
