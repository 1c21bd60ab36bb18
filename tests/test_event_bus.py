"""Tests for the event bus and dice."""

import pytest
from northern_journey.state import EventBus, EventType
from northern_journey.tools import Dice, skill_check


class TestEventBus:
    """Test subscribe/emit/history."""

    def test_handler_receives_payload(self, bus):
        """Handlers get the emitted data."""
        received = []
        bus.on(EventType.GAME_OVER, received.append)

        bus.emit(EventType.GAME_OVER, reason="gone")

        assert received[0].type == EventType.GAME_OVER
        assert received[0].data == {"reason": "gone"}

    def test_duplicate_subscription_ignored(self, bus):
        """Subscribing the same handler twice registers it once."""
        handler = lambda event: None
        bus.on(EventType.GAME_STARTED, handler)
        bus.on(EventType.GAME_STARTED, handler)
        assert bus.listener_count(EventType.GAME_STARTED) == 1

    def test_off_unsubscribes(self, bus):
        """off() removes a handler."""
        received = []
        bus.on(EventType.GAME_SAVED, received.append)
        bus.off(EventType.GAME_SAVED, received.append)
        bus.emit(EventType.GAME_SAVED)
        assert received == []

    def test_failing_handler_does_not_stop_others(self, bus):
        """A raising handler is logged and the next handler still runs."""
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.on(EventType.SEASON_CHANGED, broken)
        bus.on(EventType.SEASON_CHANGED, received.append)

        bus.emit(EventType.SEASON_CHANGED, season="winter")

        assert len(received) == 1

    def test_history_is_bounded(self):
        """History keeps only the most recent events."""
        bus = EventBus(history_limit=3)
        for i in range(5):
            bus.emit(EventType.RESOURCES_UPDATED, resources={"turn": i})

        history = bus.get_history()
        assert len(history) == 3
        assert history[0].data["resources"]["turn"] == 2

    def test_history_filter(self, bus):
        """History can be filtered by type."""
        bus.emit(EventType.GAME_STARTED)
        bus.emit(EventType.GAME_SAVED)
        assert len(bus.get_history(EventType.GAME_SAVED)) == 1

    def test_channel_names(self):
        """Channel names match the presentation layer's."""
        assert EventType.RESOURCES_UPDATED.value == "resources:updated"
        assert EventType.BUILDING_INSUFFICIENT_RESOURCES.value == "building:insufficient_resources"
        assert EventType.DIALOGUE_COMBAT_START.value == "dialogue:combat_start"


class TestDice:
    """Test the seedable random source."""

    def test_same_seed_same_rolls(self):
        """Two dice with one seed roll identically."""
        a, b = Dice(seed=42), Dice(seed=42)
        assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]

    def test_randint_inclusive(self):
        """randint stays within both bounds."""
        dice = Dice(seed=3)
        rolls = {dice.randint(0, 3) for _ in range(200)}
        assert rolls == {0, 1, 2, 3}

    def test_choice_from_empty_raises(self):
        """Choosing from nothing is an error."""
        with pytest.raises(ValueError):
            Dice(seed=1).choice([])


class TestSkillCheck:
    """Test the single-skill check formula."""

    def test_level_from_population(self):
        """Level is population // 5."""
        result = skill_check(Dice(seed=1), {"stealth": 5}, population=12)
        assert result.level == 2
        assert 2 <= result.roll < 12

    def test_only_first_entry_used(self):
        """Extra skills in the requirement map are ignored."""
        result = skill_check(Dice(seed=1), {"stealth": 0, "strength": 100}, population=0)
        assert result.skill == "stealth"
        assert result.success

    def test_high_threshold_fails(self):
        """A threshold beyond any roll always fails."""
        result = skill_check(Dice(seed=1), {"lore": 50}, population=5)
        assert not result.success
        assert result.margin < 0

    def test_empty_requirement_rejected(self):
        """An empty requirement map is an error."""
        with pytest.raises(ValueError):
            skill_check(Dice(seed=1), {}, population=5)
