"""
Event engine for Northern Journey.

Story events fire once when their trigger conditions hold; random events
are rolled each turn and drawn by weight; seasonal events fire when the
season changes. The engine also owns the run's flag set, which dialogue
writes to as well.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from ..state.event_bus import EventBus, EventType
from ..state.schema import (
    EventChoice,
    EventDefinition,
    EventFlags,
    EventHistoryEntry,
    TriggerConditions,
)
from ..state.schemas.snapshot import EventsState, now_ms
from ..tools.dice import Dice, SkillCheckResult, skill_check
from .effects import apply_effects
from .resources import ResourceLedger

logger = logging.getLogger(__name__)


@dataclass
class ChoiceOutcome:
    """Result of picking an option on an event."""
    success: bool
    message: str | None = None
    effects: dict[str, Any] = field(default_factory=dict)
    rejected: bool = False  # True when nothing was applied
    skill_check: SkillCheckResult | None = None


class EventEngine:
    """
    Story, random and seasonal event catalogs plus the flag set.

    Catalog order matters: story events are checked in order, and the
    weighted draw walks random events in order.
    """

    def __init__(
        self,
        bus: EventBus,
        dice: Dice,
        random_events: list[EventDefinition] | None = None,
        seasonal_events: list[EventDefinition] | None = None,
        story_events: list[EventDefinition] | None = None,
        event_check_chance: float = 0.3,
    ):
        self._bus = bus
        self._dice = dice
        self.random_events = list(random_events or [])
        self.seasonal_events = list(seasonal_events or [])
        self.story_events = list(story_events or [])
        self.event_check_chance = event_check_chance

        self.flags = EventFlags()
        self._history: list[EventHistoryEntry] = []

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def check_events(
        self,
        season: str,
        era: str,
        ledger: ResourceLedger,
        building_count: int,
    ) -> list[EventDefinition]:
        """
        Collect this turn's events: at most one story event, then maybe a random one.

        Story events are marked in the flag set as they trigger.
        """
        events: list[EventDefinition] = []

        story = self.check_story_events(era, ledger, building_count)
        if story is not None:
            events.append(story)

        if self._dice.random() < self.event_check_chance:
            random_event = self.select_random_event(season, era)
            if random_event is not None:
                events.append(random_event)

        return events

    def check_story_events(
        self,
        era: str,
        ledger: ResourceLedger,
        building_count: int,
    ) -> EventDefinition | None:
        for event in self.story_events:
            if event.id in self.flags:
                continue
            if self.check_trigger_conditions(event.trigger_conditions, era, ledger, building_count):
                self.flags.add(event.id)
                logger.info(f"Story event triggered: {event.id}")
                return event
        return None

    def check_trigger_conditions(
        self,
        conditions: TriggerConditions | None,
        era: str,
        ledger: ResourceLedger,
        building_count: int,
    ) -> bool:
        """All present conditions must hold; no conditions means never."""
        if conditions is None:
            return False

        if conditions.population is not None and ledger.get("population") < conditions.population:
            return False
        if conditions.buildings is not None and building_count < conditions.buildings:
            return False
        if conditions.era is not None and conditions.era != era:
            return False
        if conditions.flag and not self.flags.matches(conditions.flag):
            return False

        return True

    def select_random_event(self, season: str, era: str) -> EventDefinition | None:
        """
        Weighted draw among events eligible for this season and era.

        Falls back to the last candidate if rounding leaves a remainder.
        """
        eligible = [
            event for event in self.random_events
            if (event.era is None or era in event.era)
            and (event.season is None or season in event.season)
        ]
        if not eligible:
            return None

        total = sum(event.probability for event in eligible)
        remaining = self._dice.random() * total
        logger.debug(f"Random event draw {remaining:.3f} of {total:.3f}")

        for event in eligible:
            remaining -= event.probability
            if remaining <= 0:
                return event

        return eligible[-1]

    def trigger_seasonal_event(self, season: str, ledger: ResourceLedger) -> EventDefinition | None:
        """
        Fire the seasonal event for a season that just started.

        An automatic event is applied here and broadcast on event:seasonal.
        Returns the event either way so the caller can surface a
        non-automatic one; None if the season has no event.
        """
        event = next(
            (e for e in self.seasonal_events if e.season and season in e.season),
            None,
        )
        if event is None:
            return None

        if event.automatic:
            self.apply_effects(event.effects, ledger, source=event.id)
            self._bus.emit(EventType.EVENT_SEASONAL, event=event.id, title=event.title, effects=dict(event.effects))
        return event

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def apply_effects(self, effects: dict[str, Any] | None, ledger: ResourceLedger, source: str | None = None) -> None:
        apply_effects(effects, ledger, self.flags, self._bus, source=source)

    def select_event_choice(self, event: EventDefinition, index: int, ledger: ResourceLedger) -> ChoiceOutcome:
        """
        Resolve a choice on a choice-bearing event.

        Invalid indices and unmet requirements are rejected with nothing
        applied. Risk and skill-check choices apply success_effects or
        failure_effects; plain choices apply effects.
        """
        if index < 0 or index >= len(event.choices):
            return ChoiceOutcome(success=False, message="Invalid choice", rejected=True)

        choice: EventChoice = event.choices[index]
        if choice.requires and not ledger.has_enough(choice.requires):
            return ChoiceOutcome(success=False, message="Insufficient resources", rejected=True)

        if choice.risk is not None:
            success = self._dice.risk_survived(choice.risk)
            return self._apply_branch(event, choice, success, ledger)

        if choice.skill_check:
            check = skill_check(self._dice, choice.skill_check, ledger.get("population"))
            outcome = self._apply_branch(event, choice, check.success, ledger)
            outcome.skill_check = check
            return outcome

        self.apply_effects(choice.effects, ledger, source=event.id)
        return ChoiceOutcome(success=True, effects=dict(choice.effects))

    def _apply_branch(
        self,
        event: EventDefinition,
        choice: EventChoice,
        success: bool,
        ledger: ResourceLedger,
    ) -> ChoiceOutcome:
        effects = choice.success_effects if success else choice.failure_effects
        self.apply_effects(effects, ledger, source=event.id)
        return ChoiceOutcome(
            success=success,
            message=None if success else choice.failure_message,
            effects=dict(effects),
        )

    def trigger_event(self, event: EventDefinition, turn: int) -> None:
        """Record an event in the history and broadcast it."""
        self._history.append(EventHistoryEntry(id=event.id, turn=turn, timestamp=now_ms()))
        self._bus.emit(
            EventType.EVENT_TRIGGERED,
            event=event.id,
            category=event.category.value,
            title=event.title,
            description=event.description,
            choices=[choice.text for choice in event.choices],
        )

    # -------------------------------------------------------------------------
    # Flags / history
    # -------------------------------------------------------------------------

    def set_flag(self, flag: str) -> None:
        self.flags.add(flag)

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags

    def history(self) -> list[EventHistoryEntry]:
        return list(self._history)

    def reset(self) -> None:
        self.flags = EventFlags()
        self._history = []

    def snapshot(self) -> EventsState:
        return EventsState(
            history=[entry.model_copy() for entry in self._history],
            flags=self.flags.to_list(),
        )

    def load(self, state: EventsState) -> None:
        self._history = [entry.model_copy() for entry in state.history]
        self.flags = EventFlags(state.flags)
