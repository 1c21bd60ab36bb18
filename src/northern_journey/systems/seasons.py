"""
Season clock for Northern Journey.

A cyclic list of seasons, each lasting its own duration_turns or the
configured default. The current season's effect map supplies the
production modifiers for a turn.
"""

import logging

from ..errors import CorruptSaveError
from ..state.event_bus import EventBus, EventType
from ..state.schema import SeasonDefinition
from ..state.schemas.snapshot import SeasonState

logger = logging.getLogger(__name__)


class SeasonClock:
    """Cyclic season index plus a turns-in-season counter."""

    def __init__(
        self,
        bus: EventBus,
        seasons: list[SeasonDefinition],
        default_duration: int = 10,
    ):
        if not seasons:
            raise ValueError("SeasonClock needs at least one season")
        self._bus = bus
        self._seasons = list(seasons)
        self._default_duration = default_duration
        self._index = 0
        self._turns_in_season = 0

    @property
    def current(self) -> SeasonDefinition:
        return self._seasons[self._index]

    @property
    def current_id(self) -> str:
        return self.current.id

    @property
    def turns_in_season(self) -> int:
        return self._turns_in_season

    def duration(self, season: SeasonDefinition | None = None) -> int:
        season = season or self.current
        return season.duration_turns or self._default_duration

    def reset(self) -> None:
        """Back to the first season."""
        self._index = 0
        self._turns_in_season = 0
        self._bus.emit(EventType.SEASON_CHANGED, season=self.current_id)

    def process_turn(self) -> str | None:
        """
        Count one turn against the current season.

        Returns:
            The new season id if the season rolled over, else None
        """
        self._turns_in_season += 1
        if self._turns_in_season < self.duration():
            return None
        return self._advance()

    def _advance(self) -> str:
        previous = self.current_id
        self._index = (self._index + 1) % len(self._seasons)
        self._turns_in_season = 0

        logger.info(f"Season changed: {previous} -> {self.current_id}")
        self._bus.emit(EventType.SEASON_CHANGED, season=self.current_id, previous=previous)
        return self.current_id

    def season_modifiers(self) -> dict[str, float]:
        """The current season's effect map (copy)."""
        return dict(self.current.effects)

    def progress(self) -> float:
        """Fraction of the current season already elapsed, 0..1."""
        return self._turns_in_season / self.duration()

    def snapshot(self) -> SeasonState:
        return SeasonState(
            current_season_index=self._index,
            turns_in_current_season=self._turns_in_season,
        )

    def load(self, state: SeasonState) -> None:
        if state.current_season_index >= len(self._seasons):
            raise CorruptSaveError(
                f"Season index {state.current_season_index} out of range "
                f"({len(self._seasons)} seasons)"
            )
        self._index = state.current_season_index
        self._turns_in_season = state.turns_in_current_season
