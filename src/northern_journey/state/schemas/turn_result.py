"""
TurnResult schema: the output of a processed turn.

Returned by TurnOrchestrator.end_turn(). The presentation layer can
render from it directly instead of replaying notifications.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .snapshot import GameSnapshot


class TurnResult(BaseModel):
    """
    Everything that happened during one end_turn() call.

    season and era are the values the turn was simulated under, i.e.
    before the season clock advanced.
    """
    turn_number: int
    season: str
    era: str

    # Production / consumption
    production: dict[str, float] = Field(default_factory=dict)
    food_consumed: float = 0
    starvation_deaths: int = 0

    # Events
    season_changed_to: str | None = None
    triggered_events: list[str] = Field(default_factory=list)
    pending_events: list[str] = Field(default_factory=list)
    in_grace_period: bool = False

    # Creatures
    spawned_creature: str | None = None

    # End of run
    game_over_reason: str | None = None

    snapshot: GameSnapshot
    resolved_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_game_over(self) -> bool:
        return self.game_over_reason is not None
