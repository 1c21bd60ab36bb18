"""
GameSnapshot schema: the persisted aggregate of all sub-system state.

Keys follow the save format consumed by the presentation layer
(camelCase where the format uses it). Definitions are never embedded;
buildings and creatures carry definition ids that are re-attached by
lookup on load.
"""

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..schema import Building, Creature, EventHistoryEntry


SNAPSHOT_VERSION = "1.0"


def now_ms() -> int:
    return int(time.time() * 1000)


class EventsState(BaseModel):
    history: list[EventHistoryEntry] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)


class SeasonState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_season_index: int = Field(default=0, ge=0, alias="currentSeasonIndex")
    turns_in_current_season: int = Field(default=0, ge=0, alias="turnsInCurrentSeason")


class GameSnapshot(BaseModel):
    """
    Complete simulation state at a point in time.

    Serialize with model_dump(by_alias=True) to get the on-disk format.
    """
    model_config = ConfigDict(populate_by_name=True)

    version: str = SNAPSHOT_VERSION
    timestamp: int = Field(default_factory=now_ms)
    resources: dict[str, Any] = Field(default_factory=dict)
    buildings: list[Building] = Field(default_factory=list)
    events: EventsState = Field(default_factory=EventsState)
    season: SeasonState = Field(default_factory=SeasonState)
    creatures: list[Creature] = Field(default_factory=list)

    def to_dict(self) -> dict:
        """On-disk representation."""
        return self.model_dump(mode="json", by_alias=True)

    def state_equals(self, other: "GameSnapshot") -> bool:
        """Structural equality ignoring the timestamp."""
        return self.model_dump(exclude={"timestamp"}) == other.model_dump(exclude={"timestamp"})
