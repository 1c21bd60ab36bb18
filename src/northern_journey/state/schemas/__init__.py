"""Serialized artifacts produced by the turn engine."""

from .snapshot import (
    SNAPSHOT_VERSION,
    EventsState,
    GameSnapshot,
    SeasonState,
    now_ms,
)
from .turn_result import TurnResult

__all__ = [
    "SNAPSHOT_VERSION",
    "EventsState",
    "GameSnapshot",
    "SeasonState",
    "now_ms",
    "TurnResult",
]
