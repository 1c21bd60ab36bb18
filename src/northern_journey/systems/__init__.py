"""
Simulation systems for Northern Journey.

Each system owns one slice of the game state and talks to the others only
through the orchestrator, which passes the values they need explicitly.
"""

from .resources import ResourceLedger
from .seasons import SeasonClock
from .buildings import BuildingRegistry
from .events import ChoiceOutcome, EventEngine
from .dialogue import DialogueEngine
from .creatures import CreatureDirector, InteractionType
from .turns import (
    MORALE_LOST,
    POPULATION_LOST,
    InvalidPhaseError,
    TurnError,
    TurnOrchestrator,
    TurnPhase,
)

__all__ = [
    "ResourceLedger",
    "SeasonClock",
    "BuildingRegistry",
    "ChoiceOutcome",
    "EventEngine",
    "DialogueEngine",
    "CreatureDirector",
    "InteractionType",
    # Turn engine
    "TurnOrchestrator",
    "TurnPhase",
    "TurnError",
    "InvalidPhaseError",
    "POPULATION_LOST",
    "MORALE_LOST",
]
