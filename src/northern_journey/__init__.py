"""
Northern Journey - turn-based village survival simulation engine.

The TurnOrchestrator sequences the sub-systems (resources, seasons,
buildings, events, dialogue, creatures) once per turn. Content tables come
from a Catalog; tunables from a GameConfig.
"""

from .config import GameConfig, generate_default_map, load_config
from .content import Catalog, default_catalog
from .errors import CorruptSaveError, EngineError, NotFoundError, RejectedError
from .state import EventBus, EventType, GameSnapshot, JsonSnapshotStore, MemorySnapshotStore, TurnResult
from .systems import TurnOrchestrator, TurnPhase
from .tools import Dice

__version__ = "0.1.0"

__all__ = [
    "GameConfig",
    "generate_default_map",
    "load_config",
    "Catalog",
    "default_catalog",
    "CorruptSaveError",
    "EngineError",
    "NotFoundError",
    "RejectedError",
    "EventBus",
    "EventType",
    "GameSnapshot",
    "JsonSnapshotStore",
    "MemorySnapshotStore",
    "TurnResult",
    "TurnOrchestrator",
    "TurnPhase",
    "Dice",
]
