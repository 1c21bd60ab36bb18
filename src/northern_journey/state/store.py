"""
Snapshot storage abstraction.

The engine only produces and consumes a serializable state blob; where it
ends up is the store's business. Separates persistence from simulation
for testability.
"""

import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class SnapshotStore(Protocol):
    """
    Abstract storage interface for save slots.

    Implementations:
    - JsonSnapshotStore: File-based persistence (production)
    - MemorySnapshotStore: In-memory storage (testing)

    Stores hand back raw dicts; validation is the orchestrator's job so
    that a corrupt save can fall back to a new game.
    """

    def save(self, data: dict) -> None:
        """Persist a snapshot."""
        ...

    def load(self) -> dict | None:
        """Load the snapshot. Returns None if missing or unreadable."""
        ...

    def exists(self) -> bool:
        """Check if a snapshot exists."""
        ...

    def delete(self) -> bool:
        """Delete the snapshot. Returns True if deleted."""
        ...


class JsonSnapshotStore:
    """
    Single-slot file storage using JSON.

    Keeps the previous save as <name>.json.bak.
    """

    def __init__(self, path: Path | str = "saves/northernjourney_save.json"):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def save(self, data: dict) -> None:
        """Save snapshot to JSON file with backup."""
        if self.path.exists():
            backup = self.path.with_suffix(".json.bak")
            backup.write_text(self.path.read_text(encoding="utf-8"), encoding="utf-8")

        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def load(self) -> dict | None:
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Unreadable save file {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Save file {self.path} does not hold an object")
            return None
        return data

    def exists(self) -> bool:
        return self.path.exists()

    def delete(self) -> bool:
        if self.path.exists():
            self.path.unlink()
            return True
        return False


class MemorySnapshotStore:
    """
    In-memory snapshot storage for testing.

    No file I/O - the last saved dict lives in memory.
    """

    def __init__(self, data: dict | None = None):
        self.data: dict | None = data
        self.save_count = 0

    def save(self, data: dict) -> None:
        self.data = data
        self.save_count += 1

    def load(self) -> dict | None:
        return self.data

    def exists(self) -> bool:
        return self.data is not None

    def delete(self) -> bool:
        if self.data is None:
            return False
        self.data = None
        return True
