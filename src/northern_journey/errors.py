"""Exceptions raised by the simulation systems."""


class EngineError(Exception):
    """Base class for engine errors."""


class NotFoundError(EngineError):
    """A catalog or runtime lookup found nothing."""

    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"Unknown {kind}: {item_id}")


class RejectedError(EngineError):
    """A player action was refused. `reason` is broadcast on action:rejected."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class CorruptSaveError(EngineError):
    """A snapshot could not be restored."""
