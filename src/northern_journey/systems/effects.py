"""
Effect maps shared by events and dialogue.

An effect map is {key: value}. Two keys are special:
    event_flag     -> the value is added to the flag set
    lore_unlocked  -> broadcast on lore:unlocked, no state change
Every other key is a ledger delta.
"""

import logging
from typing import Any

from ..state.event_bus import EventBus, EventType
from ..state.schema import EVENT_FLAG_EFFECT, LORE_EFFECT, EventFlags
from .resources import ResourceLedger

logger = logging.getLogger(__name__)


REPUTATION_SUFFIX = "_reputation"


def apply_effects(
    effects: dict[str, Any] | None,
    ledger: ResourceLedger,
    flags: EventFlags,
    bus: EventBus,
    source: str | None = None,
    ignore_reputation: bool = False,
) -> None:
    """
    Apply an effect map.

    Args:
        effects: The map to apply (None or empty is a no-op)
        ledger: Receives the plain resource deltas
        flags: Receives event_flag writes
        bus: Carries lore:unlocked notifications
        source: Event or dialogue id, included in notifications
        ignore_reputation: Skip *_reputation keys (no faction system exists)
    """
    if not effects:
        return

    for key, value in effects.items():
        if key == EVENT_FLAG_EFFECT:
            flags.add(str(value))
        elif key == LORE_EFFECT:
            bus.emit(EventType.LORE_UNLOCKED, lore=value, source=source)
        elif ignore_reputation and key.endswith(REPUTATION_SUFFIX):
            logger.debug(f"Ignoring reputation effect {key}={value}")
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            ledger.add(key, value)
        else:
            logger.warning(f"Non-numeric effect {key}={value!r} from {source}, skipped")
