"""
Game configuration.

Tunables live in a GameConfig model. load_config() reads a JSON or YAML
file and merges it over the defaults; a missing or unreadable file yields
the defaults.
"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class ConsumptionRates(BaseModel):
    food_per_villager: float = Field(default=1, gt=0)


class StartingBuilding(BaseModel):
    """A building placed for free when a new game starts."""
    id: str
    x: int
    y: int


DEFAULT_STARTING_RESOURCES: dict[str, float] = {
    "food": 30,
    "wood": 15,
    "stone": 5,
    "gold": 0,
    "population": 5,
    "morale": 60,
}


class GameConfig(BaseModel):
    """Simulation tunables."""
    starting_resources: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_STARTING_RESOURCES)
    )
    consumption_rates: ConsumptionRates = Field(default_factory=ConsumptionRates)
    starvation_morale_penalty: float = 15
    season_duration_turns: int = Field(default=10, ge=1)
    event_check_chance: float = Field(default=0.3, ge=0.0, le=1.0)
    creature_spawn_chance: float = Field(default=0.1, ge=0.0, le=1.0)
    grace_period_turns: int = Field(default=3, ge=0)
    map_width: int = Field(default=12, ge=1)
    map_height: int = Field(default=10, ge=1)
    starting_buildings: list[StartingBuilding] = Field(
        default_factory=lambda: [StartingBuilding(id="villager_hut", x=5, y=4)]
    )
    save_version: str = "1.0"


def _read_mapping(path: Path) -> dict:
    """Read a JSON or YAML file into a dict, picking the parser by suffix."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    return data if isinstance(data, dict) else {}


def load_config(path: Path | str | None = None) -> GameConfig:
    """Load config from file, or return defaults if not found."""
    if path is None:
        return GameConfig()

    path = Path(path)
    if not path.exists():
        logger.info(f"No config at {path}, using defaults")
        return GameConfig()

    try:
        saved = _read_mapping(path)
        # Merge with defaults to handle missing keys
        merged = GameConfig().model_dump()
        merged.update(saved)
        return GameConfig.model_validate(merged)
    except (json.JSONDecodeError, yaml.YAMLError, OSError, ValidationError) as e:
        logger.warning(f"Unreadable config {path}, using defaults: {e}")
        return GameConfig()


def generate_default_map(width: int = 12, height: int = 10) -> list[list[str]]:
    """
    Build the default terrain grid, indexed [y][x].

    The two bottom rows are water, the top row and the left/right columns
    are mountains, everything else is grass.
    """
    world: list[list[str]] = []
    for y in range(height):
        row = []
        for x in range(width):
            if y >= height - 2:
                row.append("water")
            elif x == 0 or x == width - 1 or y == 0:
                row.append("mountain")
            else:
                row.append("grass")
        world.append(row)
    return world
