"""
Content catalog for Northern Journey.

Static tables (resources, buildings, creatures, events, seasons, dialogue
graphs) are supplied from outside the engine. The catalog validates them
and offers id lookups. Each table file holds a list under a key named
after the table, e.g. ``buildings: [...]``; dialogue files each hold one
graph.

Layout read by Catalog.from_directory():

    resources.yaml
    buildings.yaml
    creatures.yaml
    seasons.yaml
    events/random.yaml
    events/seasonal.yaml
    events/story.yaml
    dialogues/<graph_id>.yaml

Any of the above may be .json instead of .yaml.
"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from .errors import NotFoundError
from .state.schema import (
    BuildingDefinition,
    CreatureDefinition,
    DialogueGraph,
    EventCategory,
    EventDefinition,
    ResourceDefinition,
    SeasonDefinition,
)

logger = logging.getLogger(__name__)


# Packaged default content pack
DEFAULT_CONTENT_DIR = Path(__file__).parent / "data"

CONTENT_SUFFIXES = (".yaml", ".yml", ".json")


def read_content_file(path: Path):
    """Parse one JSON or YAML content file."""
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def _find_table(directory: Path, stem: str) -> Path | None:
    for suffix in CONTENT_SUFFIXES:
        candidate = directory / f"{stem}{suffix}"
        if candidate.exists():
            return candidate
    return None


def _load_table(directory: Path, stem: str, key: str) -> list[dict]:
    """Load the list stored under `key` in directory/<stem>.*; empty if missing."""
    path = _find_table(directory, stem)
    if path is None:
        logger.debug(f"No {stem} table in {directory}")
        return []

    data = read_content_file(path)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return data.get(key, [])
    return []


class Catalog(BaseModel):
    """All immutable content tables for one game."""
    resources: list[ResourceDefinition] = Field(default_factory=list)
    buildings: list[BuildingDefinition] = Field(default_factory=list)
    creatures: list[CreatureDefinition] = Field(default_factory=list)
    seasons: list[SeasonDefinition] = Field(default_factory=list)
    random_events: list[EventDefinition] = Field(default_factory=list)
    seasonal_events: list[EventDefinition] = Field(default_factory=list)
    story_events: list[EventDefinition] = Field(default_factory=list)
    dialogues: dict[str, DialogueGraph] = Field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_building(self, building_id: str) -> BuildingDefinition:
        for definition in self.buildings:
            if definition.id == building_id:
                return definition
        raise NotFoundError("building", building_id)

    def get_creature(self, creature_id: str) -> CreatureDefinition:
        for definition in self.creatures:
            if definition.id == creature_id:
                return definition
        raise NotFoundError("creature", creature_id)

    def get_resource(self, resource_id: str) -> ResourceDefinition | None:
        """Resource definitions are optional; unknown ids are unbounded."""
        for definition in self.resources:
            if definition.id == resource_id:
                return definition
        return None

    def get_event(self, event_id: str) -> EventDefinition:
        for event in self.all_events():
            if event.id == event_id:
                return event
        raise NotFoundError("event", event_id)

    def all_events(self) -> list[EventDefinition]:
        return [*self.story_events, *self.random_events, *self.seasonal_events]

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def from_directory(cls, path: Path | str) -> "Catalog":
        """
        Load every table from a content directory.

        Raises FileNotFoundError if the directory itself is missing and
        pydantic.ValidationError if a table fails validation.
        """
        root = Path(path)
        if not root.is_dir():
            raise FileNotFoundError(f"Content directory not found: {root}")

        events_dir = root / "events"

        def events(stem: str, category: EventCategory) -> list[dict]:
            # Category is implied by the file the event lives in
            return [
                {**entry, "category": category.value}
                for entry in _load_table(events_dir, stem, "events")
            ]

        dialogues: dict[str, DialogueGraph] = {}
        dialogues_dir = root / "dialogues"
        if dialogues_dir.is_dir():
            for dialogue_file in sorted(dialogues_dir.iterdir()):
                if dialogue_file.suffix.lower() not in CONTENT_SUFFIXES:
                    continue
                data = read_content_file(dialogue_file)
                data.setdefault("id", dialogue_file.stem)
                graph = DialogueGraph.model_validate(data)
                dialogues[graph.id] = graph

        catalog = cls.model_validate({
            "resources": _load_table(root, "resources", "resources"),
            "buildings": _load_table(root, "buildings", "buildings"),
            "creatures": _load_table(root, "creatures", "creatures"),
            "seasons": _load_table(root, "seasons", "seasons"),
            "random_events": events("random", EventCategory.RANDOM),
            "seasonal_events": events("seasonal", EventCategory.SEASONAL),
            "story_events": events("story", EventCategory.STORY),
            "dialogues": dialogues,
        })

        logger.info(
            f"Loaded catalog from {root}: {len(catalog.buildings)} buildings, "
            f"{len(catalog.all_events())} events, {len(catalog.dialogues)} dialogues"
        )
        return catalog


def default_catalog() -> Catalog:
    """The content pack shipped with the package."""
    return Catalog.from_directory(DEFAULT_CONTENT_DIR)
