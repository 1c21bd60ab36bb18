"""
Random source for Northern Journey.

Every roll in the engine (event draws, risk checks, skill checks, creature
spawns) goes through a Dice instance injected at construction time, so a
seeded Dice makes a whole run reproducible.
"""

import logging
import random
from dataclasses import dataclass
from typing import Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Dice:
    """
    Seedable wrapper around random.Random.

    Pass a seed for reproducible tests, or an existing Random to share
    a stream.
    """

    def __init__(self, seed: int | None = None, rng: random.Random | None = None):
        self._rng = rng if rng is not None else random.Random(seed)

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        return self._rng.random()

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def randint(self, low: int, high: int) -> int:
        """Inclusive on both ends."""
        return self._rng.randint(low, high)

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self._rng.randrange(len(items))]

    def chance(self, probability: float) -> bool:
        """Bernoulli trial that succeeds with the given probability."""
        return self.random() < probability

    def risk_survived(self, risk: float) -> bool:
        """A risky choice succeeds iff random() >= risk."""
        return self.random() >= risk


@dataclass
class SkillCheckResult:
    """Result of a skill check."""
    skill: str
    roll: float  # uniform(0, 10) + level
    level: int
    threshold: float
    success: bool

    @property
    def margin(self) -> float:
        """Positive = over threshold, negative = under."""
        return self.roll - self.threshold


def derived_player_level(population: float) -> int:
    """The village stands in for a character sheet: one level per five villagers."""
    return int(population // 5)


def skill_check(dice: Dice, requirement: dict[str, float], population: float) -> SkillCheckResult:
    """
    Roll a single-skill check.

    Only the first entry of the requirement map is used:
        roll = uniform(0, 10) + population // 5
        success iff roll >= threshold
    """
    if not requirement:
        raise ValueError("skill_check requires at least one skill entry")

    skill, threshold = next(iter(requirement.items()))
    level = derived_player_level(population)
    roll = dice.random() * 10 + level
    success = roll >= threshold

    logger.debug(f"Skill check {skill}: {roll:.2f} vs {threshold} -> {'pass' if success else 'fail'}")

    return SkillCheckResult(
        skill=skill,
        roll=roll,
        level=level,
        threshold=threshold,
        success=success,
    )
