"""Shared tools for the simulation systems."""

from .dice import Dice, SkillCheckResult, derived_player_level, skill_check

__all__ = [
    "Dice",
    "SkillCheckResult",
    "derived_player_level",
    "skill_check",
]
