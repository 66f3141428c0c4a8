"""
Difficulty tiers and language ranks.

Tiers are ordered; each carries the XP multiplier applied by the scoring
engine. Stepping is clamped at both ends so callers never leave the ladder.
"""

from __future__ import annotations

from enum import Enum


class DifficultyTier(str, Enum):
    """Five fixed challenge tiers, easiest first."""

    NEWBIE = "newbie"
    APPRENTICE = "apprentice"
    JOURNEYMAN = "journeyman"
    EXPERT = "expert"
    MASTER = "master"

    @property
    def rank(self) -> int:
        """Zero-based position on the ladder."""
        return _TIER_ORDER.index(self)

    @property
    def multiplier(self) -> float:
        """XP multiplier for quests issued at this tier."""
        return TIER_MULTIPLIERS[self]

    def step_up(self) -> DifficultyTier:
        """Next harder tier, capped at MASTER."""
        return _TIER_ORDER[min(self.rank + 1, len(_TIER_ORDER) - 1)]

    def step_down(self) -> DifficultyTier:
        """Next easier tier, floored at NEWBIE."""
        return _TIER_ORDER[max(self.rank - 1, 0)]

    @property
    def display_name(self) -> str:
        return self.value.title()


_TIER_ORDER: tuple[DifficultyTier, ...] = tuple(DifficultyTier)

TIER_MULTIPLIERS: dict[DifficultyTier, float] = {
    DifficultyTier.NEWBIE: 1.0,
    DifficultyTier.APPRENTICE: 1.5,
    DifficultyTier.JOURNEYMAN: 2.0,
    DifficultyTier.EXPERT: 2.5,
    DifficultyTier.MASTER: 3.0,
}


class LanguageLevel(str, Enum):
    """Per-language proficiency rank."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return list(LanguageLevel).index(self)


class OutcomeKind(str, Enum):
    """How a quest was resolved."""

    SOLVED = "solved"
    ABANDONED = "abandoned"
