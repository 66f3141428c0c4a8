"""
Scoring Engine: rubric sub-scores to experience, experience to levels.

Formula:
    base_xp = code_quality + problem_solving + concept_understanding
              + best_practices + creativity            (0-100)
    awarded_xp = round(base_xp * multiplier(tier))     (ties away from zero)

Level thresholds are configuration, not constants: LevelCurve accepts any
strictly increasing threshold table, with a power-law default.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from questline.config import Settings
from questline.core.errors import InvalidScoreError
from questline.core.models import RUBRIC_BOUNDS, SubScores
from questline.core.tiers import DifficultyTier, LanguageLevel


def validate_sub_scores(sub_scores: SubScores) -> None:
    """
    Check every rubric dimension against its inclusive bound.

    Raises:
        InvalidScoreError: Naming the first offending field
    """
    for name, (low, high) in RUBRIC_BOUNDS.items():
        value = getattr(sub_scores, name)
        if not low <= value <= high:
            raise InvalidScoreError(name, value, (low, high))


def round_half_away(value: Decimal) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def score(sub_scores: SubScores, tier: DifficultyTier) -> int:
    """
    Compute the XP award for a solved quest.

    Args:
        sub_scores: Rubric from the quality analyzer
        tier: Difficulty tier the quest was issued at

    Returns:
        Awarded XP (always >= 0)

    Raises:
        InvalidScoreError: If any sub-score is out of range
    """
    validate_sub_scores(sub_scores)
    multiplier = Decimal(str(DifficultyTier(tier).multiplier))
    return round_half_away(Decimal(sub_scores.total) * multiplier)


class LevelCurve:
    """
    XP-to-level mapping.

    ``thresholds[n]`` is the total XP needed to reach level ``n``; level 0
    always starts at 0 XP.
    """

    def __init__(self, thresholds: Sequence[int]):
        if not thresholds or thresholds[0] != 0:
            raise ValueError("thresholds must start at 0")
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError("thresholds must be strictly increasing")
        self.thresholds: tuple[int, ...] = tuple(int(t) for t in thresholds)

    @classmethod
    def power(cls, base_xp: int = 100, exponent: float = 1.5, max_level: int = 100) -> LevelCurve:
        """Level n requires round(base_xp * n ** exponent) XP."""
        thresholds = [0]
        for n in range(1, max_level + 1):
            thresholds.append(max(thresholds[-1] + 1, round(base_xp * n**exponent)))
        return cls(thresholds)

    @property
    def max_level(self) -> int:
        return len(self.thresholds) - 1

    def level_for(self, total_xp: int) -> int:
        """Highest level whose threshold is <= total_xp."""
        if total_xp < 0:
            return 0
        return bisect_right(self.thresholds, total_xp) - 1

    def xp_for_level(self, level: int) -> int | None:
        """Threshold of ``level``; None beyond the top of the curve."""
        if level < 0:
            return 0
        if level > self.max_level:
            return None
        return self.thresholds[level]


class ScoringEngine:
    """
    Scoring, leveling and language-rank rules bundled with their configuration.

    All methods are pure.
    """

    def __init__(
        self,
        curve: LevelCurve | None = None,
        intermediate_language_xp: int = 500,
        advanced_language_xp: int = 2000,
    ):
        if advanced_language_xp <= intermediate_language_xp:
            raise ValueError("advanced_language_xp must exceed intermediate_language_xp")
        self.curve = curve or LevelCurve.power()
        self.intermediate_language_xp = intermediate_language_xp
        self.advanced_language_xp = advanced_language_xp

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoringEngine:
        return cls(
            curve=LevelCurve.power(
                base_xp=settings.level_base_xp,
                exponent=settings.level_exponent,
                max_level=settings.max_level,
            ),
            intermediate_language_xp=settings.intermediate_language_xp,
            advanced_language_xp=settings.advanced_language_xp,
        )

    def score(self, sub_scores: SubScores, tier: DifficultyTier) -> int:
        return score(sub_scores, tier)

    def level_for(self, total_xp: int, current_level: int = 0) -> int:
        """Level for ``total_xp``; never lower than ``current_level``."""
        return max(current_level, self.curve.level_for(total_xp))

    def language_level_for(
        self, xp: int, current: LanguageLevel = LanguageLevel.BEGINNER
    ) -> LanguageLevel:
        """Language rank for ``xp``; never lower than ``current``."""
        if xp >= self.advanced_language_xp:
            derived = LanguageLevel.ADVANCED
        elif xp >= self.intermediate_language_xp:
            derived = LanguageLevel.INTERMEDIATE
        else:
            derived = LanguageLevel.BEGINNER
        return derived if derived.rank > current.rank else current
