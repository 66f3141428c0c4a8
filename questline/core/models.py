"""
Learner progression records.

Statically shaped pydantic models for everything the engine persists or
returns at its boundary. Persisted records forbid unknown keys so a typo in a
stored document fails loudly on load instead of being silently dropped.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from questline.core.errors import InvalidScoreError
from questline.core.tiers import DifficultyTier, LanguageLevel, OutcomeKind


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


# =============================================================================
# Rubric
# =============================================================================


# Inclusive bounds per rubric dimension; the maxima sum to 100.
RUBRIC_BOUNDS: dict[str, tuple[int, int]] = {
    "code_quality": (0, 25),
    "problem_solving": (0, 30),
    "concept_understanding": (0, 20),
    "best_practices": (0, 15),
    "creativity": (0, 10),
}

# camelCase names used by upstream analyzers
_RUBRIC_ALIASES = {
    "codeQuality": "code_quality",
    "problemSolving": "problem_solving",
    "conceptUnderstanding": "concept_understanding",
    "bestPractices": "best_practices",
}


class SubScores(BaseModel):
    """
    Five-dimension rubric produced by the external quality analyzer.

    Bounds are not enforced here; ScoringEngine.score rejects out-of-range
    values with InvalidScoreError naming the field.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    code_quality: int
    problem_solving: int
    concept_understanding: int
    best_practices: int
    creativity: int

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SubScores:
        """
        Build a rubric from a loosely typed mapping (snake_case or camelCase keys).

        Raises:
            InvalidScoreError: On a missing, unknown or non-integer field
        """
        values: dict[str, int] = {}
        for key, raw in data.items():
            name = _RUBRIC_ALIASES.get(key, key)
            if name not in RUBRIC_BOUNDS:
                raise InvalidScoreError(key, raw)
            if isinstance(raw, bool) or not isinstance(raw, int | float):
                raise InvalidScoreError(name, raw, RUBRIC_BOUNDS[name])
            if isinstance(raw, float) and not raw.is_integer():
                raise InvalidScoreError(name, raw, RUBRIC_BOUNDS[name])
            values[name] = int(raw)

        for name, bounds in RUBRIC_BOUNDS.items():
            if name not in values:
                raise InvalidScoreError(name, None, bounds)
        return cls(**values)

    @property
    def total(self) -> int:
        """Base XP: plain sum of the five dimensions."""
        return sum(self.as_dict().values())

    @property
    def is_perfect(self) -> bool:
        return all(getattr(self, name) == hi for name, (_, hi) in RUBRIC_BOUNDS.items())

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in RUBRIC_BOUNDS}


# =============================================================================
# Quests
# =============================================================================


class Quest(BaseModel):
    """An issued challenge awaiting resolution."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    topic: str
    language: str
    difficulty_tier: DifficultyTier
    issued_at: datetime = Field(default_factory=utcnow)
    expected_duration_seconds: int = Field(gt=0)
    hints_used: int = Field(default=0, ge=0)
    hint_xp_spent: int = Field(default=0, ge=0)


class QuestOutcome(BaseModel):
    """Immutable record of a resolved quest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    quest_id: str
    topic: str
    language: str
    difficulty_tier: DifficultyTier
    sub_scores: SubScores | None = None
    hints_used: int = Field(default=0, ge=0)
    outcome: OutcomeKind
    timestamp: datetime = Field(default_factory=utcnow)
    awarded_xp: int = Field(default=0, ge=0)
    penalty_xp: int = Field(default=0, ge=0)
    hint_xp_spent: int = Field(default=0, ge=0)
    duration_seconds: float | None = Field(default=None, ge=0)
    expected_duration_seconds: int | None = None
    design_patterns: tuple[str, ...] = ()

    @property
    def solved(self) -> bool:
        return self.outcome is OutcomeKind.SOLVED


# =============================================================================
# Profile
# =============================================================================


class LanguageProgress(BaseModel):
    """Per-language rank and experience."""

    model_config = ConfigDict(extra="forbid")

    level: LanguageLevel = LanguageLevel.BEGINNER
    xp: int = Field(default=0, ge=0)
    last_activity: datetime = Field(default_factory=utcnow)


class ProfileCounters(BaseModel):
    """Lifetime aggregates; unaffected by history truncation."""

    model_config = ConfigDict(extra="forbid")

    quests_solved: int = 0
    quests_abandoned: int = 0
    hints_used: int = 0
    perfect_solves: int = 0
    languages: set[str] = Field(default_factory=set)
    design_patterns: set[str] = Field(default_factory=set)


class LearnerProfile(BaseModel):
    """
    Complete progression state for one learner.

    ``version`` is the store revision this copy was loaded at; stores refuse
    to save a copy whose version is stale.
    """

    model_config = ConfigDict(extra="forbid")

    learner_id: str = Field(min_length=1)
    level: int = Field(default=0, ge=0)
    total_xp: int = Field(default=0, ge=0)
    per_language: dict[str, LanguageProgress] = Field(default_factory=dict)
    achievements: set[str] = Field(default_factory=set)
    active_quest: Quest | None = None
    history: list[QuestOutcome] = Field(default_factory=list)
    counters: ProfileCounters = Field(default_factory=ProfileCounters)
    version: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def history_for(self, topic: str | None = None) -> list[QuestOutcome]:
        """Retained outcomes, optionally limited to one topic, oldest first."""
        if topic is None:
            return list(self.history)
        return [entry for entry in self.history if entry.topic == topic]

    def trim_history(self, limit: int) -> None:
        """Keep only the most recent ``limit`` outcomes."""
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]


# =============================================================================
# Boundary payloads
# =============================================================================


class AchievementUnlock(BaseModel):
    """Notification payload for a newly unlocked achievement."""

    id: str
    name: str
    description: str
    icon: str


class HintPayload(BaseModel):
    """Result of a hint request; the hint text itself is rendered upstream."""

    quest_id: str
    topic: str
    difficulty_tier: DifficultyTier
    hint_number: int
    xp_cost: int
    total_xp: int


class SubmissionResult(BaseModel):
    """Everything the dialogue layer needs to narrate a solved quest."""

    quest_id: str
    awarded_xp: int
    total_xp: int
    new_level: int
    leveled_up: bool
    language: str
    language_level: LanguageLevel
    unlocked_achievements: list[AchievementUnlock] = Field(default_factory=list)
    next_recommended_tier: DifficultyTier


class AbandonResult(BaseModel):
    """Outcome of an abandoned quest."""

    quest_id: str
    penalty_xp: int
    total_xp: int
    next_recommended_tier: DifficultyTier
