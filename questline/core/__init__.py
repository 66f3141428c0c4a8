"""
Core Module - Shared domain models, tiers and errors.

Components:
- tiers: DifficultyTier ladder with XP multipliers, LanguageLevel, OutcomeKind
- models: LearnerProfile, Quest, QuestOutcome, SubScores and boundary payloads
- errors: ProgressionError hierarchy

Engine and store modules import from questline.core rather than redefining
these records.
"""

from questline.core.errors import (
    InvalidScoreError,
    NoActiveQuestError,
    PersistenceError,
    ProgressionError,
    QuestAlreadyActiveError,
    UnknownLearnerError,
)
from questline.core.models import (
    RUBRIC_BOUNDS,
    AbandonResult,
    AchievementUnlock,
    HintPayload,
    LanguageProgress,
    LearnerProfile,
    ProfileCounters,
    Quest,
    QuestOutcome,
    SubmissionResult,
    SubScores,
    utcnow,
)
from questline.core.tiers import TIER_MULTIPLIERS, DifficultyTier, LanguageLevel, OutcomeKind

__all__ = [
    # Tiers
    "DifficultyTier",
    "LanguageLevel",
    "OutcomeKind",
    "TIER_MULTIPLIERS",
    # Records
    "LearnerProfile",
    "LanguageProgress",
    "ProfileCounters",
    "Quest",
    "QuestOutcome",
    "SubScores",
    "RUBRIC_BOUNDS",
    "utcnow",
    # Payloads
    "AbandonResult",
    "AchievementUnlock",
    "HintPayload",
    "SubmissionResult",
    # Errors
    "ProgressionError",
    "InvalidScoreError",
    "QuestAlreadyActiveError",
    "NoActiveQuestError",
    "PersistenceError",
    "UnknownLearnerError",
]
