"""
Progression engine components.

- scoring: ScoringEngine, LevelCurve (rubric -> XP -> level)
- difficulty: DifficultyController (rolling success window per topic)
- achievements: AchievementEngine and the default achievement catalogue
- session: ProgressionSession (per-learner quest state machine)
- service: ProgressionService (locking, session handles, read-only queries)
"""

from questline.engine.achievements import (
    ACHIEVEMENTS,
    AchievementContext,
    AchievementDefinition,
    AchievementDisplay,
    AchievementEngine,
)
from questline.engine.difficulty import DifficultyController, WindowStats
from questline.engine.scoring import LevelCurve, ScoringEngine, score
from questline.engine.service import ProgressionService
from questline.engine.session import ProgressionSession, SessionState

__all__ = [
    "ACHIEVEMENTS",
    "AchievementContext",
    "AchievementDefinition",
    "AchievementDisplay",
    "AchievementEngine",
    "DifficultyController",
    "WindowStats",
    "LevelCurve",
    "ScoringEngine",
    "score",
    "ProgressionService",
    "ProgressionSession",
    "SessionState",
]
