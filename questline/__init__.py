"""
Questline - progression engine for a gamified coding tutor.

Tracks learner profiles across sessions, scores rubric-graded solutions into
experience, unlocks achievements and adapts quest difficulty per topic.

Usage:
    from questline import ProgressionService

    service = ProgressionService()
    session = service.session("ada")
    quest = session.start_quest("python")
    result = session.submit_solution({"codeQuality": 20, "problemSolving": 25,
                                      "conceptUnderstanding": 15, "bestPractices": 10,
                                      "creativity": 5})
"""

from questline.core import (
    DifficultyTier,
    InvalidScoreError,
    LearnerProfile,
    NoActiveQuestError,
    PersistenceError,
    ProgressionError,
    Quest,
    QuestAlreadyActiveError,
    QuestOutcome,
    SubScores,
)
from questline.engine import ProgressionService, ProgressionSession

__version__ = "0.3.0"

__all__ = [
    "DifficultyTier",
    "LearnerProfile",
    "Quest",
    "QuestOutcome",
    "SubScores",
    "ProgressionService",
    "ProgressionSession",
    "ProgressionError",
    "InvalidScoreError",
    "NoActiveQuestError",
    "PersistenceError",
    "QuestAlreadyActiveError",
]
