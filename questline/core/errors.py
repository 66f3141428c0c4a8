"""
Domain errors raised by the progression engine.

Every error derives from ProgressionError so boundary layers can catch the
whole family with a single clause.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for all progression engine errors."""


class InvalidScoreError(ProgressionError, ValueError):
    """A rubric sub-score is missing or outside its documented bound."""

    def __init__(self, field: str, value: object, bounds: tuple[int, int] | None = None):
        self.field = field
        self.value = value
        self.bounds = bounds
        if bounds is None:
            message = f"Invalid sub-score for '{field}': {value!r}"
        else:
            message = f"Sub-score '{field}'={value!r} outside [{bounds[0]}, {bounds[1]}]"
        super().__init__(message)


class QuestAlreadyActiveError(ProgressionError):
    """A quest was started while another one is still unresolved."""

    def __init__(self, learner_id: str, quest_id: str):
        self.learner_id = learner_id
        self.quest_id = quest_id
        super().__init__(f"Learner '{learner_id}' already has active quest {quest_id}")


class NoActiveQuestError(ProgressionError):
    """A quest operation was requested while the learner is idle."""

    def __init__(self, learner_id: str):
        self.learner_id = learner_id
        super().__init__(f"Learner '{learner_id}' has no active quest")


class PersistenceError(ProgressionError):
    """A profile could not be loaded or saved."""


class UnknownLearnerError(ProgressionError, LookupError):
    """A read-only query named a learner the store has never seen."""

    def __init__(self, learner_id: str):
        self.learner_id = learner_id
        super().__init__(f"No profile stored for learner '{learner_id}'")
