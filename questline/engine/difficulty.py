"""
Adaptive difficulty controller.

Keeps a fixed-capacity window of recent outcomes per topic and recommends
the tier of the next quest:

- success rate above the escalation threshold (0.85) -> one tier harder
- success rate below the de-escalation threshold (0.60) -> one tier easier
- otherwise hold

A solve that took longer than ``slow_solve_factor`` x the expected duration
still counts as solved, but not toward escalation.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from loguru import logger

from questline.config import Settings
from questline.core.models import QuestOutcome
from questline.core.tiers import DifficultyTier, OutcomeKind


@dataclass(frozen=True)
class WindowEntry:
    """One observed outcome inside a topic window."""

    tier: DifficultyTier
    solved: bool
    slow: bool = False

    @property
    def counts_for_escalation(self) -> bool:
        return self.solved and not self.slow


@dataclass(frozen=True)
class WindowStats:
    """Read-only summary of a topic window."""

    topic: str
    size: int
    capacity: int
    solved: int
    fast_solved: int
    current_tier: DifficultyTier | None

    @property
    def success_rate(self) -> float:
        return self.solved / self.size if self.size else 0.0

    @property
    def escalation_rate(self) -> float:
        return self.fast_solved / self.size if self.size else 0.0


class DifficultyController:
    """
    Rolling success-rate tracker for one learner.

    State is per topic; one controller instance belongs to exactly one
    learner and is rebuilt from that learner's retained history with
    ``from_history``.
    """

    def __init__(
        self,
        window_size: int = 10,
        escalate_threshold: float = 0.85,
        deescalate_threshold: float = 0.60,
        slow_solve_factor: float = 2.0,
    ):
        if window_size <= 0:
            raise ValueError("window_size must be positive")
        if not 0.0 <= deescalate_threshold < escalate_threshold <= 1.0:
            raise ValueError("thresholds must satisfy 0 <= deescalate < escalate <= 1")
        if slow_solve_factor <= 1.0:
            raise ValueError("slow_solve_factor must be greater than 1")

        self.window_size = window_size
        self.escalate_threshold = escalate_threshold
        self.deescalate_threshold = deescalate_threshold
        self.slow_solve_factor = slow_solve_factor
        self._windows: dict[str, deque[WindowEntry]] = {}
        self._current: dict[str, DifficultyTier] = {}
        self._last_tier: DifficultyTier | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> DifficultyController:
        return cls(
            window_size=settings.window_size,
            escalate_threshold=settings.escalate_threshold,
            deescalate_threshold=settings.deescalate_threshold,
            slow_solve_factor=settings.slow_solve_factor,
        )

    @classmethod
    def from_history(
        cls, history: Iterable[QuestOutcome], **kwargs
    ) -> DifficultyController:
        """Fresh controller with ``history`` replayed into it."""
        controller = cls(**kwargs)
        controller.replay(history)
        return controller

    def replay(self, history: Iterable[QuestOutcome]) -> None:
        """Observe retained outcomes, oldest first."""
        for entry in history:
            self.observe(
                entry.topic,
                entry.difficulty_tier,
                entry.outcome,
                duration_seconds=entry.duration_seconds,
                expected_duration_seconds=entry.expected_duration_seconds,
            )

    # ----- observation -------------------------------------------------

    def is_slow(self, duration_seconds: float | None, expected_duration_seconds: int | None) -> bool:
        if duration_seconds is None or not expected_duration_seconds:
            return False
        return duration_seconds > self.slow_solve_factor * expected_duration_seconds

    def observe(
        self,
        topic: str,
        tier: DifficultyTier,
        outcome: OutcomeKind,
        duration_seconds: float | None = None,
        expected_duration_seconds: int | None = None,
    ) -> None:
        """Append an outcome to the topic window, evicting the oldest when full."""
        tier = DifficultyTier(tier)
        solved = OutcomeKind(outcome) is OutcomeKind.SOLVED
        entry = WindowEntry(
            tier=tier,
            solved=solved,
            slow=solved and self.is_slow(duration_seconds, expected_duration_seconds),
        )
        window = self._windows.setdefault(topic, deque(maxlen=self.window_size))
        window.append(entry)
        self._current[topic] = tier
        self._last_tier = tier

    # ----- queries -----------------------------------------------------

    def current_tier(self, topic: str) -> DifficultyTier | None:
        return self._current.get(topic)

    @property
    def last_tier(self) -> DifficultyTier | None:
        """Tier of the most recent outcome in any topic."""
        return self._last_tier

    def stats(self, topic: str) -> WindowStats:
        window = self._windows.get(topic, ())
        return WindowStats(
            topic=topic,
            size=len(window),
            capacity=self.window_size,
            solved=sum(1 for e in window if e.solved),
            fast_solved=sum(1 for e in window if e.counts_for_escalation),
            current_tier=self._current.get(topic),
        )

    def recommend(self, topic: str) -> DifficultyTier:
        """
        Tier for the next quest in ``topic``; at most one step from the current tier.

        A topic with an empty window starts at the learner's last-used tier
        from any topic, or newbie for a learner with no retained history.
        """
        stats = self.stats(topic)
        if stats.size == 0:
            return self._last_tier or DifficultyTier.NEWBIE
        current = stats.current_tier or DifficultyTier.NEWBIE

        if stats.escalation_rate > self.escalate_threshold:
            recommended = current.step_up()
        elif stats.success_rate < self.deescalate_threshold:
            recommended = current.step_down()
        else:
            recommended = current

        if recommended is not current:
            logger.debug(
                f"Difficulty for '{topic}': {current.value} -> {recommended.value} "
                f"(success={stats.success_rate:.2f}, escalation={stats.escalation_rate:.2f})"
            )
        return recommended
