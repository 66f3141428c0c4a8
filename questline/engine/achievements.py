"""
Achievement Engine.

Achievements are a closed, static table: each entry pairs an id with a pure
predicate over an AchievementContext (retained history + lifetime counters)
and display metadata. The table is assembled once at import through the
``achievement`` decorator and never mutated afterwards.

Evaluation:
- already-held achievements are skipped, so re-evaluating an unchanged
  profile yields an empty set
- a predicate that raises is logged and counts as "not qualified" for that
  cycle; the remaining predicates still run
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from loguru import logger

from questline.core.models import AchievementUnlock, LearnerProfile, ProfileCounters, QuestOutcome
from questline.core.tiers import DifficultyTier


@dataclass(frozen=True)
class AchievementContext:
    """Read-only view handed to every predicate."""

    learner_id: str
    level: int
    total_xp: int
    history: tuple[QuestOutcome, ...]
    counters: ProfileCounters

    @classmethod
    def from_profile(cls, profile: LearnerProfile) -> AchievementContext:
        return cls(
            learner_id=profile.learner_id,
            level=profile.level,
            total_xp=profile.total_xp,
            history=tuple(profile.history),
            counters=profile.counters.model_copy(deep=True),
        )

    @property
    def latest(self) -> QuestOutcome | None:
        return self.history[-1] if self.history else None

    def trailing(self, predicate: Callable[[QuestOutcome], bool]) -> int:
        """Length of the run of most recent outcomes satisfying ``predicate``."""
        run = 0
        for entry in reversed(self.history):
            if not predicate(entry):
                break
            run += 1
        return run


Predicate = Callable[[AchievementContext], bool]


@dataclass(frozen=True)
class AchievementDisplay:
    name: str
    description: str
    icon: str


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    predicate: Predicate
    display: AchievementDisplay

    def to_unlock(self) -> AchievementUnlock:
        return AchievementUnlock(
            id=self.id,
            name=self.display.name,
            description=self.display.description,
            icon=self.display.icon,
        )


_REGISTRY: dict[str, AchievementDefinition] = {}


def achievement(
    achievement_id: str, name: str, description: str, icon: str
) -> Callable[[Predicate], Predicate]:
    """Register a predicate in the default catalogue."""

    def register(predicate: Predicate) -> Predicate:
        if achievement_id in _REGISTRY:
            raise ValueError(f"Duplicate achievement id: {achievement_id}")
        _REGISTRY[achievement_id] = AchievementDefinition(
            id=achievement_id,
            predicate=predicate,
            display=AchievementDisplay(name=name, description=description, icon=icon),
        )
        return predicate

    return register


# =============================================================================
# Default catalogue
# =============================================================================

SELF_RELIANT_STREAK = 5
COMEBACK_FAILURES = 3


@achievement("first_quest", "First Blood", "Solve your first quest", "🗡️")
def _first_quest(ctx: AchievementContext) -> bool:
    return ctx.counters.quests_solved >= 1


@achievement("quest_apprentice", "Quest Apprentice", "Solve 10 quests", "📜")
def _ten_quests(ctx: AchievementContext) -> bool:
    return ctx.counters.quests_solved >= 10


@achievement("quest_veteran", "Veteran Adventurer", "Solve 50 quests", "🛡️")
def _fifty_quests(ctx: AchievementContext) -> bool:
    return ctx.counters.quests_solved >= 50


@achievement("perfectionist", "Perfectionist", "Score full marks in every rubric dimension", "💯")
def _perfect(ctx: AchievementContext) -> bool:
    return ctx.counters.perfect_solves >= 1


@achievement("self_reliant", "Self-Reliant", "Solve 5 quests in a row without hints", "🔥")
def _no_hint_streak(ctx: AchievementContext) -> bool:
    return ctx.trailing(lambda e: e.solved and e.hints_used == 0) >= SELF_RELIANT_STREAK


@achievement("polyglot", "Polyglot", "Resolve quests in 3 different languages", "🌐")
def _polyglot(ctx: AchievementContext) -> bool:
    return len(ctx.counters.languages) >= 3


@achievement("master_challenger", "Master Challenger", "Solve a master-tier quest", "⚔️")
def _master_tier(ctx: AchievementContext) -> bool:
    return any(e.solved and e.difficulty_tier is DifficultyTier.MASTER for e in ctx.history)


@achievement("pattern_collector", "Pattern Collector", "Apply 5 distinct design patterns", "🧩")
def _patterns(ctx: AchievementContext) -> bool:
    return len(ctx.counters.design_patterns) >= 5


@achievement("comeback", "Comeback", "Solve a quest right after 3 unsolved ones", "🔄")
def _comeback(ctx: AchievementContext) -> bool:
    latest = ctx.latest
    if latest is None or not latest.solved:
        return False
    earlier = AchievementContext(
        learner_id=ctx.learner_id,
        level=ctx.level,
        total_xp=ctx.total_xp,
        history=ctx.history[:-1],
        counters=ctx.counters,
    )
    return earlier.trailing(lambda e: not e.solved) >= COMEBACK_FAILURES


@achievement("speed_demon", "Speed Demon", "Solve a quest in under half the expected time", "⚡")
def _speed(ctx: AchievementContext) -> bool:
    latest = ctx.latest
    if latest is None or not latest.solved:
        return False
    if latest.duration_seconds is None or not latest.expected_duration_seconds:
        return False
    return latest.duration_seconds * 2 <= latest.expected_duration_seconds


@achievement("curious_mind", "Curious Mind", "Ask for 10 hints", "💡")
def _hints(ctx: AchievementContext) -> bool:
    return ctx.counters.hints_used >= 10


@achievement("rising_star", "Rising Star", "Reach level 5", "⭐")
def _level_five(ctx: AchievementContext) -> bool:
    return ctx.level >= 5


ACHIEVEMENTS: Mapping[str, AchievementDefinition] = MappingProxyType(_REGISTRY)


# =============================================================================
# Engine
# =============================================================================


class AchievementEngine:
    """Evaluates a fixed catalogue against learner profiles."""

    def __init__(self, catalogue: Mapping[str, AchievementDefinition] | None = None):
        self._catalogue: Mapping[str, AchievementDefinition] = MappingProxyType(
            dict(ACHIEVEMENTS if catalogue is None else catalogue)
        )

    @property
    def catalogue(self) -> Mapping[str, AchievementDefinition]:
        return self._catalogue

    def evaluate(self, profile: LearnerProfile) -> frozenset[str]:
        """
        Ids of achievements the profile newly qualifies for.

        Args:
            profile: Profile to evaluate (not modified)

        Returns:
            Ids not yet present in ``profile.achievements`` whose predicate holds
        """
        context = AchievementContext.from_profile(profile)
        unlocked: set[str] = set()
        for definition in self._catalogue.values():
            if definition.id in profile.achievements:
                continue
            try:
                qualifies = bool(definition.predicate(context))
            except Exception as e:  # Isolated: one broken predicate must not block the rest
                logger.warning(
                    f"Achievement predicate '{definition.id}' failed for "
                    f"learner '{profile.learner_id}': {e!r}"
                )
                continue
            if qualifies:
                unlocked.add(definition.id)
        return frozenset(unlocked)

    def describe(self, achievement_ids: Iterable[str]) -> list[AchievementUnlock]:
        """Display payloads for ``achievement_ids``, sorted by id; unknown ids are skipped."""
        return [
            self._catalogue[aid].to_unlock()
            for aid in sorted(achievement_ids)
            if aid in self._catalogue
        ]
