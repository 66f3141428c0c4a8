"""
Progression Session: the per-learner quest state machine.

    Idle --start_quest--> QuestActive --submit/abandon--> Resolving --> Idle
                          QuestActive --request_hint--> QuestActive

Every operation runs as one transaction against the profile store:
acquire the learner lock, load the stored profile, mutate a deep copy, save.
Any error before the save leaves the stored profile exactly as it was.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator, Iterable, Mapping
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger

from questline.config import Settings, get_settings
from questline.core.errors import NoActiveQuestError, QuestAlreadyActiveError
from questline.core.models import (
    AbandonResult,
    HintPayload,
    LanguageProgress,
    LearnerProfile,
    Quest,
    QuestOutcome,
    SubmissionResult,
    SubScores,
    utcnow,
)
from questline.core.tiers import DifficultyTier, OutcomeKind
from questline.engine.achievements import AchievementEngine
from questline.engine.difficulty import DifficultyController
from questline.engine.scoring import ScoringEngine
from questline.store.base import ProfileStore


class SessionState(str, Enum):
    IDLE = "idle"
    QUEST_ACTIVE = "quest_active"
    RESOLVING = "resolving"


class ProgressionSession:
    """
    Orchestrates quests for a single learner.

    Sessions hold no profile state between calls; the store is the source of
    truth. Sessions for the same learner must share ``lock`` (the
    ProgressionService hands out sessions that do).
    """

    def __init__(
        self,
        learner_id: str,
        store: ProfileStore,
        *,
        settings: Settings | None = None,
        scoring: ScoringEngine | None = None,
        achievements: AchievementEngine | None = None,
        lock: threading.RLock | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not learner_id:
            raise ValueError("learner_id must be a non-empty string")
        self.learner_id = learner_id
        self.store = store
        self.settings = settings or get_settings()
        self.scoring = scoring or ScoringEngine.from_settings(self.settings)
        self.achievements = achievements or AchievementEngine()
        self._lock = lock or threading.RLock()
        self._clock = clock
        self._resolving = False

    # ----- plumbing ----------------------------------------------------

    @contextmanager
    def _transaction(self) -> Generator[LearnerProfile, None, None]:
        """Yield a working copy of the profile; save it if the block completes."""
        with self._lock:
            working = self.store.load_or_create(self.learner_id).model_copy(deep=True)
            yield working
            self.store.save(working)

    def _require_quest(self, profile: LearnerProfile) -> Quest:
        if profile.active_quest is None:
            raise NoActiveQuestError(self.learner_id)
        return profile.active_quest

    def _controller(self, history: Iterable[QuestOutcome]) -> DifficultyController:
        controller = DifficultyController.from_settings(self.settings)
        controller.replay(history)
        return controller

    def _record(self, profile: LearnerProfile, outcome: QuestOutcome) -> DifficultyController:
        """Append ``outcome``, trim history, and return the controller that observed it."""
        profile.history.append(outcome)
        profile.trim_history(self.settings.history_limit)
        controller = self._controller(profile.history[:-1])
        controller.observe(
            outcome.topic,
            outcome.difficulty_tier,
            outcome.outcome,
            duration_seconds=outcome.duration_seconds,
            expected_duration_seconds=outcome.expected_duration_seconds,
        )
        profile.active_quest = None
        return controller

    def _elapsed(self, quest: Quest, now: datetime) -> float:
        return max(0.0, (now - quest.issued_at).total_seconds())

    # ----- queries -----------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._resolving:
            return SessionState.RESOLVING
        if self.profile().active_quest is not None:
            return SessionState.QUEST_ACTIVE
        return SessionState.IDLE

    def profile(self) -> LearnerProfile:
        """Current stored profile (a fresh, unsaved one for a new learner)."""
        with self._lock:
            stored = self.store.load(self.learner_id)
        if stored is None:
            return LearnerProfile(learner_id=self.learner_id)
        return stored

    def recommend_tier(self, topic: str) -> DifficultyTier:
        return self._controller(self.profile().history).recommend(topic)

    # ----- operations --------------------------------------------------

    def start_quest(
        self,
        topic: str,
        requested_tier: DifficultyTier | str | None = None,
        *,
        language: str | None = None,
        expected_duration_seconds: int | None = None,
    ) -> Quest:
        """
        Issue a quest.

        Args:
            topic: Topic tag from the command layer
            requested_tier: Explicit tier override; recommended tier when None
            language: Language tag for per-language progress (defaults to topic)
            expected_duration_seconds: Advisory duration used for slow-solve detection

        Raises:
            QuestAlreadyActiveError: If a quest is already active
        """
        if not topic:
            raise ValueError("topic must be a non-empty string")
        if expected_duration_seconds is None:
            expected_duration_seconds = self.settings.default_expected_duration_seconds
        elif expected_duration_seconds <= 0:
            raise ValueError(
                f"expected_duration_seconds must be positive, got {expected_duration_seconds}"
            )

        with self._transaction() as profile:
            if profile.active_quest is not None:
                raise QuestAlreadyActiveError(self.learner_id, profile.active_quest.id)

            if requested_tier is not None:
                tier = DifficultyTier(requested_tier)
            else:
                tier = self._controller(profile.history).recommend(topic)

            quest = Quest(
                topic=topic,
                language=language or topic,
                difficulty_tier=tier,
                issued_at=self._clock(),
                expected_duration_seconds=expected_duration_seconds,
            )
            profile.active_quest = quest

        logger.info(f"Learner '{self.learner_id}' started quest {quest.id} ({topic}, {tier.value})")
        return quest.model_copy()

    def request_hint(self) -> HintPayload:
        """
        Charge for a hint on the active quest; every call costs again.

        Raises:
            NoActiveQuestError: If no quest is active
        """
        with self._transaction() as profile:
            quest = self._require_quest(profile)
            cost = min(self.settings.hint_cost_xp, profile.total_xp)
            profile.total_xp -= cost
            quest.hints_used += 1
            quest.hint_xp_spent += cost
            profile.counters.hints_used += 1

            payload = HintPayload(
                quest_id=quest.id,
                topic=quest.topic,
                difficulty_tier=quest.difficulty_tier,
                hint_number=quest.hints_used,
                xp_cost=cost,
                total_xp=profile.total_xp,
            )

        logger.debug(f"Learner '{self.learner_id}' hint #{payload.hint_number} cost {payload.xp_cost} XP")
        return payload

    def submit_solution(
        self,
        sub_scores: SubScores | Mapping[str, Any],
        design_patterns: Iterable[str] = (),
    ) -> SubmissionResult:
        """
        Resolve the active quest as solved.

        Args:
            sub_scores: Rubric from the quality analyzer
            design_patterns: Pattern tags flagged upstream for this solution

        Raises:
            NoActiveQuestError: If no quest is active
            InvalidScoreError: If the rubric is malformed or out of range
        """
        with self._transaction() as profile:
            quest = self._require_quest(profile)
            if not isinstance(sub_scores, SubScores):
                sub_scores = SubScores.from_mapping(sub_scores)

            self._resolving = True
            try:
                awarded = self.scoring.score(sub_scores, quest.difficulty_tier)
                now = self._clock()
                patterns = tuple(sorted({p.strip().lower() for p in design_patterns if p.strip()}))
                outcome = QuestOutcome(
                    quest_id=quest.id,
                    topic=quest.topic,
                    language=quest.language,
                    difficulty_tier=quest.difficulty_tier,
                    sub_scores=sub_scores,
                    hints_used=quest.hints_used,
                    outcome=OutcomeKind.SOLVED,
                    timestamp=now,
                    awarded_xp=awarded,
                    hint_xp_spent=quest.hint_xp_spent,
                    duration_seconds=self._elapsed(quest, now),
                    expected_duration_seconds=quest.expected_duration_seconds,
                    design_patterns=patterns,
                )

                previous_level = profile.level
                profile.total_xp += awarded
                profile.level = self.scoring.level_for(profile.total_xp, profile.level)

                progress = profile.per_language.get(quest.language) or LanguageProgress()
                progress.xp += awarded
                progress.level = self.scoring.language_level_for(progress.xp, progress.level)
                progress.last_activity = now
                profile.per_language[quest.language] = progress

                counters = profile.counters
                counters.quests_solved += 1
                counters.perfect_solves += int(sub_scores.is_perfect)
                counters.languages.add(quest.language)
                counters.design_patterns.update(patterns)

                controller = self._record(profile, outcome)
                unlocked = self.achievements.evaluate(profile)
                profile.achievements |= unlocked

                result = SubmissionResult(
                    quest_id=quest.id,
                    awarded_xp=awarded,
                    total_xp=profile.total_xp,
                    new_level=profile.level,
                    leveled_up=profile.level > previous_level,
                    language=quest.language,
                    language_level=progress.level,
                    unlocked_achievements=self.achievements.describe(unlocked),
                    next_recommended_tier=controller.recommend(quest.topic),
                )
            finally:
                self._resolving = False

        logger.info(
            f"Learner '{self.learner_id}' solved quest {quest.id}: +{awarded} XP "
            f"(level {result.new_level}, unlocked {sorted(unlocked) or 'nothing'})"
        )
        return result

    def abandon_quest(self) -> AbandonResult:
        """
        Resolve the active quest as abandoned, applying the abandonment penalty.

        Raises:
            NoActiveQuestError: If no quest is active
        """
        with self._transaction() as profile:
            quest = self._require_quest(profile)
            self._resolving = True
            try:
                now = self._clock()
                penalty = min(self.settings.abandon_penalty_xp, profile.total_xp)
                profile.total_xp -= penalty

                outcome = QuestOutcome(
                    quest_id=quest.id,
                    topic=quest.topic,
                    language=quest.language,
                    difficulty_tier=quest.difficulty_tier,
                    hints_used=quest.hints_used,
                    outcome=OutcomeKind.ABANDONED,
                    timestamp=now,
                    penalty_xp=penalty,
                    hint_xp_spent=quest.hint_xp_spent,
                    duration_seconds=self._elapsed(quest, now),
                    expected_duration_seconds=quest.expected_duration_seconds,
                )

                progress = profile.per_language.get(quest.language) or LanguageProgress()
                progress.last_activity = now
                profile.per_language[quest.language] = progress
                profile.counters.quests_abandoned += 1
                profile.counters.languages.add(quest.language)

                controller = self._record(profile, outcome)
                result = AbandonResult(
                    quest_id=quest.id,
                    penalty_xp=penalty,
                    total_xp=profile.total_xp,
                    next_recommended_tier=controller.recommend(quest.topic),
                )
            finally:
                self._resolving = False

        logger.info(f"Learner '{self.learner_id}' abandoned quest {quest.id} (-{penalty} XP)")
        return result
