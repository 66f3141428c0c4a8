"""
Progression Service: the boundary used by command dispatchers.

Owns the profile store, the shared engines and a lock per learner id, hands
out ProgressionSession handles and answers read-only queries. Operations
for one learner are serialized; different learners never contend.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Callable
from datetime import datetime

from questline.config import Settings, get_settings
from questline.core.errors import UnknownLearnerError
from questline.core.models import AchievementUnlock, LearnerProfile, QuestOutcome, utcnow
from questline.engine.achievements import AchievementEngine
from questline.engine.scoring import ScoringEngine
from questline.engine.session import ProgressionSession
from questline.store import create_store
from questline.store.base import ProfileStore


class KeyedLocks:
    """
    Lazily created re-entrant lock per key.

    Entries are weak: a lock lives as long as some session or caller holds it,
    so ids seen once do not accumulate.
    """

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[str, threading.RLock] = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    def __len__(self) -> int:
        return len(self._locks)


class ProgressionService:
    """Facade over sessions, stores and queries."""

    def __init__(
        self,
        store: ProfileStore | None = None,
        settings: Settings | None = None,
        *,
        scoring: ScoringEngine | None = None,
        achievements: AchievementEngine | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or get_settings()
        self.store = store or create_store(self.settings)
        self.scoring = scoring or ScoringEngine.from_settings(self.settings)
        self.achievements = achievements or AchievementEngine()
        self._clock = clock
        self._locks = KeyedLocks()

    def session(self, learner_id: str) -> ProgressionSession:
        """Session handle for ``learner_id`` sharing this service's per-learner lock."""
        return ProgressionSession(
            learner_id,
            self.store,
            settings=self.settings,
            scoring=self.scoring,
            achievements=self.achievements,
            lock=self._locks.lock_for(learner_id),
            clock=self._clock,
        )

    # ----- read-only queries -------------------------------------------

    def get_profile(self, learner_id: str) -> LearnerProfile:
        """
        Stored profile for ``learner_id``.

        Raises:
            UnknownLearnerError: If the learner has never been saved
        """
        with self._locks.lock_for(learner_id):
            profile = self.store.load(learner_id)
        if profile is None:
            raise UnknownLearnerError(learner_id)
        return profile

    def get_achievements(self, learner_id: str) -> list[AchievementUnlock]:
        return self.achievements.describe(self.get_profile(learner_id).achievements)

    def get_history(self, learner_id: str, topic: str | None = None) -> list[QuestOutcome]:
        return self.get_profile(learner_id).history_for(topic)

    def list_learners(self) -> list[str]:
        return self.store.keys()
