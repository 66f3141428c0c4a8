"""
Profile store contract.

A store maps learner ids to complete LearnerProfile documents:
- read-by-key (``load``)
- write-by-key as a full replace (``save``)
- enumeration of all keys (``keys``)

Saves are compare-and-set on ``LearnerProfile.version``: a profile can only
be saved over the revision it was loaded from, and a successful save returns
the stored copy with the version bumped. The caller's object is never
modified, so a failed save leaves nothing half-applied.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from loguru import logger

from questline.core.errors import PersistenceError
from questline.core.models import LearnerProfile, utcnow


class ProfileStore(ABC):
    """Durable keyed storage for learner profiles."""

    @abstractmethod
    def load(self, learner_id: str) -> LearnerProfile | None:
        """
        Load a profile.

        Returns:
            The stored profile, or None if the learner has never been saved

        Raises:
            PersistenceError: If the backend fails or the document is corrupt
        """

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored learner ids, sorted."""

    @abstractmethod
    def _write(self, profile: LearnerProfile, expected_version: int) -> None:
        """
        Persist ``profile`` if the stored revision equals ``expected_version``.

        ``expected_version`` is 0 for a learner that has never been saved.

        Raises:
            PersistenceError: On a version conflict or backend failure
        """

    def save(self, profile: LearnerProfile) -> LearnerProfile:
        """
        Replace the stored profile.

        Args:
            profile: Profile carrying the version it was loaded at

        Returns:
            The stored copy, with ``version`` incremented

        Raises:
            PersistenceError: If the stored revision moved on, or the write failed
        """
        stored = profile.model_copy(
            deep=True,
            update={"version": profile.version + 1, "updated_at": utcnow()},
        )
        self._write(stored, expected_version=profile.version)
        logger.debug(f"Saved profile '{profile.learner_id}' at version {stored.version}")
        return stored

    def load_or_create(self, learner_id: str) -> LearnerProfile:
        """Stored profile, or a fresh unsaved one (version 0) for a new learner."""
        profile = self.load(learner_id)
        if profile is None:
            logger.info(f"Creating profile for new learner '{learner_id}'")
            profile = LearnerProfile(learner_id=learner_id)
        return profile

    def exists(self, learner_id: str) -> bool:
        return self.load(learner_id) is not None

    @staticmethod
    def _conflict(learner_id: str, expected: int, actual: int) -> PersistenceError:
        return PersistenceError(
            f"Version conflict for '{learner_id}': expected {expected}, stored {actual}"
        )
