"""
In-process profile store, used by tests and embedding applications that
handle durability themselves.
"""

from __future__ import annotations

import threading

from questline.core.models import LearnerProfile
from questline.store.base import ProfileStore


class InMemoryProfileStore(ProfileStore):
    """Profiles held as serialized JSON so callers never share mutable state."""

    def __init__(self):
        self._documents: dict[str, str] = {}
        self._versions: dict[str, int] = {}
        self._lock = threading.Lock()

    def load(self, learner_id: str) -> LearnerProfile | None:
        with self._lock:
            document = self._documents.get(learner_id)
        if document is None:
            return None
        return LearnerProfile.model_validate_json(document)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._documents)

    def _write(self, profile: LearnerProfile, expected_version: int) -> None:
        with self._lock:
            actual = self._versions.get(profile.learner_id, 0)
            if actual != expected_version:
                raise self._conflict(profile.learner_id, expected_version, actual)
            self._documents[profile.learner_id] = profile.model_dump_json()
            self._versions[profile.learner_id] = profile.version
