"""
JSON file profile store.

One document per learner: ``{data_dir}/{quoted learner id}.json``.
Writes go to a temporary file in the same directory and are moved into place
with ``os.replace``, so readers see either the old or the new document.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from urllib.parse import quote, unquote

from loguru import logger
from pydantic import ValidationError

from questline.core.errors import PersistenceError
from questline.core.models import LearnerProfile
from questline.store.base import ProfileStore

DEFAULT_DATA_DIR = Path.home() / ".questline" / "profiles"


class JsonProfileStore(ProfileStore):
    """
    Manages profile persistence as JSON files.

    A process-wide lock guards the version check and replace; cross-process
    writers for the same learner are not coordinated.
    """

    def __init__(self, data_dir: Path | None = None):
        self.data_dir = Path(data_dir or DEFAULT_DATA_DIR)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create profile directory {self.data_dir}: {e}") from e
        self._lock = threading.Lock()
        logger.debug(f"JsonProfileStore initialized at {self.data_dir}")

    def _path(self, learner_id: str) -> Path:
        return self.data_dir / f"{quote(learner_id, safe='')}.json"

    def _read(self, learner_id: str) -> LearnerProfile | None:
        filepath = self._path(learner_id)
        try:
            with open(filepath, encoding="utf-8") as f:
                data = json.load(f)
            return LearnerProfile.model_validate(data)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise PersistenceError(f"Failed to load profile '{learner_id}' from {filepath}: {e}") from e

    def load(self, learner_id: str) -> LearnerProfile | None:
        with self._lock:
            return self._read(learner_id)

    def keys(self) -> list[str]:
        try:
            return sorted(unquote(path.stem) for path in self.data_dir.glob("*.json"))
        except OSError as e:
            raise PersistenceError(f"Failed to enumerate profiles in {self.data_dir}: {e}") from e

    def _write(self, profile: LearnerProfile, expected_version: int) -> None:
        with self._lock:
            current = self._read(profile.learner_id)
            actual = current.version if current is not None else 0
            if actual != expected_version:
                raise self._conflict(profile.learner_id, expected_version, actual)

            filepath = self._path(profile.learner_id)
            tmp_name = None
            try:
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=self.data_dir,
                    prefix="~",
                    suffix=".tmp",
                    delete=False,
                ) as f:
                    tmp_name = f.name
                    f.write(profile.model_dump_json(indent=2))
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, filepath)
            except OSError as e:
                if tmp_name is not None and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise PersistenceError(f"Failed to save profile '{profile.learner_id}': {e}") from e
