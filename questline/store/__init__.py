"""
Profile persistence backends.

- memory: InMemoryProfileStore (tests, embedding)
- json: JsonProfileStore, one document per learner (default)
- sql: SqlProfileStore via SQLAlchemy
"""

from __future__ import annotations

from questline.config import Settings, get_settings
from questline.store.base import ProfileStore
from questline.store.json_store import JsonProfileStore
from questline.store.memory import InMemoryProfileStore
from questline.store.sql_store import SqlProfileStore


def create_store(settings: Settings | None = None) -> ProfileStore:
    """Build the store selected by ``settings.store_backend``."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        return InMemoryProfileStore()
    if settings.store_backend == "sql":
        return SqlProfileStore(settings.database_url, echo=settings.log_level == "DEBUG")
    return JsonProfileStore(settings.data_dir)


__all__ = [
    "ProfileStore",
    "InMemoryProfileStore",
    "JsonProfileStore",
    "SqlProfileStore",
    "create_store",
]
