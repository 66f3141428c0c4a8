"""
SQLAlchemy profile store.

Profiles are kept as JSON documents in a single ``learner_profiles`` table
keyed by learner id. The version column makes every save a compare-and-set:
``UPDATE ... WHERE version = :expected`` must touch exactly one row.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import DateTime, Integer, Text, create_engine, select, update
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from questline.core.errors import PersistenceError
from questline.core.models import LearnerProfile
from questline.store.base import ProfileStore


class Base(DeclarativeBase):
    pass


class LearnerProfileRecord(Base):
    """One row per learner; ``payload`` is the full profile document."""

    __tablename__ = "learner_profiles"

    learner_id: Mapped[str] = mapped_column(Text, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<LearnerProfileRecord learner={self.learner_id} version={self.version}>"


def _make_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # Single shared connection so every session sees the same in-memory database
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.get_backend_name() == "sqlite":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


class SqlProfileStore(ProfileStore):
    """Profile store backed by any SQLAlchemy-supported database."""

    def __init__(self, database_url: str | None = None, engine: Engine | None = None, echo: bool = False):
        if engine is None and database_url is None:
            raise ValueError("database_url or engine is required")
        try:
            self.engine = engine or _make_engine(database_url, echo=echo)
            Base.metadata.create_all(bind=self.engine)
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to initialize profile database: {e}") from e
        self._sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        logger.debug(f"SqlProfileStore initialized at {self.engine.url!r}")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    def load(self, learner_id: str) -> LearnerProfile | None:
        try:
            with self.session_scope() as session:
                payload = session.scalar(
                    select(LearnerProfileRecord.payload).where(
                        LearnerProfileRecord.learner_id == learner_id
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load profile '{learner_id}': {e}") from e
        if payload is None:
            return None
        try:
            return LearnerProfile.model_validate_json(payload)
        except ValidationError as e:
            raise PersistenceError(f"Corrupt profile document for '{learner_id}': {e}") from e

    def keys(self) -> list[str]:
        try:
            with self.session_scope() as session:
                return list(
                    session.scalars(
                        select(LearnerProfileRecord.learner_id).order_by(LearnerProfileRecord.learner_id)
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to enumerate profiles: {e}") from e

    def _write(self, profile: LearnerProfile, expected_version: int) -> None:
        payload = profile.model_dump_json()
        try:
            with self.session_scope() as session:
                if expected_version == 0:
                    session.add(
                        LearnerProfileRecord(
                            learner_id=profile.learner_id,
                            version=profile.version,
                            payload=payload,
                            updated_at=profile.updated_at,
                        )
                    )
                    session.flush()
                    return

                result = session.execute(
                    update(LearnerProfileRecord)
                    .where(
                        LearnerProfileRecord.learner_id == profile.learner_id,
                        LearnerProfileRecord.version == expected_version,
                    )
                    .values(version=profile.version, payload=payload, updated_at=profile.updated_at)
                )
                if result.rowcount != 1:
                    actual = session.scalar(
                        select(LearnerProfileRecord.version).where(
                            LearnerProfileRecord.learner_id == profile.learner_id
                        )
                    )
                    raise self._conflict(profile.learner_id, expected_version, actual or 0)
        except IntegrityError as e:
            raise PersistenceError(
                f"Version conflict for '{profile.learner_id}': profile already exists"
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save profile '{profile.learner_id}': {e}") from e
