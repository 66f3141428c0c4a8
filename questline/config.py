"""
Configuration settings for the questline progression engine.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is prefixed with ``QUESTLINE_`` (e.g. ``QUESTLINE_HINT_COST_XP=10``).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="QUESTLINE_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Persistence
    # ========================================
    store_backend: Literal["memory", "json", "sql"] = Field(
        default="json",
        description="Profile store backend",
    )
    data_dir: Path = Field(
        default=Path.home() / ".questline" / "profiles",
        description="Directory for the JSON profile store",
    )
    database_url: str = Field(
        default="sqlite:///" + str(Path.home() / ".questline" / "questline.db"),
        description="SQLAlchemy URL for the SQL profile store",
    )
    history_limit: int = Field(
        default=200,
        ge=1,
        description="Number of most recent quest outcomes retained per profile",
    )

    # ========================================
    # Adaptive difficulty
    # ========================================
    window_size: int = Field(
        default=10,
        ge=1,
        description="Rolling outcome window per topic",
    )
    escalate_threshold: float = Field(
        default=0.85,
        gt=0.0,
        le=1.0,
        description="Success rate above which the next quest is one tier harder",
    )
    deescalate_threshold: float = Field(
        default=0.60,
        ge=0.0,
        lt=1.0,
        description="Success rate below which the next quest is one tier easier",
    )
    slow_solve_factor: float = Field(
        default=2.0,
        gt=1.0,
        description="Solves slower than factor x expected duration do not count toward escalation",
    )
    default_expected_duration_seconds: int = Field(
        default=1800,
        gt=0,
        description="Expected quest duration when the caller does not provide one",
    )

    # ========================================
    # Experience economy
    # ========================================
    hint_cost_xp: int = Field(default=5, ge=0, description="XP deducted per hint")
    abandon_penalty_xp: int = Field(default=10, ge=0, description="XP deducted on abandonment")
    level_base_xp: int = Field(
        default=100,
        gt=0,
        description="XP needed for level 1; level n needs base * n ** exponent",
    )
    level_exponent: float = Field(default=1.5, ge=1.0, description="Level curve steepness")
    max_level: int = Field(default=100, ge=1, description="Highest reachable level")
    intermediate_language_xp: int = Field(
        default=500,
        gt=0,
        description="Per-language XP needed for the intermediate rank",
    )
    advanced_language_xp: int = Field(
        default=2000,
        gt=0,
        description="Per-language XP needed for the advanced rank",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> Settings:
        if self.deescalate_threshold >= self.escalate_threshold:
            raise ValueError("deescalate_threshold must be lower than escalate_threshold")
        if self.advanced_language_xp <= self.intermediate_language_xp:
            raise ValueError("advanced_language_xp must exceed intermediate_language_xp")
        if self.history_limit < self.window_size:
            raise ValueError("history_limit must be >= window_size")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
