"""
Configuration settings for the quizpath adaptive assessment service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="QUIZPATH_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///quizpath.db",
        description="SQLAlchemy connection string (SQLite or PostgreSQL)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path (rotated by loguru)",
    )

    # ========================================
    # Sessions
    # ========================================
    default_question_count: int = Field(
        default=20,
        ge=1,
        description="Quiz length when a session does not specify one",
    )
    default_focus_area: Literal["strengthen", "improve", "balanced"] = Field(
        default="balanced",
        description="Focus area when a session does not specify one",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for reproducible question selection (None = nondeterministic)",
    )

    # ========================================
    # Multi-topic planning
    # ========================================
    max_topic_selections: int = Field(
        default=10,
        ge=1,
        description="Maximum topic selections per multi-topic session",
    )
    max_total_questions: int = Field(
        default=200,
        ge=1,
        description="Upper bound on a multi-topic session's question count",
    )
    min_questions_per_topic: int = Field(
        default=3,
        ge=0,
        description="Minimum questions per topic used for count suggestions",
    )
    oversample_factor: int = Field(
        default=3,
        ge=1,
        description="Sample this many times the needed count per tier to survive dedup",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
