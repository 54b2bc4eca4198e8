"""
Configuration settings for the frontier learning core.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is prefixed with FRONTIER_ (e.g. FRONTIER_LOG_LEVEL=DEBUG).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FRONTIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Bayesian Knowledge Tracing
    # ========================================
    bkt_p_learn: float = Field(
        default=0.3, ge=0.0, le=1.0,
        description="P(T): probability of learning on each practice opportunity",
    )
    bkt_p_guess: float = Field(
        default=0.2, ge=0.0, le=1.0,
        description="P(G): probability of a correct answer without knowing",
    )
    bkt_p_slip: float = Field(
        default=0.1, ge=0.0, le=1.0,
        description="P(S): probability of a wrong answer despite knowing",
    )
    bkt_p_known_prior: float = Field(
        default=0.3, ge=0.0, le=1.0,
        description="P(L0): prior knowledge before any evidence",
    )
    advance_threshold: float = Field(
        default=0.9, ge=0.0, le=1.0,
        description="Probability at which a concept counts as mastered",
    )
    review_probability_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0,
        description="Below this probability a stale concept needs review",
    )
    review_days_threshold: float = Field(
        default=3.0, ge=0.0,
        description="Days since last practice before a weak concept needs review",
    )

    # ========================================
    # Diagnostic Placement
    # ========================================
    diagnostic_max_questions: int = Field(
        default=20, ge=1,
        description="Maximum questions per diagnostic (capped at the concept count)",
    )

    # ========================================
    # Spaced Repetition
    # ========================================
    min_easiness: float = Field(
        default=1.3, gt=0.0,
        description="Easiness factor floor",
    )
    max_easiness: float = Field(
        default=2.5, gt=0.0,
        description="Easiness factor ceiling (and starting value)",
    )
    easiness_decrement: float = Field(
        default=0.2, ge=0.0,
        description="Easiness factor drop on an incorrect review",
    )
    review_session_size: int = Field(
        default=10, ge=1,
        description="Maximum concepts per review session",
    )
    review_refresher_count: int = Field(
        default=3, ge=0,
        description="Slots reserved for stale mastered refreshers",
    )
    refresher_stale_days: int = Field(
        default=14, ge=1,
        description="Days without practice before a mastered concept is a refresher",
    )
    minutes_per_review: int = Field(
        default=2, ge=1,
        description="Estimated minutes per reviewed concept",
    )

    # ========================================
    # Fluency
    # ========================================
    flatline_window: int = Field(
        default=20, ge=1,
        description="Latencies inspected by the plateau detector",
    )
    flatline_threshold: float = Field(
        default=0.15, gt=0.0,
        description="Coefficient of variation below which latencies have flatlined",
    )
    fluency_consecutive_required: int = Field(
        default=10, ge=1,
        description="Consecutive correct answers at benchmark speed for fluency",
    )
    fluency_accuracy: float = Field(
        default=0.9, ge=0.0, le=1.0,
        description="Recent accuracy required for fluency",
    )

    @model_validator(mode="after")
    def _check_ranges(self) -> Settings:
        if self.min_easiness > self.max_easiness:
            raise ValueError("min_easiness must not exceed max_easiness")
        if self.review_refresher_count > self.review_session_size:
            raise ValueError("review_refresher_count must not exceed review_session_size")
        return self

    def get_bkt_config(self) -> dict[str, float]:
        """Get BKT parameters as a dictionary."""
        return {
            "p_learn": self.bkt_p_learn,
            "p_guess": self.bkt_p_guess,
            "p_slip": self.bkt_p_slip,
            "p_known_prior": self.bkt_p_known_prior,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
