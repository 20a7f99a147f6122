"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Scoring constants live here, not scattered through the engine
"""

import os
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class ScoringConfig(BaseModel):
    """Constants that bound onboarding and daily scoring."""

    max_offset_years: float = Field(
        default=8.0, gt=0.0, description="Cap on the onboarding biological age offset (BAO)"
    )
    daily_max_delta_years: float = Field(
        default=0.3, gt=0.0, le=1.0, description="Cap on a single day's delta magnitude"
    )
    delta_per_score_point: float = Field(
        default=0.03, gt=0.0, description="Years of delta per daily score point"
    )
    score_bound: float = Field(
        default=10.0, gt=0.0, description="Daily score is clamped to +/- this value"
    )


class StreakConfig(BaseModel):
    """Streak classification settings."""

    neutral_epsilon: float = Field(
        default=1e-4, ge=0.0, lt=0.1, description="Deltas within +/- epsilon count as neutral"
    )


class TrendConfig(BaseModel):
    """Trend and projection settings."""

    chart_sample_count: int = Field(
        default=30, ge=2, description="Maximum number of points returned for charts"
    )
    projection_window: int = Field(
        default=30, gt=0, description="Number of recent deltas averaged for the yearly projection"
    )
    projection_min_deltas: int = Field(
        default=7, gt=0, description="Below this many non-zero deltas the yearly view projects"
    )


class EngineConfig(BaseModel):
    """Engine-wide defaults."""

    default_timezone: str = Field(default="UTC", description="IANA timezone for new users")

    @field_validator("default_timezone")
    def validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown IANA timezone: {v}") from e
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    streaks: StreakConfig = Field(default_factory=StreakConfig)
    trends: TrendConfig = Field(default_factory=TrendConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    scoring_config = ScoringConfig(
        max_offset_years=float(os.getenv("MAX_OFFSET_YEARS", "8.0")),
        daily_max_delta_years=float(os.getenv("DAILY_MAX_DELTA_YEARS", "0.3")),
    )

    streak_config = StreakConfig(
        neutral_epsilon=float(os.getenv("STREAK_EPSILON", "0.0001")),
    )

    trend_config = TrendConfig(
        chart_sample_count=int(os.getenv("CHART_SAMPLE_COUNT", "30")),
    )

    engine_config = EngineConfig(
        default_timezone=os.getenv("DEFAULT_TIMEZONE", "UTC"),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        scoring=scoring_config,
        streaks=streak_config,
        trends=trend_config,
        engine=engine_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
