"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from memora.config import settings

    # Access settings
    min_ease = settings.SRS_MINIMUM_EASE
    tz = settings.stats_tzinfo
"""

from functools import lru_cache
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    APP_NAME: str = "Memora"
    DEBUG: bool = False

    # Redis (shared rate-limit counters)
    REDIS_URL: str = "redis://localhost:6379/0"

    # ===========================================
    # SM-2 memory model
    # ===========================================
    SRS_INITIAL_EASE: float = 2.5
    SRS_MINIMUM_EASE: float = 1.3
    SRS_AGAIN_EASE_PENALTY: float = 0.2
    SRS_FIRST_INTERVAL_DAYS: int = 1
    SRS_SECOND_INTERVAL_DAYS: int = 6
    SRS_EASY_BONUS: float = 1.3

    # ===========================================
    # Queue building defaults
    # ===========================================
    REVIEW_DEFAULT_MAX_CARDS: int = 30
    REVIEW_DEFAULT_MAX_NEW: int = 10
    REVIEW_DEFAULT_WEAKNESS_BOOST: int = 10
    EXAM_DEFAULT_COUNT: int = 20
    NEW_CARDS_DEFAULT_LIMIT: int = 10

    # Weak-card detection
    WEAK_MIN_REVIEWS: int = 3
    WEAK_MIN_MISTAKES: int = 2
    WEAK_ACCURACY_THRESHOLD: float = 0.75

    # ===========================================
    # Session answer heuristics
    # ===========================================
    EXAM_WEIGHT_DEFAULT: float = 1.0
    EXAM_WEIGHT_MIN: float = 0.2
    EXAM_WEIGHT_MAX: float = 5.0
    EXAM_WEIGHT_MISTAKE_STEP: float = 0.1
    EXAM_WEIGHT_RECOVERY_STEP: float = 0.05
    SESSION_WEAKNESS_TAG_LIMIT: int = 20
    SESSION_WEAKNESS_TAGS_PER_CARD: int = 3
    UNCATEGORIZED_TOPIC: str = "uncategorized"

    # ===========================================
    # Analytics
    # ===========================================
    STATS_TIMEZONE: str = "UTC"
    STATS_RETENTION_WINDOW_DAYS: int = 7
    WORKLOAD_DEFAULT_DAYS: int = 7
    STREAK_MILESTONES: list[int] = [7, 14, 30, 60, 100, 365]
    TOPIC_BREAKDOWN_LIMIT: int = 8
    WEAKNESS_DEFAULT_PERIOD_DAYS: int = 14
    WEAKNESS_TOPIC_LIMIT: int = 10
    DAILY_REVIEW_TARGET_DEFAULT: int = 20
    EXAM_PASS_SCORE: float = 70.0

    # ===========================================
    # Rate limiting (AI-triggered operations)
    # ===========================================
    RATE_LIMIT_BACKEND: str = "memory"  # "memory" or "redis"
    RATE_LIMIT_AI_PER_MINUTE: int = 10
    RATE_LIMIT_AI_PER_DAY: int = 100
    RATE_LIMIT_KEY_PREFIX: str = "ratelimit"

    @property
    def stats_tzinfo(self) -> ZoneInfo:
        """Timezone used to collapse activity timestamps into calendar days."""
        return ZoneInfo(self.STATS_TIMEZONE)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
