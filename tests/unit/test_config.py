"""
Unit Tests for Configuration Management

Tests the Settings class and YAML configuration loading.
These tests verify:
- Environment variable loading
- Default value handling
- Timezone property
- YAML configuration parsing
"""

import os
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest

from memora.config import Settings, get_settings, load_yaml_config


class TestSettings:
    """Test suite for the Settings Pydantic model."""

    def test_default_values(self) -> None:
        """Settings should have sensible defaults when env vars are not set."""
        with patch.dict(os.environ, {}, clear=True):
            test_settings = Settings(_env_file=None)

            assert test_settings.APP_NAME == "Memora"
            assert test_settings.REDIS_URL == "redis://localhost:6379/0"
            assert test_settings.SRS_INITIAL_EASE == 2.5
            assert test_settings.SRS_MINIMUM_EASE == 1.3
            assert test_settings.REVIEW_DEFAULT_MAX_CARDS == 30
            assert test_settings.EXAM_DEFAULT_COUNT == 20
            assert test_settings.RATE_LIMIT_BACKEND == "memory"
            assert test_settings.STREAK_MILESTONES == [7, 14, 30, 60, 100, 365]

    def test_env_variable_override(self) -> None:
        """Environment variables should override default values."""
        env_overrides = {
            "APP_NAME": "Custom App",
            "DEBUG": "true",
            "REDIS_URL": "redis://custom-redis:6380/5",
            "REVIEW_DEFAULT_MAX_NEW": "3",
            "RATE_LIMIT_AI_PER_DAY": "7",
            "STATS_TIMEZONE": "Europe/Berlin",
        }

        with patch.dict(os.environ, env_overrides, clear=True):
            test_settings = Settings(_env_file=None)

            assert test_settings.APP_NAME == "Custom App"
            assert test_settings.DEBUG is True
            assert test_settings.REDIS_URL == "redis://custom-redis:6380/5"
            assert test_settings.REVIEW_DEFAULT_MAX_NEW == 3
            assert test_settings.RATE_LIMIT_AI_PER_DAY == 7
            assert test_settings.STATS_TIMEZONE == "Europe/Berlin"

    def test_stats_tzinfo(self) -> None:
        """stats_tzinfo should resolve the configured IANA zone."""
        test_settings = Settings(_env_file=None, STATS_TIMEZONE="Asia/Seoul")

        assert test_settings.stats_tzinfo == ZoneInfo("Asia/Seoul")

    def test_invalid_value_rejected(self) -> None:
        """Non-numeric values for numeric settings should fail validation."""
        with patch.dict(os.environ, {"SRS_INITIAL_EASE": "high"}, clear=True):
            with pytest.raises(ValueError):
                Settings(_env_file=None)


class TestYamlConfigLoading:
    """Test suite for YAML configuration loading."""

    def test_load_yaml_config_returns_dict(self) -> None:
        """load_yaml_config should return a dictionary."""
        # Clear the cache to get fresh config
        load_yaml_config.cache_clear()
        config = load_yaml_config()

        assert isinstance(config, dict)

    def test_yaml_config_redis_settings(self) -> None:
        """Redis settings should have a positive TTL."""
        load_yaml_config.cache_clear()
        config = load_yaml_config()

        if config and "redis" in config:
            redis_config = config["redis"]

            assert isinstance(redis_config["rate_limit_ttl"], int)
            assert redis_config["rate_limit_ttl"] > 86400
            assert redis_config["max_connections"] > 0

    def test_yaml_config_rate_limit_overrides(self) -> None:
        """Rate limit overrides should carry both limits."""
        load_yaml_config.cache_clear()
        config = load_yaml_config()

        for route_key, limits in config.get("rate_limits", {}).items():
            assert route_key.startswith("ai:"), route_key
            assert limits["max_per_minute"] > 0
            assert limits["max_per_day"] >= limits["max_per_minute"]


class TestSettingsCaching:
    """Test suite for settings caching behavior."""

    def test_get_settings_returns_same_instance(self) -> None:
        """get_settings should return cached instance."""
        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2
