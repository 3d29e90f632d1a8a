"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv

# Add the project root to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env from project root (if present) before settings are imported
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from memora.enums.learning import CardState  # noqa: E402
from memora.models.learning import (  # noqa: E402
    Card,
    CardPerformance,
    SchedulingState,
)


# ============================================================================
# Clock
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """Fixed reference time (a Wednesday, mid-day UTC)."""
    return datetime(2024, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Card Factories
# ============================================================================


@pytest.fixture
def make_card(now: datetime) -> Callable[..., Card]:
    """
    Build a Card with sensible defaults.

    Keyword arguments override scheduling/performance fields directly:
        make_card("c1", state=CardState.REVIEW, next_review=now, total_reviews=4)
    """

    def _make(
        card_id: str,
        *,
        user_id: str = "user-1",
        state: CardState = CardState.NEW,
        ease: float = 2.5,
        interval: int = 0,
        repetitions: int = 0,
        next_review: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        total_reviews: int = 0,
        correct_count: int = 0,
        average_response_time_ms: int = 0,
        mistake_count: int = 0,
        exam_weight: float = 1.0,
        tags: Optional[list[str]] = None,
        concept_id: Optional[str] = None,
    ) -> Card:
        return Card(
            id=card_id,
            user_id=user_id,
            concept_id=concept_id,
            tags=tags or [],
            created_at=created_at or now - timedelta(days=30),
            scheduling=SchedulingState(
                ease=ease,
                interval=interval,
                repetitions=repetitions,
                next_review=next_review or now,
                state=state,
            ),
            performance=CardPerformance(
                total_reviews=total_reviews,
                correct_count=correct_count,
                incorrect_count=total_reviews - correct_count,
                average_response_time_ms=average_response_time_ms,
            ),
            mistake_count=mistake_count,
            exam_weight=exam_weight,
        )

    return _make


@pytest.fixture
def review_card(make_card, now) -> Card:
    """A graduated card that came due an hour ago."""
    return make_card(
        "review-1",
        state=CardState.REVIEW,
        ease=2.5,
        interval=6,
        repetitions=2,
        next_review=now - timedelta(hours=1),
        total_reviews=4,
        correct_count=3,
        tags=["python", "async"],
    )


# ============================================================================
# Mock Services
# ============================================================================


@pytest.fixture
def mock_redis() -> MagicMock:
    """
    Create a mock Redis client for unit testing.

    This allows testing Redis-dependent code without a real Redis server.
    """
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.setex = AsyncMock(return_value=True)
    mock.incr = AsyncMock(return_value=1)
    mock.delete = AsyncMock(return_value=1)
    mock.exists = AsyncMock(return_value=1)
    mock.expire = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """Structured configuration as loaded from config/default.yaml."""
    return {
        "redis": {"rate_limit_ttl": 90000, "max_connections": 10},
        "rate_limits": {
            "ai:mindmap": {"max_per_minute": 5, "max_per_day": 50},
        },
    }
