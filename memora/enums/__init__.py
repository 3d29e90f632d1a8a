"""
Centralized enum definitions for the application.

All enums are organized by domain:
- learning.py: Card states, ratings, session lifecycle, analytics buckets
- api.py: Rate limit categories

Usage:
    from memora.enums import CardState, Rating

    # Or import from specific module
    from memora.enums.learning import SessionStatus
"""

from memora.enums.learning import (
    CardState,
    Rating,
    SessionMode,
    SessionSource,
    SessionStatus,
    CompletionReason,
    ErrorType,
    RetentionDifficulty,
    ExamGrade,
)
from memora.enums.api import RateLimitType

__all__ = [
    # Learning enums
    "CardState",
    "Rating",
    "SessionMode",
    "SessionSource",
    "SessionStatus",
    "CompletionReason",
    "ErrorType",
    "RetentionDifficulty",
    "ExamGrade",
    # API enums
    "RateLimitType",
]
