"""
Pydantic models for the scheduling core.

Usage:
    from memora.models import Card, StudySession, ReviewQueueOptions
"""

from memora.models.base import RecordModel, ResultModel, StrictRequest
from memora.models.learning import (
    Card,
    CardPerformance,
    ExamQueueOptions,
    ExamReport,
    LearningStats,
    QueueStats,
    RatingCounts,
    ReviewLogEntry,
    ReviewQueueOptions,
    ReviewStats,
    SchedulingState,
    SessionMeta,
    SessionMetrics,
    SessionSummary,
    StudySession,
    TopicBreakdown,
    WeaknessReport,
    WeaknessTopic,
    WorkloadDay,
)

__all__ = [
    # Base classes
    "RecordModel",
    "ResultModel",
    "StrictRequest",
    # Cards
    "Card",
    "CardPerformance",
    "SchedulingState",
    "ReviewLogEntry",
    # Queues & sessions
    "ReviewQueueOptions",
    "ExamQueueOptions",
    "QueueStats",
    "SessionMeta",
    "SessionMetrics",
    "StudySession",
    # Analytics
    "ReviewStats",
    "WorkloadDay",
    "LearningStats",
    "RatingCounts",
    "TopicBreakdown",
    "ExamReport",
    "SessionSummary",
    "WeaknessTopic",
    "WeaknessReport",
]
