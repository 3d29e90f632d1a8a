"""
Learning System Models (Pydantic)

Record and result schemas for the spaced repetition core including:
- Cards with SM-2 scheduling state and performance counters
- Append-only review log entries
- Study sessions (frozen queue, running metrics)
- Queue options and analytics results

ARCHITECTURE NOTE:
    The core never persists anything. Collaborators load records, pass them
    into the services under memora/services/learning, and save the updated
    copies that come back.

    Data flow: Store → Record model → Service → updated Record copy → Store
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import AwareDatetime, Field, field_validator, model_validator

from memora.config import settings
from memora.enums.learning import (
    CardState,
    CompletionReason,
    ErrorType,
    ExamGrade,
    Rating,
    SessionMode,
    SessionSource,
    SessionStatus,
)
from memora.models.base import RecordModel, ResultModel, StrictRequest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


# ===========================================
# Card Models
# ===========================================


class SchedulingState(RecordModel):
    """
    SM-2 scheduling state of a card.

    The ease factor never drops below 1.3. A NEW card always has zero
    repetitions and a zero interval once it has passed through the memory
    model; stored records are not rejected for violating that, since the
    memory model is the only writer.
    """

    ease: float = Field(default=2.5, ge=1.3, description="Ease factor")
    interval: int = Field(default=0, ge=0, description="Days until next review")
    repetitions: int = Field(default=0, ge=0, description="Consecutive successful reviews")
    next_review: AwareDatetime = Field(default_factory=_utcnow)
    last_reviewed: Optional[AwareDatetime] = None
    state: CardState = CardState.NEW


class CardPerformance(RecordModel):
    """Lifetime answer counters for a card."""

    total_reviews: int = Field(default=0, ge=0)
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    average_response_time_ms: int = Field(default=0, ge=0)

    @property
    def accuracy(self) -> float:
        """Fraction of correct answers (0 when the card was never reviewed)."""
        if not self.total_reviews:
            return 0.0
        return self.correct_count / self.total_reviews


class Card(RecordModel):
    """
    A user's flashcard as seen by the scheduling core.

    Only the fields the scheduler reads or writes are modeled; front/back
    content and media stay with the card repository.
    """

    id: str
    user_id: Optional[str] = None
    concept_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list, description="Topic tags, ordered")
    created_at: AwareDatetime = Field(default_factory=_utcnow)

    scheduling: SchedulingState = Field(default_factory=SchedulingState)
    performance: CardPerformance = Field(default_factory=CardPerformance)

    mistake_count: int = Field(default=0, ge=0)
    exam_weight: float = Field(default=1.0, ge=0.2, le=5.0)
    last_error_type: Optional[ErrorType] = None

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @property
    def state(self) -> CardState:
        return self.scheduling.state

    @property
    def accuracy(self) -> float:
        return self.performance.accuracy


class ReviewLogEntry(ResultModel):
    """
    One answer, as appended to the review log.

    Immutable once created.
    """

    id: str = Field(default_factory=_new_id)
    user_id: Optional[str] = None
    card_id: str
    session_id: Optional[str] = None
    rating: Rating
    response_time_ms: int = Field(ge=0)
    previous_interval: int = Field(ge=0)
    new_interval: int = Field(ge=0)
    reviewed_at: AwareDatetime


# ===========================================
# Queue Options
# ===========================================


class ReviewQueueOptions(StrictRequest):
    """
    Limits for a review-mode queue.

    Note: Uses StrictRequest - unknown fields are rejected.
    """

    max_cards: int = Field(
        default_factory=lambda: settings.REVIEW_DEFAULT_MAX_CARDS, ge=1, le=500
    )
    max_new: int = Field(
        default_factory=lambda: settings.REVIEW_DEFAULT_MAX_NEW, ge=0, le=200
    )
    weakness_boost: int = Field(
        default_factory=lambda: settings.REVIEW_DEFAULT_WEAKNESS_BOOST, ge=0, le=200
    )


class ExamQueueOptions(StrictRequest):
    """
    Size and filters for an exam-mode queue.

    Note: Uses StrictRequest - unknown fields are rejected.
    """

    count: int = Field(default_factory=lambda: settings.EXAM_DEFAULT_COUNT, ge=1, le=500)
    concept_id: Optional[str] = None
    tag: Optional[str] = None


class QueueStats(ResultModel):
    """Composition of a review queue."""

    due_count: int = 0
    weak_count: int = 0
    new_included: int = 0


# ===========================================
# Study Session Models
# ===========================================


class SessionMetrics(RecordModel):
    """Running answer metrics for a session."""

    total_cards: int = Field(default=0, ge=0)
    reviewed_cards: int = Field(default=0, ge=0)
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    avg_response_time_ms: int = Field(default=0, ge=0)
    accuracy_pct: float = Field(default=0.0, ge=0.0, le=100.0)


class SessionMeta(RecordModel):
    """Options the session queue was built with."""

    max_cards: Optional[int] = None
    max_new: Optional[int] = None
    weakness_boost: Optional[int] = None
    time_limit_minutes: Optional[int] = Field(default=None, ge=1, le=300)
    concept_id: Optional[str] = None
    tag: Optional[str] = None


class StudySession(RecordModel):
    """
    One review or exam session.

    The card queue is frozen at creation. Answered ids are always a subset
    of the queue and the status only ever moves ACTIVE → COMPLETED.
    """

    id: str = Field(default_factory=_new_id)
    user_id: Optional[str] = None
    mode: SessionMode = SessionMode.REVIEW
    source: SessionSource = SessionSource.MANUAL
    status: SessionStatus = SessionStatus.ACTIVE
    completion_reason: Optional[CompletionReason] = None

    card_queue: tuple[str, ...] = ()
    reviewed_card_ids: list[str] = Field(default_factory=list)

    metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    weakness_tags: list[str] = Field(default_factory=list)
    meta: SessionMeta = Field(default_factory=SessionMeta)
    queue_stats: QueueStats = Field(default_factory=QueueStats)

    started_at: AwareDatetime = Field(default_factory=_utcnow)
    completed_at: Optional[AwareDatetime] = None
    duration_seconds: int = Field(default=0, ge=0)

    @field_validator("card_queue")
    @classmethod
    def _queue_has_no_duplicates(cls, queue: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(queue)) != len(queue):
            raise ValueError("card_queue must not contain duplicate ids")
        return queue

    @model_validator(mode="after")
    def _reviewed_subset_of_queue(self) -> StudySession:
        outside = set(self.reviewed_card_ids) - set(self.card_queue)
        if outside:
            raise ValueError(f"reviewed ids not in card_queue: {sorted(outside)}")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def remaining_cards(self) -> int:
        return max(self.metrics.total_cards - self.metrics.reviewed_cards, 0)

    def next_card_id(self) -> Optional[str]:
        """First queued card that has not been answered yet."""
        answered = set(self.reviewed_card_ids)
        return next((card_id for card_id in self.card_queue if card_id not in answered), None)


# ===========================================
# Analytics Models
# ===========================================


class ReviewStats(ResultModel):
    """
    State distribution and lifetime accuracy across a card collection.

    Accuracy is a percentage rounded to two decimals.
    """

    total: int
    new: int
    learning: int
    review: int
    relearning: int
    due_today: int
    accuracy: float


class WorkloadDay(ResultModel):
    """Number of cards scheduled on one upcoming calendar day."""

    day: date
    count: int


class LearningStats(RecordModel):
    """
    Per-user learning aggregate refreshed after review activity.

    longest_streak never decreases across refreshes.
    """

    user_id: Optional[str] = None
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    weekly_active_days: int = Field(default=0, ge=0, le=7)
    seven_day_retention: int = Field(default=0, ge=0, le=100)
    cards_reviewed: int = Field(default=0, ge=0)
    total_study_time_seconds: int = Field(default=0, ge=0)
    last_studied_at: Optional[AwareDatetime] = None


class RatingCounts(ResultModel):
    """Answers per rating."""

    again: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0


class TopicBreakdown(ResultModel):
    """
    Review performance for one topic (tag).

    mastery_rate blends accuracy (70%) and the normalized average rating (30%).
    """

    topic: str
    total_reviews: int
    correct_reviews: int
    weak_reviews: int
    accuracy: float
    avg_rating: float
    avg_response_time_ms: int
    mastery_rate: float


class ExamReport(ResultModel):
    """Scored report for a completed exam-mode session."""

    score: float
    grade: ExamGrade
    passed: bool
    speed_score: float
    consistency_score: float
    avg_response_seconds: float
    focus_topics: list[TopicBreakdown] = Field(default_factory=list)
    strength_topics: list[TopicBreakdown] = Field(default_factory=list)


class SessionSummary(ResultModel):
    """
    Summary of a session after (or during) practice.

    exam_report is only set for exam-mode sessions.
    """

    session_id: str
    mode: SessionMode
    status: SessionStatus
    total_cards: int
    reviewed_cards: int
    correct_count: int
    incorrect_count: int
    accuracy_pct: float
    avg_response_time_ms: int
    duration_seconds: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    rating_counts: RatingCounts
    weakness_topics: list[str] = Field(default_factory=list)
    topic_breakdown: list[TopicBreakdown] = Field(default_factory=list)
    exam_report: Optional[ExamReport] = None
    next_day_due_count: int = 0


class WeaknessTopic(ResultModel):
    """A topic with recent weak answers and progress toward its review goal."""

    topic: str
    weak_count: int
    total_reviews: int
    correct_reviews: int
    avg_rating: float
    accuracy: float
    mastery_rate: float
    goal_target: int
    goal_progress: int
    goal_remaining: int
    achieved: bool


class WeaknessReport(ResultModel):
    """Weak topics over a recent period plus goal roll-up."""

    period_days: int
    target_reviews_per_topic: int
    tracked_topics: int
    mastered_topics: int
    progress_rate: int
    topics: list[WeaknessTopic] = Field(default_factory=list)
