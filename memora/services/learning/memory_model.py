"""
SM-2 Memory Model

This module implements the SuperMemo SM-2 variant that drives card
scheduling. It is a pure computation: given a card's current ease,
interval and repetition count plus a rating, it returns the next values.

Key Concepts:
- Ease (E): Multiplier controlling interval growth, floored at 1.3
- Interval (I): Days until the next review
- Repetitions (n): Consecutive successful reviews since the last lapse

SM-2 State Machine:
    NEW → LEARNING → REVIEW → RELEARNING → LEARNING → ...

Rating effects:
- AGAIN: ease -0.2, interval and repetitions reset, card lapses
- HARD/GOOD/EASY: ease adjusted by the SM-2 quality formula, then
  intervals 1 → 6 → round(I × E) (× easy bonus for EASY)

Usage:
    from memora.services.learning.memory_model import step, initialize

    start = initialize(now)
    result = step(start.ease, start.interval, start.repetitions, Rating.GOOD, now)

    # Or apply to a whole card record
    updated = schedule_review(card, Rating.EASY, now)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from memora.config import settings
from memora.enums.learning import CardState, Rating, RetentionDifficulty
from memora.models.learning import Card, CardPerformance, SchedulingState
from memora.services.learning.rounding import round_half_up

logger = logging.getLogger(__name__)


# Ease thresholds for the retention estimate, checked in order.
RETENTION_BUCKETS: tuple[tuple[float, RetentionDifficulty, float], ...] = (
    (1.7, RetentionDifficulty.VERY_HARD, 0.70),
    (2.0, RetentionDifficulty.HARD, 0.80),
    (2.5, RetentionDifficulty.NORMAL, 0.90),
    (3.0, RetentionDifficulty.EASY, 0.95),
)


@dataclass(frozen=True)
class ScheduleStep:
    """Result of one SM-2 step."""

    ease: float
    interval: int
    repetitions: int
    state: CardState
    next_review: datetime

    def to_scheduling(self, last_reviewed: Optional[datetime] = None) -> SchedulingState:
        """Convert to the persisted scheduling record."""
        return SchedulingState(
            ease=self.ease,
            interval=self.interval,
            repetitions=self.repetitions,
            next_review=self.next_review,
            last_reviewed=last_reviewed,
            state=self.state,
        )


@dataclass(frozen=True)
class RetentionEstimate:
    """Difficulty bucket and expected recall for an ease factor."""

    difficulty: RetentionDifficulty
    estimated_retention: float


def _quality_delta(rating: Rating) -> float:
    # SM-2 ease adjustment: +0.1 for EASY, 0 for GOOD, -0.14 for HARD
    q = 4 - int(rating)
    return 0.1 - q * (0.08 + q * 0.02)


def step(
    ease: float,
    interval: int,
    repetitions: int,
    rating: Rating,
    now: datetime,
) -> ScheduleStep:
    """
    Compute the next schedule values for one review.

    The rating must already be a valid Rating; request layers validate raw
    integers before calling in. Inputs are clamped, never rejected: an ease
    below the floor is lifted to it.

    Args:
        ease: Current ease factor
        interval: Current interval in days
        repetitions: Current consecutive successful reviews
        rating: Learner's self-assessment (AGAIN..EASY)
        now: Review time; next_review is measured from here

    Returns:
        ScheduleStep with the new ease, interval, repetitions, state
        and next review time.

    Example:
        >>> result = step(2.5, 6, 2, Rating.GOOD, now)
        >>> result.interval
        15
    """
    minimum_ease = settings.SRS_MINIMUM_EASE

    if rating == Rating.AGAIN:
        new_state = CardState.RELEARNING if repetitions > 0 else CardState.NEW
        return ScheduleStep(
            ease=max(minimum_ease, ease - settings.SRS_AGAIN_EASE_PENALTY),
            interval=0,
            repetitions=0,
            state=new_state,
            next_review=now,
        )

    new_ease = max(minimum_ease, ease + _quality_delta(rating))
    new_repetitions = repetitions + 1

    if new_repetitions == 1:
        new_interval = settings.SRS_FIRST_INTERVAL_DAYS
    elif new_repetitions == 2:
        new_interval = settings.SRS_SECOND_INTERVAL_DAYS
    elif rating == Rating.EASY:
        new_interval = round_half_up(interval * new_ease * settings.SRS_EASY_BONUS)
    else:
        new_interval = round_half_up(interval * new_ease)

    new_state = CardState.REVIEW if new_repetitions >= 2 else CardState.LEARNING

    return ScheduleStep(
        ease=new_ease,
        interval=new_interval,
        repetitions=new_repetitions,
        state=new_state,
        next_review=now + timedelta(days=new_interval),
    )


def initialize(now: datetime) -> ScheduleStep:
    """Default schedule for a freshly created card."""
    return ScheduleStep(
        ease=settings.SRS_INITIAL_EASE,
        interval=0,
        repetitions=0,
        state=CardState.NEW,
        next_review=now,
    )


def estimate_retention(ease: float) -> RetentionEstimate:
    """
    Map an ease factor to a difficulty bucket and expected retention.

    Example:
        >>> estimate_retention(2.2)
        RetentionEstimate(difficulty=<RetentionDifficulty.NORMAL: 'normal'>, estimated_retention=0.9)
    """
    for upper, difficulty, retention in RETENTION_BUCKETS:
        if ease < upper:
            return RetentionEstimate(difficulty=difficulty, estimated_retention=retention)
    return RetentionEstimate(
        difficulty=RetentionDifficulty.VERY_EASY, estimated_retention=0.98
    )


def schedule_review(card: Card, rating: Rating, now: datetime) -> Card:
    """
    Apply one review to a card and return the updated copy.

    Updates the scheduling state and the lifetime correct/incorrect
    counters. Response-time averaging and the mistake/exam-weight
    heuristic belong to the session engine.

    Args:
        card: Card as loaded from the repository (not mutated)
        rating: Learner's self-assessment
        now: Review time

    Returns:
        Updated Card copy
    """
    current = card.scheduling
    result = step(current.ease, current.interval, current.repetitions, rating, now)

    perf = card.performance
    correct = rating.is_correct
    performance = CardPerformance(
        total_reviews=perf.total_reviews + 1,
        correct_count=perf.correct_count + (1 if correct else 0),
        incorrect_count=perf.incorrect_count + (0 if correct else 1),
        average_response_time_ms=perf.average_response_time_ms,
    )

    logger.debug(
        f"Card {card.id} rated {rating.name}: "
        f"{current.state.value} → {result.state.value}, "
        f"interval {current.interval} → {result.interval}d, ease {result.ease:.2f}"
    )

    return card.model_copy(
        update={
            "scheduling": result.to_scheduling(last_reviewed=now),
            "performance": performance,
        }
    )
