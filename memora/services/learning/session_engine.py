"""
Study Session Engine

State machine for a single review or exam session.

A session owns a frozen card queue built by the queue builder. Each answer
runs the SM-2 memory model on one card, updates the card's performance
counters and mistake/exam-weight heuristic, appends a review log entry and
folds the answer into the session's running metrics. The session completes
on its own once every queued card is answered.

Session lifecycle:
    ACTIVE ──submit_answer (last card)──▶ COMPLETED
    ACTIVE ──complete(reason)──────────▶ COMPLETED
    COMPLETED is terminal; complete() on it is a no-op.

Every operation returns updated copies; the session and card passed in are
never mutated, so callers persist exactly what they get back.

Usage:
    from memora.services.learning.session_engine import (
        create_review_session,
        submit_answer,
    )

    session = create_review_session(user_id, cards, ReviewQueueOptions(), now=now)
    outcome = submit_answer(session, card, Rating.GOOD, response_time_ms=4200, now=now)
    save(outcome.card, outcome.session, outcome.log_entry)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from memora.config import settings
from memora.enums.learning import (
    CompletionReason,
    ErrorType,
    Rating,
    SessionMode,
    SessionSource,
    SessionStatus,
)
from memora.errors import (
    AlreadyAnsweredError,
    EmptyQueueError,
    InvalidStateError,
    NotInQueueError,
)
from memora.models.learning import (
    Card,
    CardPerformance,
    ExamQueueOptions,
    QueueStats,
    ReviewLogEntry,
    ReviewQueueOptions,
    SessionMeta,
    SessionMetrics,
    StudySession,
)
from memora.services.learning.memory_model import schedule_review
from memora.services.learning.queue_builder import build_exam_queue, build_review_queue
from memora.services.learning.rounding import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerOutcome:
    """Everything a caller needs to persist after one answer."""

    card: Card
    session: StudySession
    log_entry: ReviewLogEntry
    next_card_id: Optional[str]

    @property
    def session_completed(self) -> bool:
        return self.session.status == SessionStatus.COMPLETED


def _elapsed_seconds(started_at: datetime, now: datetime) -> int:
    return max(0, round_half_up((now - started_at).total_seconds()))


# ===========================================
# Session creation
# ===========================================


def create_review_session(
    user_id: Optional[str],
    cards: Iterable[Card],
    options: Optional[ReviewQueueOptions] = None,
    now: Optional[datetime] = None,
    source: SessionSource = SessionSource.MANUAL,
) -> StudySession:
    """
    Start a review-mode session over due, weak and new cards.

    An empty queue is allowed: the learner simply has nothing to review.

    Args:
        user_id: Owner of the session
        cards: The user's card collection
        options: Queue limits (defaults from settings)
        now: Session start time (default: current UTC time)
        source: What triggered the session

    Returns:
        ACTIVE StudySession with a frozen queue and zeroed metrics
    """
    options = options or ReviewQueueOptions()
    now = now or datetime.now(timezone.utc)

    result = build_review_queue(cards, options, now=now)
    session = StudySession(
        user_id=user_id,
        mode=SessionMode.REVIEW,
        source=source,
        card_queue=tuple(result.card_ids),
        metrics=SessionMetrics(total_cards=len(result.queue)),
        meta=SessionMeta(
            max_cards=options.max_cards,
            max_new=options.max_new,
            weakness_boost=options.weakness_boost,
        ),
        queue_stats=result.stats,
        started_at=now,
    )

    logger.info(
        f"Created review session {session.id}: {session.metrics.total_cards} cards "
        f"(due={result.stats.due_count}, weak={result.stats.weak_count}, "
        f"new={result.stats.new_included}), source={source.value}"
    )
    return session


def create_exam_session(
    user_id: Optional[str],
    cards: Iterable[Card],
    options: Optional[ExamQueueOptions] = None,
    now: Optional[datetime] = None,
    time_limit_minutes: Optional[int] = None,
) -> StudySession:
    """
    Start an exam-mode session over already-seen cards.

    Raises:
        EmptyQueueError: No card matches the exam filters
    """
    options = options or ExamQueueOptions()
    now = now or datetime.now(timezone.utc)

    queue = build_exam_queue(cards, options)
    if not queue:
        logger.warning(
            f"No eligible cards for exam (user={user_id}, "
            f"concept={options.concept_id}, tag={options.tag})"
        )
        raise EmptyQueueError(
            "No eligible flashcards found for exam session",
            details={"concept_id": options.concept_id, "tag": options.tag},
        )

    session = StudySession(
        user_id=user_id,
        mode=SessionMode.EXAM,
        source=SessionSource.EXAM,
        card_queue=tuple(card.id for card in queue),
        metrics=SessionMetrics(total_cards=len(queue)),
        meta=SessionMeta(
            max_cards=options.count,
            time_limit_minutes=time_limit_minutes,
            concept_id=options.concept_id,
            tag=options.tag,
        ),
        queue_stats=QueueStats(),
        started_at=now,
    )

    logger.info(f"Created exam session {session.id}: {len(queue)} cards")
    return session


# ===========================================
# Answer processing
# ===========================================


def _apply_answer_heuristics(
    card: Card,
    rating: Rating,
    response_time_ms: int,
    error_tag: Optional[ErrorType],
) -> Card:
    """Response-time average plus the mistake / exam-weight adjustment."""
    perf = card.performance
    total_time = perf.average_response_time_ms * (perf.total_reviews - 1) + response_time_ms
    performance = CardPerformance(
        total_reviews=perf.total_reviews,
        correct_count=perf.correct_count,
        incorrect_count=perf.incorrect_count,
        average_response_time_ms=round_half_up(total_time / perf.total_reviews),
    )

    if rating <= Rating.HARD:
        mistake_count = card.mistake_count + 1
        exam_weight = min(
            card.exam_weight + settings.EXAM_WEIGHT_MISTAKE_STEP, settings.EXAM_WEIGHT_MAX
        )
        last_error_type = error_tag or card.last_error_type
    else:
        mistake_count = max(card.mistake_count - 1, 0)
        exam_weight = max(
            card.exam_weight - settings.EXAM_WEIGHT_RECOVERY_STEP, settings.EXAM_WEIGHT_MIN
        )
        last_error_type = card.last_error_type

    return card.model_copy(
        update={
            "performance": performance,
            "mistake_count": mistake_count,
            "exam_weight": exam_weight,
            "last_error_type": last_error_type,
        }
    )


def _merge_weakness_tags(current: list[str], card: Card) -> list[str]:
    tags = card.tags[: settings.SESSION_WEAKNESS_TAGS_PER_CARD] or [
        settings.UNCATEGORIZED_TOPIC
    ]
    merged = list(current)
    for tag in tags:
        if tag not in merged:
            merged.append(tag)
    return merged[: settings.SESSION_WEAKNESS_TAG_LIMIT]


def _update_metrics(metrics: SessionMetrics, rating: Rating, response_time_ms: int) -> SessionMetrics:
    reviewed = metrics.reviewed_cards + 1
    correct = metrics.correct_count + (1 if rating.is_correct else 0)
    incorrect = metrics.incorrect_count + (0 if rating.is_correct else 1)
    avg = round_half_up(
        (metrics.avg_response_time_ms * (reviewed - 1) + response_time_ms) / reviewed
    )
    return SessionMetrics(
        total_cards=metrics.total_cards,
        reviewed_cards=reviewed,
        correct_count=correct,
        incorrect_count=incorrect,
        avg_response_time_ms=avg,
        accuracy_pct=round_half_up(correct / reviewed * 1000) / 10,
    )


def check_answerable(session: StudySession, card_id: str) -> None:
    """
    Validate that card_id may be answered in session.

    Checks run in order: session active, card in queue, card not yet
    answered.

    Raises:
        InvalidStateError: Session is not ACTIVE
        NotInQueueError: Card is not part of the session's queue
        AlreadyAnsweredError: Card was already answered in this session
    """
    if session.status != SessionStatus.ACTIVE:
        logger.warning(f"Answer rejected: session {session.id} is {session.status.value}")
        raise InvalidStateError(
            "Session is already closed", details={"session_id": session.id}
        )
    if card_id not in session.card_queue:
        logger.warning(f"Answer rejected: card {card_id} not in session {session.id}")
        raise NotInQueueError(
            "Flashcard is not part of this session",
            details={"session_id": session.id, "card_id": card_id},
        )
    if card_id in session.reviewed_card_ids:
        logger.warning(f"Answer rejected: card {card_id} already answered in {session.id}")
        raise AlreadyAnsweredError(
            "Flashcard already reviewed in this session",
            details={"session_id": session.id, "card_id": card_id},
        )


def submit_answer(
    session: StudySession,
    card: Card,
    rating: Rating,
    response_time_ms: int,
    error_tag: Optional[ErrorType] = None,
    now: Optional[datetime] = None,
) -> AnswerOutcome:
    """
    Record one answer within a session.

    Checks run in order: session active, card in queue, card not yet
    answered. Nothing is changed when a check fails.

    Args:
        session: Current session record
        card: The answered card as currently stored
        rating: Learner's self-assessment (GOOD and EASY count as correct)
        response_time_ms: Time to answer in milliseconds
        error_tag: Optional cause of a wrong answer (kept on the card)
        now: Answer time (default: current UTC time)

    Returns:
        AnswerOutcome with the updated card, updated session, the new review
        log entry and the next unanswered card id (None when done).

    Raises:
        InvalidStateError: Session is not ACTIVE
        NotInQueueError: Card is not part of the session's queue
        AlreadyAnsweredError: Card was already answered in this session
    """
    now = now or datetime.now(timezone.utc)
    check_answerable(session, card.id)

    previous_interval = card.scheduling.interval
    updated_card = schedule_review(card, rating, now)
    updated_card = _apply_answer_heuristics(updated_card, rating, response_time_ms, error_tag)

    log_entry = ReviewLogEntry(
        user_id=session.user_id,
        card_id=card.id,
        session_id=session.id,
        rating=rating,
        response_time_ms=response_time_ms,
        previous_interval=previous_interval,
        new_interval=updated_card.scheduling.interval,
        reviewed_at=now,
    )

    metrics = _update_metrics(session.metrics, rating, response_time_ms)
    weakness_tags = session.weakness_tags
    if rating <= Rating.HARD:
        weakness_tags = _merge_weakness_tags(weakness_tags, card)

    update = {
        "reviewed_card_ids": [*session.reviewed_card_ids, card.id],
        "metrics": metrics,
        "weakness_tags": list(weakness_tags),
        "duration_seconds": _elapsed_seconds(session.started_at, now),
    }
    if metrics.reviewed_cards >= metrics.total_cards:
        update.update(
            status=SessionStatus.COMPLETED,
            completion_reason=CompletionReason.COMPLETED,
            completed_at=now,
        )
    updated_session = session.model_copy(update=update)

    logger.debug(
        f"Session {session.id}: card {card.id} rated {rating.name} "
        f"({metrics.reviewed_cards}/{metrics.total_cards}, accuracy {metrics.accuracy_pct}%)"
    )
    if updated_session.status == SessionStatus.COMPLETED:
        logger.info(
            f"Session {session.id} completed: {metrics.reviewed_cards} cards, "
            f"accuracy {metrics.accuracy_pct}%"
        )

    return AnswerOutcome(
        card=updated_card,
        session=updated_session,
        log_entry=log_entry,
        next_card_id=updated_session.next_card_id(),
    )


# ===========================================
# Completion
# ===========================================


def complete(
    session: StudySession,
    reason: CompletionReason = CompletionReason.USER_EXIT,
    now: Optional[datetime] = None,
) -> StudySession:
    """
    Close a session explicitly.

    Idempotent: a session that is already COMPLETED is returned unchanged,
    keeping its original reason and completion time.
    """
    if session.status == SessionStatus.COMPLETED:
        return session

    now = now or datetime.now(timezone.utc)
    completed = session.model_copy(
        update={
            "status": SessionStatus.COMPLETED,
            "completion_reason": reason,
            "completed_at": now,
            "duration_seconds": _elapsed_seconds(session.started_at, now),
        }
    )

    logger.info(
        f"Session {session.id} closed ({reason.value}) after "
        f"{completed.duration_seconds}s, {session.metrics.reviewed_cards}/"
        f"{session.metrics.total_cards} cards answered"
    )
    return completed
