"""
Topic Analytics

Per-topic review analytics built from the review log:
- topic_breakdown: accuracy, rating and mastery per tag
- summarize_session: post-session summary, with a scored report for exams
- weakness_topics: topics with recent weak answers and review-goal progress

A topic is a card tag. Cards without tags are grouped under
settings.UNCATEGORIZED_TOPIC. A review of a card with several tags counts
once toward each of them. Log entries whose card is not in the supplied
collection are skipped (the card was deleted).

Usage:
    from memora.services.learning.topic_analytics import summarize_session

    summary = summarize_session(session, session_log, cards, now=now)
    if summary.exam_report:
        print(summary.exam_report.grade)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from memora.config import settings
from memora.enums.learning import ExamGrade, Rating, SessionMode, SessionStatus
from memora.models.learning import (
    Card,
    ExamReport,
    RatingCounts,
    ReviewLogEntry,
    SessionSummary,
    StudySession,
    TopicBreakdown,
    WeaknessReport,
    WeaknessTopic,
)
from memora.services.learning.card_selector import local_day
from memora.services.learning.rounding import round_half_up, round_to

logger = logging.getLogger(__name__)


# Exam scoring
FAST_ANSWER_SECONDS = 8.0
SLOW_ANSWER_SECONDS = 35.0
SLOW_SPEED_SCORE = 40.0
SCORE_WEIGHTS = (0.7, 0.2, 0.1)  # accuracy, speed, consistency
FOCUS_TOPIC_COUNT = 3

# (minimum score, grade), checked in order
GRADE_THRESHOLDS: tuple[tuple[float, ExamGrade], ...] = (
    (95.0, ExamGrade.A_PLUS),
    (90.0, ExamGrade.A),
    (82.0, ExamGrade.B_PLUS),
    (74.0, ExamGrade.B),
    (65.0, ExamGrade.C),
)

# Weakness goals
GOAL_TARGET_MIN = 10
GOAL_TARGET_MAX = 40
MASTERED_RATE = 80.0


@dataclass
class _TopicTally:
    total: int = 0
    correct: int = 0
    weak: int = 0
    rating_sum: int = 0
    response_sum: int = 0

    def add(self, entry: ReviewLogEntry) -> None:
        self.total += 1
        self.rating_sum += int(entry.rating)
        self.response_sum += entry.response_time_ms
        if entry.rating.is_correct:
            self.correct += 1
        if entry.rating <= Rating.HARD:
            self.weak += 1

    @property
    def avg_rating(self) -> float:
        return self.rating_sum / self.total if self.total else 0.0


def mastery_rate(accuracy: float, avg_rating: float) -> float:
    """
    Blend accuracy (0-100) with the average rating normalized to 0-100.

    Example:
        >>> mastery_rate(80.0, 3.0)
        76.0
    """
    rating_score = max(0.0, min(100.0, (avg_rating - 1) / 3 * 100))
    return round_to(accuracy * 0.7 + rating_score * 0.3, 1)


def grade_for(score: float) -> ExamGrade:
    for minimum, grade in GRADE_THRESHOLDS:
        if score >= minimum:
            return grade
    return ExamGrade.D


def speed_score(avg_response_seconds: float) -> float:
    """100 for answers within 8s, 40 from 35s, linear in between."""
    if avg_response_seconds <= FAST_ANSWER_SECONDS:
        return 100.0
    if avg_response_seconds >= SLOW_ANSWER_SECONDS:
        return SLOW_SPEED_SCORE
    span = SLOW_ANSWER_SECONDS - FAST_ANSWER_SECONDS
    return round_to(
        100 - (avg_response_seconds - FAST_ANSWER_SECONDS) / span * (100 - SLOW_SPEED_SCORE),
        1,
    )


def _topics_for(card: Card) -> list[str]:
    return card.tags or [settings.UNCATEGORIZED_TOPIC]


def _tally_by_topic(
    entries: Iterable[ReviewLogEntry], cards: Iterable[Card]
) -> dict[str, _TopicTally]:
    cards_by_id = {card.id: card for card in cards}
    tallies: dict[str, _TopicTally] = {}
    for entry in entries:
        card = cards_by_id.get(entry.card_id)
        if card is None:
            continue
        for topic in _topics_for(card):
            tallies.setdefault(topic, _TopicTally()).add(entry)
    return tallies


# ===========================================
# Topic breakdown
# ===========================================


def topic_breakdown(
    entries: Iterable[ReviewLogEntry],
    cards: Iterable[Card],
    limit: Optional[int] = None,
) -> list[TopicBreakdown]:
    """
    Review performance per topic, most-reviewed topics first.

    Args:
        entries: Review log entries to analyze
        cards: Cards referenced by the entries (for their tags)
        limit: Maximum topics returned (default settings.TOPIC_BREAKDOWN_LIMIT)
    """
    if limit is None:
        limit = settings.TOPIC_BREAKDOWN_LIMIT

    rows = []
    for topic, tally in _tally_by_topic(entries, cards).items():
        accuracy = round_to(tally.correct / tally.total * 100, 1) if tally.total else 0.0
        rows.append(
            TopicBreakdown(
                topic=topic,
                total_reviews=tally.total,
                correct_reviews=tally.correct,
                weak_reviews=tally.weak,
                accuracy=accuracy,
                avg_rating=round_to(tally.avg_rating, 1),
                avg_response_time_ms=round_half_up(tally.response_sum / tally.total),
                mastery_rate=mastery_rate(accuracy, tally.avg_rating),
            )
        )

    rows.sort(key=lambda r: (-r.total_reviews, r.topic))
    return rows[: max(limit, 0)]


# ===========================================
# Session summary
# ===========================================


def _rating_counts(entries: list[ReviewLogEntry]) -> RatingCounts:
    counts = {rating: 0 for rating in Rating}
    for entry in entries:
        counts[entry.rating] += 1
    return RatingCounts(
        again=counts[Rating.AGAIN],
        hard=counts[Rating.HARD],
        good=counts[Rating.GOOD],
        easy=counts[Rating.EASY],
    )


def _exam_report(
    session: StudySession,
    rating_counts: RatingCounts,
    breakdown: list[TopicBreakdown],
) -> ExamReport:
    metrics = session.metrics
    avg_seconds = round_to(metrics.avg_response_time_ms / 1000, 1)
    speed = speed_score(avg_seconds)
    consistency = (
        round_to((rating_counts.good + rating_counts.easy) / metrics.reviewed_cards * 100, 1)
        if metrics.reviewed_cards
        else 0.0
    )
    w_accuracy, w_speed, w_consistency = SCORE_WEIGHTS
    score = round_to(
        metrics.accuracy_pct * w_accuracy + speed * w_speed + consistency * w_consistency, 1
    )

    focus = sorted(breakdown, key=lambda r: (r.mastery_rate, -r.total_reviews, r.topic))
    strength = sorted(breakdown, key=lambda r: (-r.mastery_rate, -r.total_reviews, r.topic))

    return ExamReport(
        score=score,
        grade=grade_for(score),
        passed=score >= settings.EXAM_PASS_SCORE,
        speed_score=speed,
        consistency_score=consistency,
        avg_response_seconds=avg_seconds,
        focus_topics=focus[:FOCUS_TOPIC_COUNT],
        strength_topics=strength[:FOCUS_TOPIC_COUNT],
    )


def summarize_session(
    session: StudySession,
    entries: Iterable[ReviewLogEntry],
    cards: Iterable[Card],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> SessionSummary:
    """
    Build the summary shown after (or during) a session.

    Args:
        session: The session record
        entries: Review log entries (entries of other sessions are ignored)
        cards: The user's cards; used for topics and tomorrow's due count
        now: Reference time (default: current UTC time)
        tz: Timezone for "tomorrow" (default: settings.stats_tzinfo)

    Returns:
        SessionSummary; exam_report is set only for exam sessions.
    """
    now = now or datetime.now(timezone.utc)
    cards = list(cards)
    session_entries = [entry for entry in entries if entry.session_id == session.id]

    rating_counts = _rating_counts(session_entries)
    breakdown = topic_breakdown(session_entries, cards)

    if session.status == SessionStatus.COMPLETED or session.duration_seconds:
        duration = session.duration_seconds
    else:
        duration = max(0, round_half_up((now - session.started_at).total_seconds()))

    tomorrow = local_day(now, tz) + timedelta(days=1)
    next_day_due = sum(
        1 for card in cards if local_day(card.scheduling.next_review, tz) == tomorrow
    )

    exam_report = None
    if session.mode == SessionMode.EXAM:
        exam_report = _exam_report(session, rating_counts, breakdown)

    metrics = session.metrics
    return SessionSummary(
        session_id=session.id,
        mode=session.mode,
        status=session.status,
        total_cards=metrics.total_cards,
        reviewed_cards=metrics.reviewed_cards,
        correct_count=metrics.correct_count,
        incorrect_count=metrics.incorrect_count,
        accuracy_pct=metrics.accuracy_pct,
        avg_response_time_ms=metrics.avg_response_time_ms,
        duration_seconds=duration,
        started_at=session.started_at,
        completed_at=session.completed_at,
        rating_counts=rating_counts,
        weakness_topics=list(session.weakness_tags),
        topic_breakdown=breakdown,
        exam_report=exam_report,
        next_day_due_count=next_day_due,
    )


# ===========================================
# Weakness topics
# ===========================================


def weakness_topics(
    entries: Iterable[ReviewLogEntry],
    cards: Iterable[Card],
    now: Optional[datetime] = None,
    days: Optional[int] = None,
    daily_review_target: Optional[int] = None,
) -> WeaknessReport:
    """
    Topics with weak answers in the last `days` days and goal progress.

    Each tracked topic's goal is to be reviewed `daily_review_target` times
    (clamped to 10-40). A topic counts as mastered once it reaches the goal
    with a mastery rate of at least 80.

    Args:
        entries: The user's review log
        cards: The user's cards (for tags)
        now: Reference time (default: current UTC time)
        days: Look-back window (default settings.WEAKNESS_DEFAULT_PERIOD_DAYS)
        daily_review_target: Learner preference (default settings.DAILY_REVIEW_TARGET_DEFAULT)
    """
    now = now or datetime.now(timezone.utc)
    if days is None:
        days = settings.WEAKNESS_DEFAULT_PERIOD_DAYS
    target = daily_review_target or settings.DAILY_REVIEW_TARGET_DEFAULT
    goal_target = max(GOAL_TARGET_MIN, min(target, GOAL_TARGET_MAX))

    since = now - timedelta(days=days)
    recent = [entry for entry in entries if entry.reviewed_at >= since]
    tallies = _tally_by_topic(recent, cards)

    ranked = sorted(
        ((topic, tally) for topic, tally in tallies.items() if tally.weak > 0),
        key=lambda item: (-item[1].weak, -item[1].total, item[0]),
    )[: settings.WEAKNESS_TOPIC_LIMIT]

    topics = []
    for topic, tally in ranked:
        accuracy = round_to(tally.correct / tally.total * 100, 1)
        mastery = mastery_rate(accuracy, tally.avg_rating)
        topics.append(
            WeaknessTopic(
                topic=topic,
                weak_count=tally.weak,
                total_reviews=tally.total,
                correct_reviews=tally.correct,
                avg_rating=round_to(tally.avg_rating, 2),
                accuracy=accuracy,
                mastery_rate=mastery,
                goal_target=goal_target,
                goal_progress=min(round_half_up(tally.total / goal_target * 100), 100),
                goal_remaining=max(goal_target - tally.total, 0),
                achieved=tally.total >= goal_target and mastery >= MASTERED_RATE,
            )
        )

    tracked = len(topics)
    progress_rate = (
        round_half_up(sum(t.goal_progress for t in topics) / tracked) if tracked else 0
    )

    logger.debug(f"Weakness report: {tracked} topics over {days} days, target {goal_target}")

    return WeaknessReport(
        period_days=days,
        target_reviews_per_topic=goal_target,
        tracked_topics=tracked,
        mastered_topics=sum(1 for t in topics if t.achieved),
        progress_rate=progress_rate,
        topics=topics,
    )
