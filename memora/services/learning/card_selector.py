"""
Card Selection and Review History Analytics

Partitions a user's card collection into due and new subsets and derives
streaks, state distribution and upcoming workload from review history.

Responsibilities:
- Select due cards (earliest first) and new cards (oldest first)
- Collapse activity timestamps into calendar days and compute streaks
- Summarize the state distribution and lifetime accuracy of a collection
- Project the number of reviews scheduled on each upcoming day

All orderings are deterministic: ties are broken by card id so the same
collection always yields the same queue.

Calendar days are taken in the configured stats timezone
(settings.STATS_TIMEZONE) unless a timezone is passed explicitly.

Usage:
    from memora.services.learning.card_selector import due_cards, new_cards, streak

    due = due_cards(cards, now)
    fresh = new_cards(cards, limit=10)
    result = streak(review_timestamps, today=now.date())
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from memora.config import settings
from memora.enums.learning import CardState
from memora.models.learning import Card, ReviewStats, WorkloadDay
from memora.services.learning.rounding import round_to


@dataclass(frozen=True)
class StreakResult:
    """Current and longest consecutive-day activity runs."""

    current_streak: int = 0
    longest_streak: int = 0
    milestones: tuple[int, ...] = field(
        default_factory=lambda: tuple(settings.STREAK_MILESTONES)
    )

    @property
    def milestones_reached(self) -> list[int]:
        return [m for m in self.milestones if self.longest_streak >= m]

    @property
    def next_milestone(self) -> Optional[int]:
        return next((m for m in self.milestones if m > self.current_streak), None)


# ===========================================
# Day helpers
# ===========================================


def _resolve_tz(tz: Optional[tzinfo]) -> tzinfo:
    return tz if tz is not None else settings.stats_tzinfo


def as_utc(ts: datetime) -> datetime:
    """Timestamp as an aware UTC datetime (naive = UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def local_day(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar day of a timestamp in the stats timezone (naive = UTC)."""
    return as_utc(ts).astimezone(_resolve_tz(tz)).date()


def distinct_days(
    timestamps: Iterable[datetime], tz: Optional[tzinfo] = None
) -> list[date]:
    """Distinct calendar days touched by the timestamps, most recent first."""
    return sorted({local_day(ts, tz) for ts in timestamps}, reverse=True)


# ===========================================
# Selectors
# ===========================================


def due_cards(cards: Iterable[Card], now: datetime) -> list[Card]:
    """
    Cards that have been seen and whose next review time has passed.

    Args:
        cards: Card collection (any order)
        now: Reference time

    Returns:
        Due cards, earliest next_review first, ties broken by id.
    """
    due = [
        card
        for card in cards
        if card.state != CardState.NEW and card.scheduling.next_review <= now
    ]
    return sorted(due, key=lambda c: (c.scheduling.next_review, c.id))


def new_cards(cards: Iterable[Card], limit: Optional[int] = None) -> list[Card]:
    """
    Unseen cards, oldest first, truncated to limit.

    Args:
        cards: Card collection (any order)
        limit: Maximum cards returned (default NEW_CARDS_DEFAULT_LIMIT)
    """
    if limit is None:
        limit = settings.NEW_CARDS_DEFAULT_LIMIT
    fresh = [card for card in cards if card.state == CardState.NEW]
    fresh.sort(key=lambda c: (c.created_at, c.id))
    return fresh[: max(limit, 0)]


# ===========================================
# Streaks
# ===========================================


def streak(
    activity_timestamps: Iterable[datetime],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> StreakResult:
    """
    Compute consecutive-day streaks from activity timestamps.

    The current streak only counts while the most recent active day is
    today or yesterday, so a learner who has not studied yet today keeps
    their streak until the day is over.

    Args:
        activity_timestamps: Review/activity times (any order, duplicates ok)
        today: Reference day (default: current day in the stats timezone)
        tz: Timezone for day boundaries (default: settings.stats_tzinfo)

    Returns:
        StreakResult; both streaks are 0 for empty input.
    """
    days = distinct_days(activity_timestamps, tz)
    if not days:
        return StreakResult()

    if today is None:
        today = datetime.now(_resolve_tz(tz)).date()
    yesterday = today - timedelta(days=1)

    current = 0
    if days[0] in (today, yesterday):
        current = 1
        for newer, older in zip(days, days[1:]):
            if newer - older != timedelta(days=1):
                break
            current += 1

    longest = 1
    run = 1
    for newer, older in zip(days, days[1:]):
        if newer - older == timedelta(days=1):
            run += 1
            longest = max(longest, run)
        else:
            run = 1

    return StreakResult(current_streak=current, longest_streak=max(longest, current))


# ===========================================
# Collection analytics
# ===========================================


def review_stats(
    cards: Iterable[Card], now: datetime, tz: Optional[tzinfo] = None
) -> ReviewStats:
    """
    State distribution, cards due by the end of today and lifetime accuracy.

    Accuracy is the percentage of correct answers over all reviews of all
    cards, rounded to two decimals (0 when nothing was reviewed yet).
    """
    cards = list(cards)
    resolved = _resolve_tz(tz)
    end_of_today = datetime.combine(local_day(now, resolved), time.max, tzinfo=resolved)

    counts = {state: 0 for state in CardState}
    total_reviews = 0
    total_correct = 0
    due_today = 0

    for card in cards:
        counts[card.state] += 1
        total_reviews += card.performance.total_reviews
        total_correct += card.performance.correct_count
        if card.scheduling.next_review <= end_of_today:
            due_today += 1

    accuracy = total_correct / total_reviews * 100 if total_reviews else 0.0

    return ReviewStats(
        total=len(cards),
        new=counts[CardState.NEW],
        learning=counts[CardState.LEARNING],
        review=counts[CardState.REVIEW],
        relearning=counts[CardState.RELEARNING],
        due_today=due_today,
        accuracy=round_to(accuracy, 2),
    )


def projected_workload(
    cards: Iterable[Card],
    now: datetime,
    days: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> list[WorkloadDay]:
    """
    Number of cards scheduled on each of the next `days` calendar days.

    Today is the first entry. Overdue cards are not folded into today;
    they are already counted by due_cards.
    """
    if days is None:
        days = settings.WORKLOAD_DEFAULT_DAYS

    today = local_day(now, tz)
    per_day: dict[date, int] = {}
    for card in cards:
        day = local_day(card.scheduling.next_review, tz)
        per_day[day] = per_day.get(day, 0) + 1

    upcoming = [today + timedelta(days=offset) for offset in range(max(days, 0))]
    return [WorkloadDay(day=day, count=per_day.get(day, 0)) for day in upcoming]
