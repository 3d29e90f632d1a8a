"""
Learning Stats Aggregator

Recomputes a user's learning aggregate (streaks, weekly activity, rolling
7-day retention, lifetime counters) from their activity history. Called
after every answered card or finished memory-palace review.

Activity is the union of flashcard review times and memory-palace review
completion times; both count toward streaks. Naive timestamps are taken
as UTC.

Usage:
    from memora.services.learning.stats_aggregator import refresh

    stats = refresh(
        user_id,
        review_dates=[entry.reviewed_at for entry in log],
        memory_review_dates=palace_finished_at,
        current=stored_stats,
        reviewed_increment=1,
        study_time_increment_seconds=4,
        now=now,
    )
"""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from memora.config import settings
from memora.models.learning import LearningStats
from memora.services.learning.card_selector import as_utc, local_day, streak
from memora.services.learning.rounding import round_half_up

logger = logging.getLogger(__name__)


def refresh(
    user_id: Optional[str],
    review_dates: Iterable[datetime],
    memory_review_dates: Iterable[datetime] = (),
    current: Optional[LearningStats] = None,
    reviewed_increment: int = 0,
    study_time_increment_seconds: int = 0,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> LearningStats:
    """
    Refresh a user's learning stats from their full activity history.

    Args:
        user_id: Owner of the stats record
        review_dates: Flashcard review timestamps
        memory_review_dates: Memory-palace review completion timestamps
        current: Previously stored stats (None for a first refresh)
        reviewed_increment: Cards reviewed since the last refresh (ignored if ≤ 0)
        study_time_increment_seconds: Study time to add (ignored if ≤ 0)
        now: Reference time (default: current UTC time)
        tz: Timezone for calendar days (default: settings.stats_tzinfo)

    Returns:
        New LearningStats. longest_streak never drops below the stored value.
    """
    now = now or datetime.now(timezone.utc)
    tz = tz if tz is not None else settings.stats_tzinfo
    current = current or LearningStats(user_id=user_id)

    activity = sorted(
        (as_utc(ts) for ts in (*review_dates, *memory_review_dates)), reverse=True
    )
    today = local_day(now, tz)
    streaks = streak(activity, today=today, tz=tz)

    window_days = settings.STATS_RETENTION_WINDOW_DAYS
    window_start = today - timedelta(days=window_days - 1)
    weekly_days = {
        day for day in (local_day(ts, tz) for ts in activity) if window_start <= day <= today
    }
    weekly_active_days = len(weekly_days)
    retention = round_half_up(weekly_active_days / window_days * 100)

    cards_reviewed = current.cards_reviewed
    if reviewed_increment > 0:
        cards_reviewed += reviewed_increment

    study_time = current.total_study_time_seconds
    if study_time_increment_seconds > 0:
        study_time += study_time_increment_seconds

    refreshed = LearningStats(
        user_id=user_id if user_id is not None else current.user_id,
        current_streak=streaks.current_streak,
        longest_streak=max(current.longest_streak, streaks.longest_streak),
        weekly_active_days=weekly_active_days,
        seven_day_retention=retention,
        cards_reviewed=cards_reviewed,
        total_study_time_seconds=study_time,
        last_studied_at=activity[0] if activity else current.last_studied_at,
    )

    logger.debug(
        f"Refreshed stats for {refreshed.user_id}: streak={refreshed.current_streak} "
        f"(longest {refreshed.longest_streak}), weekly={weekly_active_days}, "
        f"retention={retention}%"
    )
    return refreshed
