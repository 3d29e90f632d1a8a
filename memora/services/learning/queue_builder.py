"""
Study Queue Builder

Composes the card queue for a study session.

Review mode merges three pools in priority order:
1. Due cards (earliest next_review first)
2. Weak cards (most mistakes / lowest accuracy first)
3. New cards (oldest first)
A card appearing in several pools keeps its highest-priority position and
the merged queue is truncated to max_cards.

Exam mode drills already-seen material regardless of due dates, ranked by
exam weight, mistakes and inverse accuracy.

The ranking coefficients below are tuning knobs, not derived values.

Usage:
    from memora.services.learning.queue_builder import build_review_queue

    result = build_review_queue(cards, ReviewQueueOptions(max_cards=20), now=now)
    card_ids = [card.id for card in result.queue]
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from memora.config import settings
from memora.enums.learning import CardState
from memora.models.learning import (
    Card,
    ExamQueueOptions,
    QueueStats,
    ReviewQueueOptions,
)
from memora.services.learning.card_selector import due_cards, new_cards

logger = logging.getLogger(__name__)


# Weak-card ranking: mistake_count × 10 + (1 − accuracy) × 100
WEAK_MISTAKE_COEFFICIENT = 10.0
WEAK_INACCURACY_COEFFICIENT = 100.0

# Exam ranking: exam_weight × 10 + mistake_count × 5 + (1 − accuracy) × 100
EXAM_WEIGHT_COEFFICIENT = 10.0
EXAM_MISTAKE_COEFFICIENT = 5.0
EXAM_INACCURACY_COEFFICIENT = 100.0


@dataclass
class ReviewQueue:
    """Ordered review queue plus its composition."""

    queue: list[Card] = field(default_factory=list)
    stats: QueueStats = field(default_factory=QueueStats)

    @property
    def card_ids(self) -> list[str]:
        return [card.id for card in self.queue]


def is_weak(card: Card) -> bool:
    """
    Whether a card shows poor retention.

    Needs either enough reviews to judge (WEAK_MIN_REVIEWS) or repeated
    mistakes. Repeated mistakes also qualify a card on their own, even
    with only one or two reviews and good accuracy.
    """
    reviews = card.performance.total_reviews
    mistakes = card.mistake_count
    if reviews < settings.WEAK_MIN_REVIEWS and mistakes < settings.WEAK_MIN_MISTAKES:
        return False
    return (
        card.accuracy < settings.WEAK_ACCURACY_THRESHOLD
        or mistakes >= settings.WEAK_MIN_MISTAKES
    )


def weakness_score(card: Card) -> float:
    return (
        card.mistake_count * WEAK_MISTAKE_COEFFICIENT
        + (1 - card.accuracy) * WEAK_INACCURACY_COEFFICIENT
    )


def exam_score(card: Card) -> float:
    return (
        card.exam_weight * EXAM_WEIGHT_COEFFICIENT
        + card.mistake_count * EXAM_MISTAKE_COEFFICIENT
        + (1 - card.accuracy) * EXAM_INACCURACY_COEFFICIENT
    )


def weak_cards(cards: Iterable[Card], limit: int) -> list[Card]:
    """Weak cards, highest weakness score first (ties by id), truncated."""
    weak = [card for card in cards if is_weak(card)]
    weak.sort(key=lambda c: (-weakness_score(c), c.id))
    return weak[: max(limit, 0)]


def _merge_unique(*pools: list[Card]) -> list[Card]:
    merged: list[Card] = []
    seen: set[str] = set()
    for pool in pools:
        for card in pool:
            if card.id in seen:
                continue
            merged.append(card)
            seen.add(card.id)
    return merged


def build_review_queue(
    cards: Iterable[Card],
    options: Optional[ReviewQueueOptions] = None,
    now: Optional[datetime] = None,
) -> ReviewQueue:
    """
    Build a bounded, deduplicated review queue.

    Args:
        cards: The user's card collection
        options: Queue limits (defaults from settings)
        now: Reference time for due selection (default: current UTC time)

    Returns:
        ReviewQueue with the ordered cards and due/weak/new counts.
        due_count and weak_count describe the pools before merging;
        new_included counts NEW cards that survived truncation.
    """
    options = options or ReviewQueueOptions()
    now = now or datetime.now(timezone.utc)

    cards = list(cards)
    due = due_cards(cards, now)
    weak = weak_cards(cards, options.weakness_boost)
    fresh = new_cards(cards, options.max_new)

    queue = _merge_unique(due, weak, fresh)[: options.max_cards]
    new_included = sum(1 for card in queue if card.state == CardState.NEW)

    stats = QueueStats(
        due_count=len(due),
        weak_count=len(weak),
        new_included=new_included,
    )

    logger.debug(
        f"Review queue: {len(queue)} cards "
        f"(due={stats.due_count}, weak={stats.weak_count}, new={stats.new_included})"
    )

    return ReviewQueue(queue=queue, stats=stats)


def build_exam_queue(
    cards: Iterable[Card],
    options: Optional[ExamQueueOptions] = None,
) -> list[Card]:
    """
    Rank already-seen cards for an exam.

    Due dates are ignored. Cards can be narrowed to one concept and/or one
    tag before ranking.

    Args:
        cards: The user's card collection
        options: Count and optional concept/tag filters

    Returns:
        Up to options.count cards, highest exam score first (ties by id).
    """
    options = options or ExamQueueOptions()

    eligible = []
    for card in cards:
        if card.state == CardState.NEW:
            continue
        if options.concept_id and card.concept_id != options.concept_id:
            continue
        if options.tag and options.tag not in card.tags:
            continue
        eligible.append(card)

    eligible.sort(key=lambda c: (-exam_score(c), c.id))
    queue = eligible[: options.count]

    logger.debug(f"Exam queue: {len(queue)} of {len(eligible)} eligible cards")
    return queue
