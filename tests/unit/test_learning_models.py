"""
Unit tests for Learning System Pydantic models.

Tests record validation, option strictness and session invariants.
"""

import pytest
from pydantic import ValidationError

from memora.enums.learning import CardState, Rating
from memora.models.learning import (
    Card,
    CardPerformance,
    ExamQueueOptions,
    ReviewLogEntry,
    ReviewQueueOptions,
    SchedulingState,
    StudySession,
)


# =============================================================================
# Card Models
# =============================================================================


class TestCard:
    """Tests for the Card record."""

    def test_defaults(self):
        """A bare card is NEW with default ease and weight."""
        card = Card(id="c1")

        assert card.state == CardState.NEW
        assert card.scheduling.ease == 2.5
        assert card.exam_weight == 1.0
        assert card.accuracy == 0.0

    def test_tags_deduplicated_in_order(self):
        """Duplicate and blank tags are dropped, order kept."""
        card = Card(id="c1", tags=["python", " async", "python", "", "async"])
        assert card.tags == ["python", "async"]

    def test_ease_floor_enforced(self):
        """Stored ease below 1.3 is rejected."""
        with pytest.raises(ValidationError):
            SchedulingState(ease=1.2)

    def test_exam_weight_bounds(self):
        """Exam weight must stay within [0.2, 5]."""
        with pytest.raises(ValidationError):
            Card(id="c1", exam_weight=5.5)
        with pytest.raises(ValidationError):
            Card(id="c1", exam_weight=0.1)

    def test_extra_store_fields_ignored(self):
        """Records tolerate columns the scheduler does not model."""
        card = Card(id="c1", front="What is SM-2?", back="A scheduler")
        assert not hasattr(card, "front")

    def test_accuracy(self):
        """Accuracy is correct / total."""
        perf = CardPerformance(total_reviews=4, correct_count=3, incorrect_count=1)
        assert perf.accuracy == 0.75


class TestReviewLogEntry:
    """Tests for the immutable review log entry."""

    def test_entry_is_frozen(self, now):
        """Log entries cannot be changed once created."""
        entry = ReviewLogEntry(
            card_id="c1",
            rating=Rating.GOOD,
            response_time_ms=1200,
            previous_interval=1,
            new_interval=6,
            reviewed_at=now,
        )

        with pytest.raises(ValidationError):
            entry.rating = Rating.AGAIN

    def test_naive_timestamp_rejected(self, now):
        """Timestamps must carry a timezone."""
        with pytest.raises(ValidationError):
            ReviewLogEntry(
                card_id="c1",
                rating=Rating.GOOD,
                response_time_ms=0,
                previous_interval=0,
                new_interval=1,
                reviewed_at=now.replace(tzinfo=None),
            )


# =============================================================================
# Queue Options
# =============================================================================


class TestQueueOptions:
    """Tests for strict queue options."""

    def test_review_defaults_from_settings(self):
        """Unset limits come from settings."""
        options = ReviewQueueOptions()

        assert options.max_cards == 30
        assert options.max_new == 10
        assert options.weakness_boost == 10

    def test_unknown_field_rejected(self):
        """Typos in option names fail loudly."""
        with pytest.raises(ValidationError):
            ExamQueueOptions(cnt=5)

    def test_max_cards_must_be_positive(self):
        """A zero-card queue cannot be requested."""
        with pytest.raises(ValidationError):
            ReviewQueueOptions(max_cards=0)

    def test_filters_stripped(self):
        """String filters are whitespace-stripped."""
        assert ExamQueueOptions(tag="  math ").tag == "math"


# =============================================================================
# Study Session
# =============================================================================


class TestStudySession:
    """Tests for session invariants."""

    def test_duplicate_queue_rejected(self):
        """The frozen queue may not list a card twice."""
        with pytest.raises(ValidationError):
            StudySession(card_queue=("a", "a"))

    def test_reviewed_must_be_in_queue(self):
        """Answered ids outside the queue are rejected."""
        with pytest.raises(ValidationError):
            StudySession(card_queue=("a",), reviewed_card_ids=["b"])

    def test_next_card_id(self):
        """The next card is the first unanswered one in queue order."""
        session = StudySession(card_queue=("a", "b", "c"), reviewed_card_ids=["a", "c"])

        assert session.next_card_id() == "b"
        assert session.is_active

    def test_next_card_id_when_done(self):
        """No next card once everything is answered."""
        session = StudySession(card_queue=("a",), reviewed_card_ids=["a"])
        assert session.next_card_id() is None
