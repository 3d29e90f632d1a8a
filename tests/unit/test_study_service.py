"""
Unit tests for StudyService using the in-memory stores.
"""

import asyncio
from datetime import timedelta
from typing import Optional

import pytest

from memora.enums.learning import CardState, CompletionReason, Rating, SessionStatus
from memora.errors import (
    AlreadyAnsweredError,
    AuthorizationError,
    EmptyQueueError,
    NotFoundError,
    NotInQueueError,
)
from memora.models.learning import LearningStats, StudySession
from memora.services.learning import StudyService
from memora.services.learning.repositories import InMemoryUserStatsStore


class SlowUserStatsStore(InMemoryUserStatsStore):
    """Stats store that yields to the event loop on every read."""

    async def get(self, user_id: str) -> Optional[LearningStats]:
        await asyncio.sleep(0)
        return await super().get(user_id)


@pytest.fixture
def service(make_card, now) -> StudyService:
    return StudyService.in_memory(
        [
            make_card(
                "a",
                state=CardState.REVIEW,
                interval=6,
                repetitions=2,
                next_review=now - timedelta(hours=2),
                total_reviews=2,
                correct_count=2,
                tags=["python"],
            ),
            make_card("b", tags=["history"]),
            make_card("theirs", user_id="user-2", state=CardState.REVIEW),
        ]
    )


class TestSessions:
    """Tests for starting, answering and closing sessions."""

    @pytest.mark.asyncio
    async def test_start_review_session_persists(self, service, now):
        """The created session is saved and only holds the user's cards."""
        session = await service.start_review_session("user-1", now=now)

        assert session.card_queue == ("a", "b")
        assert await service.sessions.get(session.id) == session

    @pytest.mark.asyncio
    async def test_start_exam_session_without_seen_cards(self, make_card, now):
        """An exam over only NEW cards is rejected."""
        service = StudyService.in_memory([make_card("n1")])

        with pytest.raises(EmptyQueueError):
            await service.start_exam_session("user-1", now=now)

    @pytest.mark.asyncio
    async def test_submit_answer_persists_everything(self, service, now):
        """Card, log entry, session and stats are all updated."""
        session = await service.start_review_session("user-1", now=now)

        outcome = await service.submit_answer(
            "user-1", session.id, "a", Rating.GOOD, 3500, now=now
        )

        stored_card = await service.cards.get("a")
        assert stored_card.scheduling.interval == 15
        assert stored_card.performance.total_reviews == 3

        log = await service.review_log.list_for_session(session.id)
        assert [entry.card_id for entry in log] == ["a"]

        stored_session = await service.sessions.get(session.id)
        assert stored_session.reviewed_card_ids == ["a"]
        assert outcome.next_card_id == "b"

        stats = await service.get_learning_stats("user-1")
        assert stats.cards_reviewed == 1
        # 3.5s rounds half up
        assert stats.total_study_time_seconds == 4
        assert stats.current_streak == 1
        assert stats.last_studied_at == now

    @pytest.mark.asyncio
    async def test_unknown_session(self, service, now):
        """Answering in a missing session raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.submit_answer("user-1", "missing", "a", Rating.GOOD, 1000, now=now)

    @pytest.mark.asyncio
    async def test_other_users_session(self, service, now):
        """Another user's session cannot be answered."""
        session = await service.start_review_session("user-1", now=now)

        with pytest.raises(AuthorizationError):
            await service.submit_answer("user-2", session.id, "a", Rating.GOOD, 1000, now=now)

    @pytest.mark.asyncio
    async def test_queue_checked_before_card_lookup(self, service, now):
        """A foreign card outside the queue is reported as not in queue."""
        session = await service.start_review_session("user-1", now=now)

        with pytest.raises(NotInQueueError):
            await service.submit_answer(
                "user-1", session.id, "theirs", Rating.GOOD, 1000, now=now
            )

    @pytest.mark.asyncio
    async def test_other_users_card(self, service, now):
        """A queued card owned by someone else is rejected."""
        session = StudySession(user_id="user-1", card_queue=("theirs",), started_at=now)
        await service.sessions.save(session)

        with pytest.raises(AuthorizationError):
            await service.submit_answer(
                "user-1", session.id, "theirs", Rating.GOOD, 1000, now=now
            )

    @pytest.mark.asyncio
    async def test_deleted_card(self, service, now):
        """A queued card that no longer exists raises NotFoundError."""
        session = StudySession(user_id="user-1", card_queue=("gone",), started_at=now)
        await service.sessions.save(session)

        with pytest.raises(NotFoundError):
            await service.submit_answer("user-1", session.id, "gone", Rating.GOOD, 1000, now=now)

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_answers(self, service, now):
        """Two simultaneous answers for one card: exactly one is accepted."""
        session = await service.start_review_session("user-1", now=now)

        results = await asyncio.gather(
            service.submit_answer("user-1", session.id, "a", Rating.GOOD, 1000, now=now),
            service.submit_answer("user-1", session.id, "a", Rating.AGAIN, 1000, now=now),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyAnsweredError)
        assert len(await service.review_log.list_for_session(session.id)) == 1

    @pytest.mark.asyncio
    async def test_complete_session_idempotent(self, service, now):
        """A second completion keeps the first reason."""
        session = await service.start_review_session("user-1", now=now)

        first = await service.complete_session(
            "user-1", session.id, CompletionReason.TIMEOUT, now=now + timedelta(minutes=1)
        )
        second = await service.complete_session("user-1", session.id, now=now + timedelta(minutes=2))

        assert first.status == SessionStatus.COMPLETED
        assert second.completion_reason == CompletionReason.TIMEOUT
        assert (await service.sessions.get(session.id)).duration_seconds == 60

    @pytest.mark.asyncio
    async def test_session_auto_completes(self, service, now):
        """Answering every queued card closes the session."""
        session = await service.start_review_session("user-1", now=now)

        await service.submit_answer("user-1", session.id, "a", Rating.GOOD, 1000, now=now)
        outcome = await service.submit_answer(
            "user-1", session.id, "b", Rating.HARD, 1000, now=now + timedelta(seconds=30)
        )

        assert outcome.session_completed
        summary = await service.get_session_summary("user-1", session.id, now=now)
        assert summary.status == SessionStatus.COMPLETED
        assert summary.reviewed_cards == 2
        assert summary.weakness_topics == ["history"]
        assert summary.duration_seconds == 30

    @pytest.mark.asyncio
    async def test_locks_released_after_use(self, service, now):
        """No per-session or per-user lock outlives the call that took it."""
        session = await service.start_review_session("user-1", now=now)

        await service.submit_answer("user-1", session.id, "a", Rating.GOOD, 1000, now=now)
        await service.complete_session("user-1", session.id, now=now)

        assert len(service._session_locks) == 0
        assert len(service._user_locks) == 0


class TestStats:
    """Tests for stats and analytics endpoints."""

    @pytest.mark.asyncio
    async def test_learning_stats_default(self, service):
        """A user without stats gets a zeroed record."""
        stats = await service.get_learning_stats("nobody")

        assert stats.user_id == "nobody"
        assert stats.cards_reviewed == 0

    @pytest.mark.asyncio
    async def test_memory_reviews_feed_streak(self, service, now):
        """Memory-palace activity counts toward the streak."""
        service.activity.record_memory_review("user-1", now - timedelta(days=1))
        service.activity.record_memory_review("user-1", now - timedelta(days=2))

        stats = await service.refresh_learning_stats("user-1", now=now)

        assert stats.current_streak == 2
        assert stats.weekly_active_days == 2
        assert await service.get_learning_stats("user-1") == stats

    @pytest.mark.asyncio
    async def test_review_stats(self, service, now):
        """Review stats only cover the user's own cards."""
        stats = await service.get_review_stats("user-1", now=now)

        assert stats.total == 2
        assert stats.new == 1
        assert stats.review == 1

    @pytest.mark.asyncio
    async def test_weakness_report(self, service, now):
        """Weak answers show up in the weakness report."""
        session = await service.start_review_session("user-1", now=now)
        await service.submit_answer("user-1", session.id, "a", Rating.AGAIN, 1000, now=now)

        report = await service.get_weakness_report("user-1", now=now)

        assert [t.topic for t in report.topics] == ["python"]
        assert report.topics[0].weak_count == 1

    @pytest.mark.asyncio
    async def test_naive_memory_review_does_not_break_answer(self, service, now):
        """A naive memory-palace date is read as UTC during the stats refresh."""
        service.activity.record_memory_review(
            "user-1", (now - timedelta(days=1)).replace(tzinfo=None)
        )
        session = await service.start_review_session("user-1", now=now)

        await service.submit_answer("user-1", session.id, "a", Rating.GOOD, 1000, now=now)

        stats = await service.get_learning_stats("user-1")
        assert stats.cards_reviewed == 1
        assert stats.current_streak == 2
        assert stats.last_studied_at == now

    @pytest.mark.asyncio
    async def test_concurrent_answers_keep_every_increment(self, service, now):
        """Answers from two sessions of one user both reach the stats."""
        service.user_stats = SlowUserStatsStore()
        first = await service.start_review_session("user-1", now=now)
        second = await service.start_review_session("user-1", now=now)

        await asyncio.gather(
            service.submit_answer("user-1", first.id, "a", Rating.GOOD, 1000, now=now),
            service.submit_answer("user-1", second.id, "b", Rating.GOOD, 2000, now=now),
        )

        stats = await service.get_learning_stats("user-1")
        assert stats.cards_reviewed == 2
        assert stats.total_study_time_seconds == 3
