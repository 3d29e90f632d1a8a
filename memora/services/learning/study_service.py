"""
Study Service

Async orchestration of the study loop around the pure scheduling core:
load records from the repositories, run the core operation, save what it
returns.

Responsibilities:
- Start review and exam sessions from the user's card collection
- Submit answers (card, session, log and stats updated together)
- Close sessions and build session summaries
- Serve learning stats, review stats and weakness reports

Ownership is enforced here: every card and session must belong to the
requesting user. Answers and completion for one session are serialized
with a per-session asyncio.Lock so two concurrent submissions cannot both
read the same session snapshot. Stats refreshes are serialized per user
so answers from two sessions of one user cannot lose an increment. Both
locks are process-local and dropped once idle.

Usage:
    from memora.services.learning import StudyService

    service = StudyService.in_memory()
    session = await service.start_review_session("user-1")
    outcome = await service.submit_answer(
        "user-1", session.id, session.card_queue[0], Rating.GOOD, 3500
    )
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from memora.enums.learning import CompletionReason, ErrorType, Rating, SessionSource
from memora.errors import AuthorizationError, NotFoundError
from memora.models.learning import (
    Card,
    ExamQueueOptions,
    LearningStats,
    ReviewQueueOptions,
    ReviewStats,
    SessionSummary,
    StudySession,
    WeaknessReport,
)
from memora.services.learning import (
    card_selector,
    session_engine,
    stats_aggregator,
    topic_analytics,
)
from memora.services.learning.repositories import (
    ActivityStore,
    CardRepository,
    InMemoryActivityStore,
    InMemoryCardRepository,
    InMemoryReviewLogStore,
    InMemorySessionStore,
    InMemoryUserStatsStore,
    ReviewLogStore,
    SessionStore,
    UserStatsStore,
)
from memora.services.learning.rounding import round_half_up
from memora.services.learning.session_engine import AnswerOutcome
from memora.services.locks import KeyedLock

logger = logging.getLogger(__name__)


class StudyService:
    """
    Service for running study sessions against pluggable storage.

    Provides:
    - Session creation (review / exam)
    - Answer submission with stats refresh
    - Session completion and summaries
    - Learning stats, review stats and weakness analytics
    """

    def __init__(
        self,
        cards: CardRepository,
        review_log: ReviewLogStore,
        sessions: SessionStore,
        activity: ActivityStore,
        user_stats: UserStatsStore,
    ):
        """
        Initialize the study service.

        Args:
            cards: Card repository
            review_log: Append-only review log
            sessions: Session document store
            activity: Memory-palace activity source (counts toward streaks)
            user_stats: Learning stats store
        """
        self.cards = cards
        self.review_log = review_log
        self.sessions = sessions
        self.activity = activity
        self.user_stats = user_stats
        self._session_locks = KeyedLock()
        self._user_locks = KeyedLock()

    @classmethod
    def in_memory(cls, cards: Optional[list[Card]] = None) -> "StudyService":
        """Create a service backed by in-memory stores."""
        return cls(
            cards=InMemoryCardRepository(cards),
            review_log=InMemoryReviewLogStore(),
            sessions=InMemorySessionStore(),
            activity=InMemoryActivityStore(),
            user_stats=InMemoryUserStatsStore(),
        )

    # =========================================================================
    # Loading helpers
    # =========================================================================

    async def _get_owned_session(self, user_id: str, session_id: str) -> StudySession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(
                f"Study session {session_id} not found",
                details={"session_id": session_id},
            )
        if session.user_id != user_id:
            logger.warning(f"User {user_id} denied access to session {session_id}")
            raise AuthorizationError("Session belongs to another user")
        return session

    async def _get_owned_card(self, user_id: str, card_id: str) -> Card:
        card = await self.cards.get(card_id)
        if card is None:
            raise NotFoundError(
                f"Flashcard {card_id} not found", details={"card_id": card_id}
            )
        if card.user_id != user_id:
            logger.warning(f"User {user_id} denied access to card {card_id}")
            raise AuthorizationError("Flashcard belongs to another user")
        return card

    # =========================================================================
    # Sessions
    # =========================================================================

    async def start_review_session(
        self,
        user_id: str,
        options: Optional[ReviewQueueOptions] = None,
        source: SessionSource = SessionSource.MANUAL,
        now: Optional[datetime] = None,
    ) -> StudySession:
        """Build a review queue from the user's cards and persist the session."""
        cards = await self.cards.list_for_user(user_id)
        session = session_engine.create_review_session(
            user_id, cards, options, now=now, source=source
        )
        await self.sessions.save(session)
        return session

    async def start_exam_session(
        self,
        user_id: str,
        options: Optional[ExamQueueOptions] = None,
        time_limit_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> StudySession:
        """
        Build an exam queue from the user's cards and persist the session.

        Raises:
            EmptyQueueError: No already-seen card matches the filters
        """
        cards = await self.cards.list_for_user(user_id)
        session = session_engine.create_exam_session(
            user_id, cards, options, now=now, time_limit_minutes=time_limit_minutes
        )
        await self.sessions.save(session)
        return session

    async def submit_answer(
        self,
        user_id: str,
        session_id: str,
        card_id: str,
        rating: Rating,
        response_time_ms: int,
        error_tag: Optional[ErrorType] = None,
        now: Optional[datetime] = None,
    ) -> AnswerOutcome:
        """
        Record an answer and persist the card, session, log entry and stats.

        Args:
            user_id: Requesting user
            session_id: Active session id
            card_id: Answered card id
            rating: Learner's self-assessment
            response_time_ms: Time to answer in milliseconds
            error_tag: Optional cause of a wrong answer
            now: Answer time (default: current UTC time)

        Returns:
            AnswerOutcome from the session engine

        Raises:
            NotFoundError: Unknown session or card
            AuthorizationError: Session or card belongs to another user
            InvalidStateError / NotInQueueError / AlreadyAnsweredError
        """
        now = now or datetime.now(timezone.utc)

        async with self._session_locks.hold(session_id):
            session = await self._get_owned_session(user_id, session_id)
            session_engine.check_answerable(session, card_id)
            card = await self._get_owned_card(user_id, card_id)

            outcome = session_engine.submit_answer(
                session, card, rating, response_time_ms, error_tag=error_tag, now=now
            )

            await self.cards.save(outcome.card)
            await self.review_log.append(outcome.log_entry)
            await self.sessions.save(outcome.session)

        await self.refresh_learning_stats(
            user_id,
            reviewed_increment=1,
            study_time_increment_seconds=round_half_up(response_time_ms / 1000),
            now=now,
        )
        return outcome

    async def complete_session(
        self,
        user_id: str,
        session_id: str,
        reason: CompletionReason = CompletionReason.USER_EXIT,
        now: Optional[datetime] = None,
    ) -> StudySession:
        """Close a session; closing an already-completed session is a no-op."""
        async with self._session_locks.hold(session_id):
            session = await self._get_owned_session(user_id, session_id)
            completed = session_engine.complete(session, reason, now=now)
            if completed is not session:
                await self.sessions.save(completed)
        return completed

    async def get_session_summary(
        self,
        user_id: str,
        session_id: str,
        now: Optional[datetime] = None,
    ) -> SessionSummary:
        """Summary (and exam report for exam sessions) of one session."""
        session = await self._get_owned_session(user_id, session_id)
        entries = await self.review_log.list_for_session(session_id)
        cards = await self.cards.list_for_user(user_id)
        return topic_analytics.summarize_session(session, entries, cards, now=now)

    # =========================================================================
    # Stats
    # =========================================================================

    async def refresh_learning_stats(
        self,
        user_id: str,
        reviewed_increment: int = 0,
        study_time_increment_seconds: int = 0,
        now: Optional[datetime] = None,
    ) -> LearningStats:
        """Recompute and persist the user's learning stats from all activity."""
        async with self._user_locks.hold(user_id):
            entries = await self.review_log.list_for_user(user_id)
            memory_dates = await self.activity.memory_review_dates(user_id)
            current = await self.user_stats.get(user_id)

            stats = stats_aggregator.refresh(
                user_id,
                review_dates=[entry.reviewed_at for entry in entries],
                memory_review_dates=memory_dates,
                current=current,
                reviewed_increment=reviewed_increment,
                study_time_increment_seconds=study_time_increment_seconds,
                now=now,
            )
            await self.user_stats.save(stats)
        return stats

    async def get_learning_stats(self, user_id: str) -> LearningStats:
        """Stored learning stats, zeroed when the user has none yet."""
        stats = await self.user_stats.get(user_id)
        return stats or LearningStats(user_id=user_id)

    async def get_review_stats(
        self, user_id: str, now: Optional[datetime] = None
    ) -> ReviewStats:
        """State distribution and lifetime accuracy of the user's cards."""
        now = now or datetime.now(timezone.utc)
        cards = await self.cards.list_for_user(user_id)
        return card_selector.review_stats(cards, now)

    async def get_weakness_report(
        self,
        user_id: str,
        days: Optional[int] = None,
        daily_review_target: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> WeaknessReport:
        """Recent weak topics and review-goal progress for the user."""
        entries = await self.review_log.list_for_user(user_id)
        cards = await self.cards.list_for_user(user_id)
        return topic_analytics.weakness_topics(
            entries,
            cards,
            now=now,
            days=days,
            daily_review_target=daily_review_target,
        )
