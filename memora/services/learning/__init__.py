"""
Learning System Services

Services for the SM-2 spaced repetition engine and study sessions.

Modules:
- memory_model: SM-2 step, initial schedule, retention estimate
- card_selector: Due/new card selection, streaks, review stats, workload
- queue_builder: Review (due + weak + new) and exam queues
- session_engine: Session creation, answer submission, completion
- stats_aggregator: Streak and 7-day retention refresh
- topic_analytics: Topic breakdown, session summary, weakness topics
- study_service: Async orchestration over repository protocols
- repositories: Storage protocols and in-memory implementations

Usage:
    from memora.services.learning import (
        StudyService,
        build_review_queue,
        submit_answer,
    )
"""

from memora.services.learning.memory_model import (
    RetentionEstimate,
    ScheduleStep,
    estimate_retention,
    initialize,
    schedule_review,
    step,
)
from memora.services.learning.card_selector import (
    StreakResult,
    due_cards,
    new_cards,
    projected_workload,
    review_stats,
    streak,
)
from memora.services.learning.queue_builder import (
    ReviewQueue,
    build_exam_queue,
    build_review_queue,
)
from memora.services.learning.session_engine import (
    AnswerOutcome,
    complete,
    create_exam_session,
    create_review_session,
    submit_answer,
)
from memora.services.learning.stats_aggregator import refresh
from memora.services.learning.topic_analytics import (
    summarize_session,
    topic_breakdown,
    weakness_topics,
)
from memora.services.learning.study_service import StudyService

__all__ = [
    # Memory model
    "ScheduleStep",
    "RetentionEstimate",
    "step",
    "initialize",
    "estimate_retention",
    "schedule_review",
    # Selection
    "StreakResult",
    "due_cards",
    "new_cards",
    "streak",
    "review_stats",
    "projected_workload",
    # Queues & sessions
    "ReviewQueue",
    "build_review_queue",
    "build_exam_queue",
    "AnswerOutcome",
    "create_review_session",
    "create_exam_session",
    "submit_answer",
    "complete",
    # Stats & analytics
    "refresh",
    "topic_breakdown",
    "summarize_session",
    "weakness_topics",
    # Orchestration
    "StudyService",
]
