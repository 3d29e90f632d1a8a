"""
Learning System Enums

Defines enums for the SM-2 spaced repetition engine, study sessions,
and review analytics.
"""

from enum import Enum


class CardState(str, Enum):
    """
    Card states in the learning state machine.

    State transitions:
    - NEW → LEARNING (first successful review) or NEW (Again on a fresh card)
    - LEARNING → REVIEW (second successful review) or RELEARNING (lapse)
    - REVIEW → REVIEW (success) or RELEARNING (lapse)
    - RELEARNING → LEARNING (recovered) or RELEARNING (still struggling)
    """

    NEW = "new"  # Never successfully reviewed
    LEARNING = "learning"  # One successful repetition
    REVIEW = "review"  # Graduated, growing intervals
    RELEARNING = "relearning"  # Lapsed after at least one repetition


class Rating(int, Enum):
    """
    Review ratings.

    User self-assessment after answering a card. Ratings of GOOD and above
    count as correct answers.
    """

    AGAIN = 1  # Complete blackout, reset progress
    HARD = 2  # Recalled with serious difficulty (counts as a mistake)
    GOOD = 3  # Recalled with some hesitation
    EASY = 4  # Immediate recall, interval bonus

    @property
    def is_correct(self) -> bool:
        """Whether this rating counts as a correct answer."""
        return self >= Rating.GOOD


class SessionMode(str, Enum):
    """
    How a session queue was assembled.
    """

    REVIEW = "review"  # Due + weak + new cards
    EXAM = "exam"  # Ranked already-seen cards, ignores due dates


class SessionSource(str, Enum):
    """
    What started the session.
    """

    TODAY_MISSION = "today-mission"
    MANUAL = "manual"
    EXAM = "exam"


class SessionStatus(str, Enum):
    """
    Session lifecycle. ACTIVE → COMPLETED only, never reversed.
    """

    ACTIVE = "active"
    COMPLETED = "completed"


class CompletionReason(str, Enum):
    """
    Why a session was closed.
    """

    COMPLETED = "completed"  # Every queued card answered
    USER_EXIT = "user-exit"
    TIMEOUT = "timeout"
    ABANDONED = "abandoned"


class ErrorType(str, Enum):
    """
    Learner-reported cause of a wrong answer.
    """

    CONCEPT = "concept"
    CARELESS = "careless"
    MEMORY = "memory"
    UNKNOWN = "unknown"


class RetentionDifficulty(str, Enum):
    """
    Difficulty bucket derived from a card's ease factor.

    - ease < 1.7: VERY_HARD
    - ease 1.7-2.0: HARD
    - ease 2.0-2.5: NORMAL
    - ease 2.5-3.0: EASY
    - ease >= 3.0: VERY_EASY
    """

    VERY_HARD = "very-hard"
    HARD = "hard"
    NORMAL = "normal"
    EASY = "easy"
    VERY_EASY = "very-easy"


class ExamGrade(str, Enum):
    """
    Letter grade for an exam session score.
    """

    A_PLUS = "A+"
    A = "A"
    B_PLUS = "B+"
    B = "B"
    C = "C"
    D = "D"
