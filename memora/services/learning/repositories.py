"""
Study Data Repositories

Interfaces the study service uses to load and save records, plus in-memory
implementations for single-process use and tests.

The scheduling core itself never touches storage. A deployment backed by a
database provides its own classes satisfying these protocols; in a
multi-process deployment the SessionStore must reject stale writes (e.g. a
conditional update on a version field), since the per-session lock in the
study service only serializes answers within one process. The same holds
for the UserStatsStore: the per-user lock around stats refreshes is
process-local, so a shared store needs an atomic increment or a version
check on LearningStats to keep cards_reviewed and study time exact.

Usage:
    from memora.services.learning.repositories import InMemoryCardRepository

    cards = InMemoryCardRepository()
    await cards.save(card)
    owned = await cards.list_for_user("user-1")
"""

from datetime import datetime
from typing import Optional, Protocol

from memora.models.learning import Card, LearningStats, ReviewLogEntry, StudySession


# ===========================================
# Interfaces
# ===========================================


class CardRepository(Protocol):
    """Supplies a user's cards and receives updated cards."""

    async def get(self, card_id: str) -> Optional[Card]:
        ...

    async def list_for_user(self, user_id: str) -> list[Card]:
        ...

    async def save(self, card: Card) -> None:
        ...


class ReviewLogStore(Protocol):
    """Append-only store of review log entries."""

    async def append(self, entry: ReviewLogEntry) -> None:
        ...

    async def list_for_user(self, user_id: str) -> list[ReviewLogEntry]:
        ...

    async def list_for_session(self, session_id: str) -> list[ReviewLogEntry]:
        ...


class SessionStore(Protocol):
    """Persists session documents."""

    async def get(self, session_id: str) -> Optional[StudySession]:
        ...

    async def save(self, session: StudySession) -> None:
        ...


class ActivityStore(Protocol):
    """Non-flashcard study activity (memory-palace review completions)."""

    async def memory_review_dates(self, user_id: str) -> list[datetime]:
        ...


class UserStatsStore(Protocol):
    """Per-user learning stats aggregate."""

    async def get(self, user_id: str) -> Optional[LearningStats]:
        ...

    async def save(self, stats: LearningStats) -> None:
        ...


# ===========================================
# In-memory implementations
# ===========================================


class InMemoryCardRepository:
    def __init__(self, cards: Optional[list[Card]] = None):
        self._cards: dict[str, Card] = {card.id: card for card in cards or []}

    async def get(self, card_id: str) -> Optional[Card]:
        return self._cards.get(card_id)

    async def list_for_user(self, user_id: str) -> list[Card]:
        return [card for card in self._cards.values() if card.user_id == user_id]

    async def save(self, card: Card) -> None:
        self._cards[card.id] = card


class InMemoryReviewLogStore:
    def __init__(self):
        self._entries: list[ReviewLogEntry] = []

    async def append(self, entry: ReviewLogEntry) -> None:
        self._entries.append(entry)

    async def list_for_user(self, user_id: str) -> list[ReviewLogEntry]:
        return [entry for entry in self._entries if entry.user_id == user_id]

    async def list_for_session(self, session_id: str) -> list[ReviewLogEntry]:
        return [entry for entry in self._entries if entry.session_id == session_id]


class InMemorySessionStore:
    def __init__(self):
        self._sessions: dict[str, StudySession] = {}

    async def get(self, session_id: str) -> Optional[StudySession]:
        return self._sessions.get(session_id)

    async def save(self, session: StudySession) -> None:
        self._sessions[session.id] = session


class InMemoryActivityStore:
    def __init__(self, memory_reviews: Optional[dict[str, list[datetime]]] = None):
        self._memory_reviews = memory_reviews or {}

    async def memory_review_dates(self, user_id: str) -> list[datetime]:
        return list(self._memory_reviews.get(user_id, []))

    def record_memory_review(self, user_id: str, finished_at: datetime) -> None:
        self._memory_reviews.setdefault(user_id, []).append(finished_at)


class InMemoryUserStatsStore:
    def __init__(self):
        self._stats: dict[str, LearningStats] = {}

    async def get(self, user_id: str) -> Optional[LearningStats]:
        return self._stats.get(user_id)

    async def save(self, stats: LearningStats) -> None:
        self._stats[stats.user_id] = stats
