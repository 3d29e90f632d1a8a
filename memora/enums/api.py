"""
API-related enums.

Defines enums for rate limiting of expensive, AI-triggered operations.
"""

from enum import Enum


class RateLimitType(str, Enum):
    """
    Rate limit categories for AI-triggered operations.

    The value doubles as the route key that namespaces each user's bucket.
    Limits default to RATE_LIMIT_AI_PER_MINUTE / RATE_LIMIT_AI_PER_DAY and
    can be overridden per category under `rate_limits` in config/default.yaml.

    Usage:
        from memora.enums import RateLimitType
        from memora.services.rate_limit import policy_for

        policy = policy_for(RateLimitType.AI_MNEMONIC)
    """

    # Mnemonic generation for a concept
    AI_MNEMONIC = "ai:mnemonic"

    # Flashcard generation from a concept
    AI_FLASHCARDS = "ai:flashcards"

    # Mind map generation
    AI_MINDMAP = "ai:mindmap"

    # Memory palace generation
    AI_MEMORY_PALACE = "ai:memory-palace"
