"""
Service Error Hierarchy

Provides consistent, discriminated errors for the scheduling core.

Every error carries a class-level `error_code` and `status_code`, so a
caller (HTTP layer, CLI, worker) can map it to a user-facing response by
type or code without inspecting message text.

Usage:
    from memora.errors import AlreadyAnsweredError, ServiceError

    try:
        outcome = submit_answer(session, card, Rating.GOOD, 4200)
    except AlreadyAnsweredError:
        ...  # 409 conflict
    except ServiceError as e:
        return {"error": e.error_code, "message": e.message}

Taxonomy:
    - InvalidStateError: session is not active
    - NotInQueueError: card id outside the session's frozen queue
    - AlreadyAnsweredError: duplicate submission for a card
    - NotFoundError: unknown card/session (raised at the repository boundary)
    - AuthorizationError: record belongs to another user
    - EmptyQueueError: no eligible cards for an exam session
    - RateLimitError: per-user AI generation limit exceeded
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel


# =============================================================================
# Error Response Schema
# =============================================================================


class ErrorResponse(BaseModel):
    """Standardized error payload."""

    error: str  # Error code (e.g., "already_answered")
    message: str  # Human-readable message
    details: Optional[dict] = None  # Additional context
    timestamp: datetime


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP-style status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Store unavailable", status_code=503)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        details: dict = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details

    def to_response(self) -> ErrorResponse:
        """Render the error as a serializable payload."""
        return ErrorResponse(
            error=self.error_code,
            message=self.message,
            details=self.details,
            timestamp=datetime.now(timezone.utc),
        )


class InvalidStateError(ServiceError):
    """
    Session state error.

    Raised when answering or mutating a session that is no longer active.
    """

    status_code = 409
    error_code = "invalid_state"


class NotInQueueError(ServiceError):
    """
    Queue membership error.

    Raised when a submitted card id is not part of the session's frozen queue.
    """

    status_code = 400
    error_code = "not_in_queue"


class AlreadyAnsweredError(ServiceError):
    """
    Duplicate answer error.

    Raised when a card was already answered within the same session.
    """

    status_code = 409
    error_code = "already_answered"


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a requested card or session doesn't exist.
    """

    status_code = 404
    error_code = "not_found"


class AuthorizationError(ServiceError):
    """
    Authorization error.

    Raised when a card or session belongs to a different user.
    """

    status_code = 403
    error_code = "forbidden"


class EmptyQueueError(ServiceError):
    """
    Empty queue error.

    Raised when no eligible cards exist for an exam session.
    """

    status_code = 400
    error_code = "empty_queue"


class RateLimitError(ServiceError):
    """
    Rate limit exceeded error.

    Raised when a user exceeds the AI generation rate limits.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"
