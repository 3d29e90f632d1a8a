"""
Base Models for Record and Option Validation

This module provides base classes with the validation settings shared by
every record the scheduling core consumes or returns.

MOTIVATION:
    The core receives plain records from collaborators (repositories,
    request handlers) and hands updated copies back. Mismatched field names
    between a collaborator and the core are a common source of silent bugs,
    so option objects reject unknown fields while stored records tolerate
    extra columns.

Usage:
    # For caller-supplied options (strictest validation)
    class QueueOptions(StrictRequest):
        max_cards: int

    # For stored records (allows extra fields from the store)
    class CardRecord(RecordModel):
        id: str

Architecture:
    Caller options → StrictRequest (extra="forbid") → core operation
    Stored document → RecordModel (extra="ignore") → core operation → updated copy
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for caller-supplied options with strict validation.

    Rejects any fields not explicitly declared in the model, catching
    typos and mismatches at the boundary rather than deep in a computation.

    Features:
        - extra="forbid": Unknown fields raise ValidationError
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings

    Example:
        >>> class ExamOptions(StrictRequest):
        ...     count: int
        >>>
        >>> ExamOptions(count=5)  # OK
        >>> ExamOptions(cnt=5)  # Raises ValidationError
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
    )


class RecordModel(BaseModel):
    """
    Base model for stored records (cards, sessions, stats).

    More lenient than StrictRequest: stores may carry extra columns the core
    does not use. Assignments are validated so invariants expressed as field
    constraints cannot be broken after construction.

    Features:
        - extra="ignore": Silently ignores extra fields
        - validate_assignment=True: Re-validates on attribute assignment
        - from_attributes=True: Allows ORM/document object conversion
    """

    model_config = ConfigDict(
        extra="ignore",  # Allow extra fields from the store
        validate_assignment=True,
        from_attributes=True,  # Enable ORM conversion
    )


class ResultModel(BaseModel):
    """
    Base model for computed results (stats, summaries, reports).

    Results are values: they are never mutated after being returned.
    """

    model_config = ConfigDict(frozen=True)
