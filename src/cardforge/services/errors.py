"""Domain errors raised by the flashcard and generation services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FieldIssue:
    """A single field-level validation problem."""

    field: str
    message: str


class FlashcardError(Exception):
    """Base class for every error the services surface to callers."""

    code = "FLASHCARD_ERROR"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(FlashcardError):
    """Input is malformed or out of range."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, issues: list[FieldIssue] | None = None) -> None:
        super().__init__(message, details=issues)
        self.issues: list[FieldIssue] = list(issues or [])


class FlashcardNotFound(FlashcardError):
    """Flashcard does not exist or belongs to someone else."""

    code = "FLASHCARD_NOT_FOUND"


class BatchNotFound(FlashcardError):
    """Generation batch does not exist or belongs to someone else."""

    code = "BATCH_NOT_FOUND"


class BatchAlreadyReviewed(FlashcardError):
    """Generation batch has already been through review."""

    code = "BATCH_ALREADY_REVIEWED"


class FlashcardLimitExceeded(FlashcardError):
    """The owner would hold more flashcards than allowed."""

    code = "FLASHCARD_LIMIT_EXCEEDED"

    def __init__(self, message: str, *, current_count: int, limit: int) -> None:
        super().__init__(message)
        self.current_count = current_count
        self.limit = limit


class GenerationError(FlashcardError):
    """Card generation failed upstream, before any batch was stored."""

    code = "GENERATION_FAILED"
    suggestion: str | None = None


class GenerationRateLimited(GenerationError):
    code = "GENERATION_RATE_LIMITED"
    suggestion = "Wait a few moments and retry the generation."


class GenerationUnavailable(GenerationError):
    code = "GENERATION_UNAVAILABLE"
    suggestion = "Retry later or create flashcards manually."


class GenerationOutputInvalid(GenerationError):
    code = "GENERATION_OUTPUT_INVALID"
    suggestion = "Try again with different input text."
