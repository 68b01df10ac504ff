"""Pydantic models for API request and response payloads."""

from __future__ import annotations

import datetime as dt
import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FlashcardModel(BaseModel):
    """Serialized flashcard; the owner is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    front_text: str
    back_text: str
    is_ai_generated: bool
    was_edited: bool
    generation_batch_id: uuid.UUID | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class GenerateFlashcardsRequest(BaseModel):
    """Source text to generate candidates from."""

    model_config = ConfigDict(str_strip_whitespace=True)

    input_text: str = Field(..., min_length=1000, max_length=10000)


class GeneratedCardModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int
    front_text: str
    back_text: str


class GenerateFlashcardsResponse(BaseModel):
    """A stored pending batch and its candidates."""

    batch_id: uuid.UUID
    generated_at: dt.datetime
    input_text_length: int
    generated_cards: list[GeneratedCardModel]
    total_cards_generated: int
    time_taken_ms: int
    model_used: str


class BatchSummaryModel(BaseModel):
    batch_id: uuid.UUID
    status: str
    generated_at: dt.datetime
    input_text_length: int
    total_cards_generated: int
    cards_accepted: int
    cards_rejected: int
    cards_edited: int
    time_taken_ms: int | None = None
    model_used: str | None = None
    reviewed_at: dt.datetime | None = None


class ReviewActionValue(str, Enum):
    """Enumerate supported review actions."""

    ACCEPT = "accept"
    REJECT = "reject"
    EDIT = "edit"


class ReviewDecisionModel(BaseModel):
    """Verdict on one candidate; accepted and edited cards carry their final text."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    index: int = Field(..., ge=0)
    action: ReviewActionValue
    front_text: str | None = Field(default=None, min_length=10, max_length=500)
    back_text: str | None = Field(default=None, min_length=10, max_length=1000)

    @model_validator(mode="after")
    def _require_text_for_created_cards(self) -> "ReviewDecisionModel":
        if self.action is not ReviewActionValue.REJECT and (self.front_text is None or self.back_text is None):
            raise ValueError("front_text and back_text are required for accept and edit decisions")
        return self


class ReviewFlashcardsRequest(BaseModel):
    """Body schema for reviewing a batch."""

    model_config = ConfigDict(extra="forbid")

    decisions: list[ReviewDecisionModel] = Field(..., min_length=1)

    @field_validator("decisions")
    @classmethod
    def _unique_indices(cls, decisions: list[ReviewDecisionModel]) -> list[ReviewDecisionModel]:
        indices = [decision.index for decision in decisions]
        if len(indices) != len(set(indices)):
            raise ValueError("each candidate index may appear only once")
        return decisions


class ReviewFlashcardsResponse(BaseModel):
    batch_id: uuid.UUID
    cards_accepted: int
    cards_rejected: int
    cards_edited: int
    created_flashcards: list[FlashcardModel]


class CreateFlashcardRequest(BaseModel):
    """Payload for creating a flashcard manually."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    front_text: str = Field(..., min_length=10, max_length=500)
    back_text: str = Field(..., min_length=10, max_length=1000)


class UpdateFlashcardRequest(BaseModel):
    """Payload for updating mutable flashcard fields."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    front_text: str | None = Field(default=None, min_length=10, max_length=500)
    back_text: str | None = Field(default=None, min_length=10, max_length=1000)

    @model_validator(mode="after")
    def _require_one_field(self) -> "UpdateFlashcardRequest":
        if self.front_text is None and self.back_text is None:
            raise ValueError("at least one of front_text or back_text must be provided")
        return self


class PaginationModel(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class UserStatsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_flashcards: int
    flashcard_limit: int
    remaining_capacity: int


class FlashcardListResponse(BaseModel):
    flashcards: list[FlashcardModel]
    pagination: PaginationModel
    user_stats: UserStatsModel


class DeleteFlashcardResponse(BaseModel):
    message: str
    id: uuid.UUID


class BulkDeleteFlashcardsResponse(BaseModel):
    message: str
    deleted_count: int
    deleted_ids: list[uuid.UUID]


class ErrorDetailModel(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str
    message: str
    details: list[ErrorDetailModel] | None = None
    current_count: int | None = None
    limit: int | None = None
    suggestion: str | None = None
