"""Manual flashcard management endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from ...services.errors import FieldIssue, ValidationError
from ...services.flashcards import FlashcardData, FlashcardService
from ..dependencies import get_current_user_id, get_flashcard_service
from .. import schemas

router = APIRouter(prefix="/flashcards", tags=["flashcards"])


def to_flashcard_model(card: FlashcardData) -> schemas.FlashcardModel:
    return schemas.FlashcardModel.model_validate(card)


@router.get("", response_model=schemas.FlashcardListResponse)
async def list_flashcards(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    owner_id: str = Depends(get_current_user_id),
    flashcards: FlashcardService = Depends(get_flashcard_service),
) -> schemas.FlashcardListResponse:
    """Return a page of the owner's flashcards with capacity usage."""
    result = await flashcards.list_flashcards(owner_id, page=page, limit=limit)
    return schemas.FlashcardListResponse(
        flashcards=[to_flashcard_model(card) for card in result.flashcards],
        pagination=schemas.PaginationModel(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
        user_stats=schemas.UserStatsModel.model_validate(result.stats),
    )


@router.post("", response_model=schemas.FlashcardModel, status_code=status.HTTP_201_CREATED)
async def create_flashcard(
    payload: schemas.CreateFlashcardRequest,
    owner_id: str = Depends(get_current_user_id),
    flashcards: FlashcardService = Depends(get_flashcard_service),
) -> schemas.FlashcardModel:
    """Create a flashcard by hand."""
    card = await flashcards.create_flashcard(
        owner_id,
        front_text=payload.front_text,
        back_text=payload.back_text,
    )
    return to_flashcard_model(card)


@router.delete("", response_model=schemas.BulkDeleteFlashcardsResponse)
async def delete_flashcards(
    ids: str = Query(..., description="Comma-separated flashcard ids"),
    owner_id: str = Depends(get_current_user_id),
    flashcards: FlashcardService = Depends(get_flashcard_service),
) -> schemas.BulkDeleteFlashcardsResponse:
    """Delete several flashcards; ids the caller does not own are ignored."""
    result = await flashcards.delete_flashcards(owner_id, _parse_id_list(ids))
    return schemas.BulkDeleteFlashcardsResponse(
        message=f"Successfully deleted {result.deleted_count} flashcard(s)",
        deleted_count=result.deleted_count,
        deleted_ids=result.deleted_ids,
    )


@router.get("/{flashcard_id}", response_model=schemas.FlashcardModel)
async def get_flashcard(
    flashcard_id: uuid.UUID,
    owner_id: str = Depends(get_current_user_id),
    flashcards: FlashcardService = Depends(get_flashcard_service),
) -> schemas.FlashcardModel:
    card = await flashcards.get_flashcard(owner_id, flashcard_id)
    return to_flashcard_model(card)


@router.patch("/{flashcard_id}", response_model=schemas.FlashcardModel)
async def update_flashcard(
    flashcard_id: uuid.UUID,
    payload: schemas.UpdateFlashcardRequest,
    owner_id: str = Depends(get_current_user_id),
    flashcards: FlashcardService = Depends(get_flashcard_service),
) -> schemas.FlashcardModel:
    """Update one or both sides of a flashcard."""
    card = await flashcards.update_flashcard(
        owner_id,
        flashcard_id,
        front_text=payload.front_text,
        back_text=payload.back_text,
    )
    return to_flashcard_model(card)


@router.delete("/{flashcard_id}", response_model=schemas.DeleteFlashcardResponse)
async def delete_flashcard(
    flashcard_id: uuid.UUID,
    owner_id: str = Depends(get_current_user_id),
    flashcards: FlashcardService = Depends(get_flashcard_service),
) -> schemas.DeleteFlashcardResponse:
    deleted_id = await flashcards.delete_flashcard(owner_id, flashcard_id)
    return schemas.DeleteFlashcardResponse(message="Flashcard deleted successfully", id=deleted_id)


def _parse_id_list(raw: str) -> list[uuid.UUID]:
    """Split a comma-separated id list, rejecting the whole request on any bad id."""
    values = [chunk.strip() for chunk in raw.split(",") if chunk.strip()]
    if not values:
        raise ValidationError("No flashcard ids provided.", [FieldIssue(field="ids", message="Provide at least one id.")])

    parsed: list[uuid.UUID] = []
    issues: list[FieldIssue] = []
    for value in values:
        try:
            parsed.append(uuid.UUID(value))
        except ValueError:
            issues.append(FieldIssue(field="ids", message=f"Invalid flashcard id: {value!r}."))
    if issues:
        raise ValidationError("Invalid flashcard ids.", issues)
    return parsed
