"""AI generation batch endpoints: generate candidates, inspect and review a batch."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status

from ...services.batches import GenerationBatchService, ReviewAction, ReviewDecision
from ..dependencies import get_batch_service, get_current_user_id
from .. import schemas
from .flashcards import to_flashcard_model

router = APIRouter(prefix="/flashcards/batch", tags=["generation"])


@router.post("", response_model=schemas.GenerateFlashcardsResponse, status_code=status.HTTP_200_OK)
async def generate_flashcards(
    payload: schemas.GenerateFlashcardsRequest,
    owner_id: str = Depends(get_current_user_id),
    batches: GenerationBatchService = Depends(get_batch_service),
) -> schemas.GenerateFlashcardsResponse:
    """Generate candidate cards from the supplied text and store a pending batch."""
    batch = await batches.generate_batch(owner_id=owner_id, input_text=payload.input_text)
    return schemas.GenerateFlashcardsResponse(
        batch_id=batch.batch_id,
        generated_at=batch.generated_at,
        input_text_length=batch.input_text_length,
        generated_cards=[schemas.GeneratedCardModel.model_validate(card) for card in batch.generated_cards],
        total_cards_generated=batch.total_cards_generated,
        time_taken_ms=batch.time_taken_ms,
        model_used=batch.model_used,
    )


@router.get("/{batch_id}", response_model=schemas.BatchSummaryModel)
async def get_batch(
    batch_id: uuid.UUID,
    owner_id: str = Depends(get_current_user_id),
    batches: GenerationBatchService = Depends(get_batch_service),
) -> schemas.BatchSummaryModel:
    summary = await batches.get_batch(batch_id=batch_id, owner_id=owner_id)
    return schemas.BatchSummaryModel(
        batch_id=summary.batch_id,
        status=summary.status.value,
        generated_at=summary.generated_at,
        input_text_length=summary.input_text_length,
        total_cards_generated=summary.total_cards_generated,
        cards_accepted=summary.cards_accepted,
        cards_rejected=summary.cards_rejected,
        cards_edited=summary.cards_edited,
        time_taken_ms=summary.time_taken_ms,
        model_used=summary.model_used,
        reviewed_at=summary.reviewed_at,
    )


@router.post(
    "/{batch_id}/review",
    response_model=schemas.ReviewFlashcardsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def review_batch(
    batch_id: uuid.UUID,
    payload: schemas.ReviewFlashcardsRequest,
    owner_id: str = Depends(get_current_user_id),
    batches: GenerationBatchService = Depends(get_batch_service),
) -> schemas.ReviewFlashcardsResponse:
    """Accept, edit or reject the candidates of a pending batch."""
    decisions = [
        ReviewDecision(
            index=decision.index,
            action=ReviewAction(decision.action.value),
            front_text=decision.front_text,
            back_text=decision.back_text,
        )
        for decision in payload.decisions
    ]
    result = await batches.review_batch(batch_id=batch_id, owner_id=owner_id, decisions=decisions)
    return schemas.ReviewFlashcardsResponse(
        batch_id=result.batch_id,
        cards_accepted=result.cards_accepted,
        cards_rejected=result.cards_rejected,
        cards_edited=result.cards_edited,
        created_flashcards=[to_flashcard_model(card) for card in result.created_flashcards],
    )
