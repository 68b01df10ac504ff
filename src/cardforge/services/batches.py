"""AI generation batches: producing candidates and reviewing them into flashcards."""

from __future__ import annotations

import datetime as dt
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..logger_factory import get_logger
from .errors import (
    BatchAlreadyReviewed,
    BatchNotFound,
    FieldIssue,
    FlashcardLimitExceeded,
    GenerationOutputInvalid,
    ValidationError,
)
from .flashcards import FLASHCARD_LIMIT_PER_USER, FlashcardData, to_flashcard_data, validate_card_text
from .llm import CardGenerator, GeneratedCard
from .storage.database import Database
from .storage.models import BatchStatus, FlashcardRecord, GenerationBatchRecord
from .storage.repositories import FlashcardRepository, GenerationBatchRepository, UserRepository

logger = get_logger(__name__)

INPUT_TEXT_MIN_LENGTH = 1000
INPUT_TEXT_MAX_LENGTH = 10000


class ReviewAction(str, Enum):
    """Verdict a learner gives a single candidate."""

    ACCEPT = "accept"
    REJECT = "reject"
    EDIT = "edit"


@dataclass(frozen=True)
class ReviewDecision:
    """A verdict on the candidate at ``index``; texts are the ones to persist."""

    index: int
    action: ReviewAction
    front_text: str | None = None
    back_text: str | None = None

    @property
    def creates_flashcard(self) -> bool:
        return self.action is not ReviewAction.REJECT


@dataclass(frozen=True)
class GeneratedBatch:
    """A freshly stored pending batch together with its candidates."""

    batch_id: uuid.UUID
    generated_at: dt.datetime
    input_text_length: int
    generated_cards: list[GeneratedCard]
    total_cards_generated: int
    time_taken_ms: int
    model_used: str


@dataclass(frozen=True)
class BatchSummary:
    """Owner-free view of a stored batch."""

    batch_id: uuid.UUID
    status: BatchStatus
    generated_at: dt.datetime
    input_text_length: int
    total_cards_generated: int
    cards_accepted: int
    cards_rejected: int
    cards_edited: int
    time_taken_ms: int | None
    model_used: str | None
    reviewed_at: dt.datetime | None


@dataclass(frozen=True)
class ReviewResult:
    """Tallies of a completed review and the cards it created."""

    batch_id: uuid.UUID
    cards_accepted: int
    cards_rejected: int
    cards_edited: int
    created_flashcards: list[FlashcardData]


class GenerationBatchService:
    """Coordinate candidate generation and the one-shot review of each batch."""

    def __init__(
        self,
        *,
        database: Database,
        generator: CardGenerator,
        batch_repository: GenerationBatchRepository | None = None,
        flashcard_repository: FlashcardRepository | None = None,
        user_repository: UserRepository | None = None,
        flashcard_limit: int = FLASHCARD_LIMIT_PER_USER,
    ) -> None:
        self._database = database
        self._generator = generator
        self._batches = batch_repository or GenerationBatchRepository()
        self._flashcards = flashcard_repository or FlashcardRepository()
        self._users = user_repository or UserRepository()
        self._limit = flashcard_limit

    async def generate_batch(self, *, owner_id: str, input_text: str) -> GeneratedBatch:
        """Ask the generator for candidates and store a pending batch for them."""
        text = input_text.strip()
        if not INPUT_TEXT_MIN_LENGTH <= len(text) <= INPUT_TEXT_MAX_LENGTH:
            raise ValidationError(
                "Invalid input text length.",
                [
                    FieldIssue(
                        field="input_text",
                        message=(
                            f"Must be between {INPUT_TEXT_MIN_LENGTH} and {INPUT_TEXT_MAX_LENGTH} "
                            f"characters, got {len(text)}."
                        ),
                    )
                ],
            )

        # No transaction is held open while waiting on the upstream model.
        start_time = time.perf_counter()
        result = await self._generator.generate_cards(input_text=text)
        time_taken_ms = int((time.perf_counter() - start_time) * 1000)

        if not result.cards:
            raise GenerationOutputInvalid("The generator returned no flashcards.")

        async with self._database.session() as session:
            await self._users.ensure_user(session, user_id=owner_id)
            record = await self._batches.insert(
                session,
                owner_id=owner_id,
                input_text_length=len(text),
                total_cards_generated=len(result.cards),
                time_taken_ms=time_taken_ms,
                model_used=result.model_used,
            )
            await session.commit()

        logger.info(
            "Batch generated: batch_id=%s, owner=%s, cards=%d, model=%s, duration_ms=%d",
            record.id,
            owner_id,
            len(result.cards),
            result.model_used,
            time_taken_ms,
        )
        return GeneratedBatch(
            batch_id=record.id,
            generated_at=record.generated_at,
            input_text_length=record.input_text_length,
            generated_cards=list(result.cards),
            total_cards_generated=record.total_cards_generated,
            time_taken_ms=time_taken_ms,
            model_used=result.model_used,
        )

    async def get_batch(self, *, batch_id: uuid.UUID, owner_id: str) -> BatchSummary:
        async with self._database.session() as session:
            record = await self._batches.find_by_id_for_owner(session, batch_id=batch_id, owner_id=owner_id)
            if record is None:
                raise BatchNotFound("Generation batch not found.")
            return _to_batch_summary(record)

    async def review_batch(
        self,
        *,
        batch_id: uuid.UUID,
        owner_id: str,
        decisions: Sequence[ReviewDecision],
    ) -> ReviewResult:
        """
        Apply the learner's decisions to a pending batch.

        Checks run in a fixed order and each one aborts the whole review:
        decision shape, batch existence and ownership, pending status, index
        bounds, then owner capacity. Decision shape needs no database access
        and is checked first, so a malformed body raises ValidationError even
        when the batch is foreign, missing or already reviewed; only index
        bounds wait for the batch. The status transition and the flashcard
        inserts share one transaction, so either every accepted or edited card
        is stored and the batch is marked reviewed, or nothing changes.
        Candidates without a decision are dropped.
        """
        cleaned = _validate_decisions(decisions)
        to_create = [decision for decision in cleaned if decision.creates_flashcard]
        accepted = sum(1 for decision in cleaned if decision.action is ReviewAction.ACCEPT)
        rejected = sum(1 for decision in cleaned if decision.action is ReviewAction.REJECT)
        edited = sum(1 for decision in cleaned if decision.action is ReviewAction.EDIT)

        async with self._database.session() as session:
            batch = await self._batches.find_by_id_for_owner(session, batch_id=batch_id, owner_id=owner_id)
            if batch is None:
                raise BatchNotFound("Generation batch not found.")
            if batch.status is BatchStatus.REVIEWED:
                raise BatchAlreadyReviewed("This generation batch has already been reviewed.")

            _check_index_bounds(cleaned, batch.total_cards_generated)

            await self._users.lock_user(session, user_id=owner_id)
            current = await self._flashcards.count_by_owner(session, owner_id=owner_id)
            if current + len(to_create) > self._limit:
                logger.info(
                    "Review refused over capacity: batch_id=%s, owner=%s, current=%d, requested=%d, limit=%d",
                    batch_id,
                    owner_id,
                    current,
                    len(to_create),
                    self._limit,
                )
                raise FlashcardLimitExceeded(
                    f"Accepting {len(to_create)} card(s) would exceed the limit of {self._limit} flashcards.",
                    current_count=current,
                    limit=self._limit,
                )

            transitioned = await self._batches.update_counts(
                session,
                batch_id=batch_id,
                owner_id=owner_id,
                accepted=accepted,
                rejected=rejected,
                edited=edited,
            )
            if not transitioned:
                # Another review committed between the status read and the update.
                raise BatchAlreadyReviewed("This generation batch has already been reviewed.")

            records = await self._flashcards.insert_many(
                session,
                [
                    FlashcardRecord(
                        user_id=owner_id,
                        front_text=decision.front_text,
                        back_text=decision.back_text,
                        is_ai_generated=True,
                        was_edited=decision.action is ReviewAction.EDIT,
                        generation_batch_id=batch_id,
                    )
                    for decision in to_create
                ],
            )
            await session.commit()

        uncovered = batch.total_cards_generated - len(cleaned)
        logger.info(
            "Batch reviewed: batch_id=%s, owner=%s, accepted=%d, rejected=%d, edited=%d, uncovered=%d",
            batch_id,
            owner_id,
            accepted,
            rejected,
            edited,
            uncovered,
        )
        return ReviewResult(
            batch_id=batch_id,
            cards_accepted=accepted,
            cards_rejected=rejected,
            cards_edited=edited,
            created_flashcards=[to_flashcard_data(record) for record in records],
        )


def _validate_decisions(decisions: Sequence[ReviewDecision]) -> list[ReviewDecision]:
    """Reject malformed decision lists and return copies with trimmed texts."""
    if not decisions:
        raise ValidationError(
            "At least one decision is required.",
            [FieldIssue(field="decisions", message="Must contain at least one decision.")],
        )

    issues: list[FieldIssue] = []
    seen: set[int] = set()
    cleaned: list[ReviewDecision] = []
    for position, decision in enumerate(decisions):
        prefix = f"decisions[{position}]."
        if decision.index < 0:
            issues.append(FieldIssue(field=f"{prefix}index", message="Must be a non-negative integer."))
        elif decision.index in seen:
            issues.append(FieldIssue(field=f"{prefix}index", message=f"Duplicate decision for index {decision.index}."))
        seen.add(decision.index)

        if not decision.creates_flashcard:
            cleaned.append(decision)
            continue
        try:
            front, back = validate_card_text(decision.front_text, decision.back_text, field_prefix=prefix)
        except ValidationError as exc:
            issues.extend(exc.issues)
            continue
        cleaned.append(
            ReviewDecision(index=decision.index, action=decision.action, front_text=front, back_text=back)
        )

    if issues:
        raise ValidationError("Invalid review decisions.", issues)
    return cleaned


def _check_index_bounds(decisions: Sequence[ReviewDecision], total_cards_generated: int) -> None:
    highest = max(decisions, key=lambda decision: decision.index)
    if highest.index >= total_cards_generated:
        position = next(i for i, decision in enumerate(decisions) if decision is highest)
        raise ValidationError(
            f"Decision index {highest.index} is out of range for a batch of {total_cards_generated} card(s).",
            [
                FieldIssue(
                    field=f"decisions[{position}].index",
                    message=f"Must be less than {total_cards_generated}.",
                )
            ],
        )


def _to_batch_summary(record: GenerationBatchRecord) -> BatchSummary:
    return BatchSummary(
        batch_id=record.id,
        status=record.status,
        generated_at=record.generated_at,
        input_text_length=record.input_text_length,
        total_cards_generated=record.total_cards_generated,
        cards_accepted=record.cards_accepted,
        cards_rejected=record.cards_rejected,
        cards_edited=record.cards_edited,
        time_taken_ms=record.time_taken_ms,
        model_used=record.model_used,
        reviewed_at=record.reviewed_at,
    )
