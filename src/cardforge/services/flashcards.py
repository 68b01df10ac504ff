"""Flashcard service for manual card management and capacity accounting."""

from __future__ import annotations

import datetime as dt
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Sequence

from .errors import FieldIssue, FlashcardLimitExceeded, FlashcardNotFound, ValidationError
from .storage.database import Database
from .storage.models import BACK_TEXT_MAX_LENGTH, FRONT_TEXT_MAX_LENGTH, FlashcardRecord
from .storage.repositories import FlashcardRepository, UserRepository

logger = logging.getLogger(__name__)

FLASHCARD_LIMIT_PER_USER = 500
FRONT_TEXT_MIN_LENGTH = 10
BACK_TEXT_MIN_LENGTH = 10


@dataclass(frozen=True)
class FlashcardData:
    """Representation of a flashcard ready for presentation; never carries the owner."""

    id: uuid.UUID
    front_text: str
    back_text: str
    is_ai_generated: bool
    was_edited: bool
    generation_batch_id: uuid.UUID | None
    created_at: dt.datetime
    updated_at: dt.datetime


@dataclass(frozen=True)
class FlashcardStats:
    """How much of the per-owner capacity is in use."""

    total_flashcards: int
    flashcard_limit: int
    remaining_capacity: int


@dataclass(frozen=True)
class FlashcardPage:
    """One page of an owner's flashcards."""

    flashcards: list[FlashcardData]
    page: int
    limit: int
    total: int
    total_pages: int
    stats: FlashcardStats


@dataclass(frozen=True)
class DeletionResult:
    """Ids actually removed by a bulk delete."""

    deleted_ids: list[uuid.UUID]

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_ids)


def validate_card_text(
    front_text: str | None,
    back_text: str | None,
    *,
    field_prefix: str = "",
    require_both: bool = True,
) -> tuple[str | None, str | None]:
    """
    Trim both sides of a card and check them against the length bounds.

    Returns the trimmed values. All problems are collected into a single
    ValidationError so callers can report every offending field at once.
    """
    issues: list[FieldIssue] = []
    front = _check_side(
        front_text,
        field=f"{field_prefix}front_text",
        minimum=FRONT_TEXT_MIN_LENGTH,
        maximum=FRONT_TEXT_MAX_LENGTH,
        required=require_both,
        issues=issues,
    )
    back = _check_side(
        back_text,
        field=f"{field_prefix}back_text",
        minimum=BACK_TEXT_MIN_LENGTH,
        maximum=BACK_TEXT_MAX_LENGTH,
        required=require_both,
        issues=issues,
    )
    if issues:
        raise ValidationError("Invalid flashcard text.", issues)
    return front, back


def _check_side(
    value: str | None,
    *,
    field: str,
    minimum: int,
    maximum: int,
    required: bool,
    issues: list[FieldIssue],
) -> str | None:
    if value is None:
        if required:
            issues.append(FieldIssue(field=field, message="Field is required."))
        return None
    trimmed = value.strip()
    if len(trimmed) < minimum:
        issues.append(FieldIssue(field=field, message=f"Must be at least {minimum} characters."))
    elif len(trimmed) > maximum:
        issues.append(FieldIssue(field=field, message=f"Must be at most {maximum} characters."))
    return trimmed


class FlashcardService:
    """Coordinate manual flashcard creation, edits, deletion and listing."""

    def __init__(
        self,
        *,
        database: Database,
        flashcard_repository: FlashcardRepository | None = None,
        user_repository: UserRepository | None = None,
        flashcard_limit: int = FLASHCARD_LIMIT_PER_USER,
    ) -> None:
        self._database = database
        self._flashcards = flashcard_repository or FlashcardRepository()
        self._users = user_repository or UserRepository()
        self._limit = flashcard_limit

    @property
    def flashcard_limit(self) -> int:
        return self._limit

    async def create_flashcard(self, owner_id: str, *, front_text: str, back_text: str) -> FlashcardData:
        """Create a manual card, refusing when the owner is at capacity."""
        front, back = validate_card_text(front_text, back_text)

        async with self._database.session() as session:
            await self._users.lock_user(session, user_id=owner_id)
            current = await self._flashcards.count_by_owner(session, owner_id=owner_id)
            if current + 1 > self._limit:
                logger.info(
                    "Flashcard limit reached: owner=%s, current=%d, limit=%d",
                    owner_id,
                    current,
                    self._limit,
                )
                raise FlashcardLimitExceeded(
                    f"Flashcard limit of {self._limit} reached.",
                    current_count=current,
                    limit=self._limit,
                )

            [record] = await self._flashcards.insert_many(
                session,
                [
                    FlashcardRecord(
                        user_id=owner_id,
                        front_text=front,
                        back_text=back,
                        is_ai_generated=False,
                        was_edited=False,
                        generation_batch_id=None,
                    )
                ],
            )
            await session.commit()
            return to_flashcard_data(record)

    async def get_flashcard(self, owner_id: str, flashcard_id: uuid.UUID) -> FlashcardData:
        async with self._database.session() as session:
            record = await self._flashcards.find_by_id(session, flashcard_id=flashcard_id, owner_id=owner_id)
            if record is None:
                raise FlashcardNotFound("Flashcard not found.")
            return to_flashcard_data(record)

    async def update_flashcard(
        self,
        owner_id: str,
        flashcard_id: uuid.UUID,
        *,
        front_text: str | None = None,
        back_text: str | None = None,
    ) -> FlashcardData:
        """Change one or both sides; the card is then marked as edited."""
        if front_text is None and back_text is None:
            raise ValidationError(
                "At least one field must be provided.",
                [FieldIssue(field="body", message="Provide front_text, back_text or both.")],
            )
        front, back = validate_card_text(front_text, back_text, require_both=False)

        async with self._database.session() as session:
            record = await self._flashcards.update(
                session,
                flashcard_id=flashcard_id,
                owner_id=owner_id,
                front_text=front,
                back_text=back,
            )
            if record is None:
                raise FlashcardNotFound("Flashcard not found.")
            await session.commit()
            return to_flashcard_data(record)

    async def delete_flashcard(self, owner_id: str, flashcard_id: uuid.UUID) -> uuid.UUID:
        async with self._database.session() as session:
            deleted = await self._flashcards.delete_by_id(session, flashcard_id=flashcard_id, owner_id=owner_id)
            if not deleted:
                raise FlashcardNotFound("Flashcard not found.")
            await session.commit()
        return flashcard_id

    async def delete_flashcards(self, owner_id: str, flashcard_ids: Sequence[uuid.UUID]) -> DeletionResult:
        """Delete the listed cards the owner holds; ids belonging to others are ignored."""
        if not flashcard_ids:
            raise ValidationError(
                "No flashcard ids provided.",
                [FieldIssue(field="ids", message="Provide at least one id.")],
            )
        async with self._database.session() as session:
            deleted = await self._flashcards.delete_many(session, flashcard_ids=flashcard_ids, owner_id=owner_id)
            await session.commit()

        if len(deleted) != len(set(flashcard_ids)):
            logger.info(
                "Bulk delete skipped unknown ids: owner=%s, requested=%d, deleted=%d",
                owner_id,
                len(set(flashcard_ids)),
                len(deleted),
            )
        return DeletionResult(deleted_ids=deleted)

    async def list_flashcards(self, owner_id: str, *, page: int = 1, limit: int = 20) -> FlashcardPage:
        if page < 1 or limit < 1:
            raise ValidationError(
                "Invalid pagination parameters.",
                [FieldIssue(field="page" if page < 1 else "limit", message="Must be a positive integer.")],
            )
        async with self._database.session() as session:
            total = await self._flashcards.count_by_owner(session, owner_id=owner_id)
            records = await self._flashcards.list_for_owner(
                session,
                owner_id=owner_id,
                offset=(page - 1) * limit,
                limit=limit,
            )
        return FlashcardPage(
            flashcards=[to_flashcard_data(record) for record in records],
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
            stats=self._stats_for(total),
        )

    async def get_stats(self, owner_id: str) -> FlashcardStats:
        async with self._database.session() as session:
            total = await self._flashcards.count_by_owner(session, owner_id=owner_id)
        return self._stats_for(total)

    def _stats_for(self, total: int) -> FlashcardStats:
        return FlashcardStats(
            total_flashcards=total,
            flashcard_limit=self._limit,
            remaining_capacity=max(self._limit - total, 0),
        )


def to_flashcard_data(record: FlashcardRecord) -> FlashcardData:
    """Convert a FlashcardRecord into a FlashcardData payload."""
    return FlashcardData(
        id=record.id,
        front_text=record.front_text,
        back_text=record.back_text,
        is_ai_generated=record.is_ai_generated,
        was_edited=record.was_edited,
        generation_batch_id=record.generation_batch_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
