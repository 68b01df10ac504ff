"""Repositories encapsulating database access patterns."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Iterable, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from .models import BatchStatus, FlashcardRecord, GenerationBatchRecord, UserRecord


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class UserRepository:
    """Persist owners and serialize writes that depend on their card count."""

    async def ensure_user(self, session: AsyncSession, *, user_id: str) -> UserRecord:
        """Create the owner row on first use."""
        record = await session.get(UserRecord, user_id)
        if record is None:
            record = UserRecord(id=user_id)
            session.add(record)
            await session.flush()
        return record

    async def lock_user(self, session: AsyncSession, *, user_id: str) -> UserRecord:
        """
        Take a write lock on the owner for the rest of the transaction.

        Capacity checks count cards and then insert, so the lock has to be a
        write before the count. The no-op UPDATE is a row lock on PostgreSQL
        and opens the write transaction on SQLite; a second writer for the
        same owner waits until the first commits and then counts its rows.
        """
        stmt = (
            update(UserRecord)
            .where(UserRecord.id == user_id)
            .values(created_at=UserRecord.created_at)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)
        # A first-time owner matches no row; creating it holds the lock instead.
        return await self.ensure_user(session, user_id=user_id)


class FlashcardRepository:
    """Owner-scoped persistence for flashcards."""

    async def count_by_owner(self, session: AsyncSession, *, owner_id: str) -> int:
        """Return how many flashcards the owner holds."""
        stmt = select(func.count(FlashcardRecord.id)).where(FlashcardRecord.user_id == owner_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def insert_many(
        self,
        session: AsyncSession,
        records: Sequence[FlashcardRecord],
    ) -> list[FlashcardRecord]:
        """Add records and flush so ids and timestamps are populated, preserving order."""
        if not records:
            return []
        session.add_all(records)
        await session.flush()
        return list(records)

    async def find_by_id(
        self,
        session: AsyncSession,
        *,
        flashcard_id: uuid.UUID,
        owner_id: str,
    ) -> FlashcardRecord | None:
        """Return the flashcard when it belongs to the owner."""
        stmt = select(FlashcardRecord).where(
            FlashcardRecord.id == flashcard_id,
            FlashcardRecord.user_id == owner_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_owner(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        offset: int = 0,
        limit: int = 20,
    ) -> list[FlashcardRecord]:
        """Return a page of the owner's flashcards, newest first."""
        stmt: Select[tuple[FlashcardRecord]] = (
            select(FlashcardRecord)
            .where(FlashcardRecord.user_id == owner_id)
            .order_by(FlashcardRecord.created_at.desc(), FlashcardRecord.id.asc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars())

    async def update(
        self,
        session: AsyncSession,
        *,
        flashcard_id: uuid.UUID,
        owner_id: str,
        front_text: str | None = None,
        back_text: str | None = None,
    ) -> FlashcardRecord | None:
        """Apply text changes; any change marks the card as edited."""
        record = await self.find_by_id(session, flashcard_id=flashcard_id, owner_id=owner_id)
        if record is None:
            return None

        if front_text is not None:
            record.front_text = front_text
        if back_text is not None:
            record.back_text = back_text
        if front_text is not None or back_text is not None:
            record.was_edited = True
            record.updated_at = _utcnow()
        await session.flush()
        return record

    async def delete_by_id(
        self,
        session: AsyncSession,
        *,
        flashcard_id: uuid.UUID,
        owner_id: str,
    ) -> bool:
        """Delete one flashcard; False when it is missing or not owned."""
        stmt = delete(FlashcardRecord).where(
            FlashcardRecord.id == flashcard_id,
            FlashcardRecord.user_id == owner_id,
        )
        result = await session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def delete_many(
        self,
        session: AsyncSession,
        *,
        flashcard_ids: Iterable[uuid.UUID],
        owner_id: str,
    ) -> list[uuid.UUID]:
        """Delete the subset of ids the owner actually holds and return it."""
        requested = list(dict.fromkeys(flashcard_ids))
        if not requested:
            return []

        owned_stmt = select(FlashcardRecord.id).where(
            FlashcardRecord.user_id == owner_id,
            FlashcardRecord.id.in_(requested),
        )
        owned = set((await session.execute(owned_stmt)).scalars())
        deleted = [flashcard_id for flashcard_id in requested if flashcard_id in owned]
        if not deleted:
            return []

        await session.execute(
            delete(FlashcardRecord).where(
                FlashcardRecord.user_id == owner_id,
                FlashcardRecord.id.in_(deleted),
            )
        )
        return deleted


class GenerationBatchRepository:
    """Persistence for AI generation batches."""

    async def insert(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        input_text_length: int,
        total_cards_generated: int,
        time_taken_ms: int | None,
        model_used: str | None,
        generated_at: dt.datetime | None = None,
    ) -> GenerationBatchRecord:
        """Store a pending batch with all review counters at zero."""
        record = GenerationBatchRecord(
            user_id=owner_id,
            generated_at=generated_at or _utcnow(),
            input_text_length=input_text_length,
            total_cards_generated=total_cards_generated,
            cards_accepted=0,
            cards_rejected=0,
            cards_edited=0,
            time_taken_ms=time_taken_ms,
            model_used=model_used,
            status=BatchStatus.PENDING,
        )
        session.add(record)
        await session.flush()
        return record

    async def find_by_id_for_owner(
        self,
        session: AsyncSession,
        *,
        batch_id: uuid.UUID,
        owner_id: str,
    ) -> GenerationBatchRecord | None:
        """Single lookup filtered by id and owner, so foreign batches look absent."""
        stmt = select(GenerationBatchRecord).where(
            GenerationBatchRecord.id == batch_id,
            GenerationBatchRecord.user_id == owner_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_counts(
        self,
        session: AsyncSession,
        *,
        batch_id: uuid.UUID,
        owner_id: str,
        accepted: int,
        rejected: int,
        edited: int,
        reviewed_at: dt.datetime | None = None,
    ) -> bool:
        """
        Record review tallies and move the batch from PENDING to REVIEWED.

        The update is conditional on the batch still being pending, so of two
        racing reviews only one sees a matched row. Returns False for the loser.
        """
        stmt = (
            update(GenerationBatchRecord)
            .where(
                GenerationBatchRecord.id == batch_id,
                GenerationBatchRecord.user_id == owner_id,
                GenerationBatchRecord.status == BatchStatus.PENDING,
            )
            .values(
                cards_accepted=accepted,
                cards_rejected=rejected,
                cards_edited=edited,
                status=BatchStatus.REVIEWED,
                reviewed_at=reviewed_at or _utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1
