"""SQLAlchemy ORM models for flashcards and AI generation batches."""

from __future__ import annotations

import datetime as dt
import uuid
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

FRONT_TEXT_MAX_LENGTH = 500
BACK_TEXT_MAX_LENGTH = 1000


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Base(DeclarativeBase):
    """Base declarative class for SQLAlchemy models."""


class BatchStatus(str, Enum):
    """Lifecycle of a generation batch; moves to REVIEWED exactly once."""

    PENDING = "pending"
    REVIEWED = "reviewed"


class UserRecord(Base):
    """Owner of flashcards and batches, keyed by the authenticated user id."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    flashcards: Mapped[list["FlashcardRecord"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    generation_batches: Mapped[list["GenerationBatchRecord"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class GenerationBatchRecord(Base):
    """One AI generation attempt and the outcome of its review."""

    __tablename__ = "ai_generation_batches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    generated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    input_text_length: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cards_generated: Mapped[int] = mapped_column(Integer, nullable=False)
    cards_accepted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cards_rejected: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cards_edited: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_taken_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    model_used: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[BatchStatus] = mapped_column(
        SAEnum(
            BatchStatus,
            name="batchstatus",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            native_enum=False,
            length=16,
        ),
        nullable=False,
        default=BatchStatus.PENDING,
    )
    reviewed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["UserRecord"] = relationship(back_populates="generation_batches")
    flashcards: Mapped[list["FlashcardRecord"]] = relationship(back_populates="generation_batch")


class FlashcardRecord(Base):
    """A single study card, created manually or accepted from a batch."""

    __tablename__ = "flashcards"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    generation_batch_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("ai_generation_batches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    front_text: Mapped[str] = mapped_column(String(FRONT_TEXT_MAX_LENGTH), nullable=False)
    back_text: Mapped[str] = mapped_column(String(BACK_TEXT_MAX_LENGTH), nullable=False)
    is_ai_generated: Mapped[bool] = mapped_column(Boolean, nullable=False)
    was_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("length(front_text) >= 10", name="ck_flashcards_front_text_min_length"),
        CheckConstraint("length(back_text) >= 10", name="ck_flashcards_back_text_min_length"),
    )

    user: Mapped["UserRecord"] = relationship(back_populates="flashcards")
    generation_batch: Mapped["GenerationBatchRecord | None"] = relationship(back_populates="flashcards")
