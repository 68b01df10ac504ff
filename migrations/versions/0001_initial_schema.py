"""Initial schema for owners, generation batches, and flashcards."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users, ai_generation_batches, and flashcards tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "ai_generation_batches",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("input_text_length", sa.Integer(), nullable=False),
        sa.Column("total_cards_generated", sa.Integer(), nullable=False),
        sa.Column("cards_accepted", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cards_rejected", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cards_edited", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("time_taken_ms", sa.Integer(), nullable=True),
        sa.Column("model_used", sa.String(length=100), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "reviewed", name="batchstatus", native_enum=False, length=16),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_ai_generation_batches_user_id", "ai_generation_batches", ["user_id"])

    op.create_table(
        "flashcards",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("generation_batch_id", sa.Uuid(), nullable=True),
        sa.Column("front_text", sa.String(length=500), nullable=False),
        sa.Column("back_text", sa.String(length=1000), nullable=False),
        sa.Column("is_ai_generated", sa.Boolean(), nullable=False),
        sa.Column("was_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["generation_batch_id"],
            ["ai_generation_batches.id"],
            ondelete="SET NULL",
        ),
        sa.CheckConstraint("length(front_text) >= 10", name="ck_flashcards_front_text_min_length"),
        sa.CheckConstraint("length(back_text) >= 10", name="ck_flashcards_back_text_min_length"),
    )
    op.create_index("ix_flashcards_user_id", "flashcards", ["user_id"])
    op.create_index("ix_flashcards_generation_batch_id", "flashcards", ["generation_batch_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_flashcards_generation_batch_id", table_name="flashcards")
    op.drop_index("ix_flashcards_user_id", table_name="flashcards")
    op.drop_table("flashcards")

    op.drop_index("ix_ai_generation_batches_user_id", table_name="ai_generation_batches")
    op.drop_table("ai_generation_batches")

    op.drop_table("users")
