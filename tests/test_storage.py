"""Tests for database schema initialization via Alembic migrations."""

from __future__ import annotations

import pytest
from sqlalchemy import text

from cardforge.services.storage.database import Database
from cardforge.services.storage.migrations import build_alembic_config


@pytest.mark.asyncio
async def test_initialize_runs_migrations(tmp_path) -> None:
    """Database.initialize should apply Alembic migrations."""
    db_path = tmp_path / "migrations.db"
    database = Database(f"sqlite+aiosqlite:///{db_path}")

    await database.initialize()

    async with database.session() as session:
        result = await session.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
        tables = set(result.scalars())
        assert {"users", "flashcards", "ai_generation_batches", "alembic_version"} <= tables

        columns = await session.execute(text("PRAGMA table_info('ai_generation_batches')"))
        column_names = [row[1] for row in columns]
        assert {"status", "reviewed_at", "total_cards_generated", "cards_edited"} <= set(column_names)

    await database.dispose()


@pytest.mark.asyncio
async def test_initialize_is_idempotent(tmp_path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path/'twice.db'}")

    await database.initialize()
    await database.initialize()

    async with database.session() as session:
        result = await session.execute(text("SELECT version_num FROM alembic_version"))
        assert result.scalar_one() == "0001_initial_schema"

    await database.dispose()


@pytest.mark.asyncio
async def test_flashcard_text_bounds_are_enforced_by_schema(tmp_path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path/'constraints.db'}")
    await database.initialize()

    async with database.session() as session:
        await session.execute(text("INSERT INTO users (id, created_at) VALUES ('owner-a', CURRENT_TIMESTAMP)"))
        with pytest.raises(Exception, match="CHECK constraint failed"):
            await session.execute(
                text(
                    "INSERT INTO flashcards (id, user_id, front_text, back_text, is_ai_generated, "
                    "was_edited, created_at, updated_at) VALUES "
                    "('0123456789abcdef0123456789abcdef', 'owner-a', 'short', 'long enough answer', "
                    "0, 0, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
                )
            )

    await database.dispose()


def test_alembic_config_escapes_percent_encoded_passwords() -> None:
    url = "postgresql+asyncpg://user:Sup%23r@db:5432/cardforge"

    config = build_alembic_config(url)

    assert config.get_main_option("sqlalchemy.url") == url
