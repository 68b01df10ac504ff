"""Flashcard service behavior tests."""

from __future__ import annotations

import asyncio
import uuid

import pytest

from cardforge.services.errors import FlashcardLimitExceeded, FlashcardNotFound, ValidationError
from cardforge.services.flashcards import FlashcardService
from cardforge.services.storage.database import Database


async def _service(tmp_path, **kwargs) -> tuple[Database, FlashcardService]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path/'flashcards.db'}")
    await database.initialize()
    return database, FlashcardService(database=database, **kwargs)


@pytest.mark.asyncio
async def test_create_flashcard_trims_and_marks_manual(tmp_path) -> None:
    database, service = await _service(tmp_path)

    card = await service.create_flashcard(
        "owner-a",
        front_text="   What is photosynthesis?  ",
        back_text="Conversion of light into chemical energy.",
    )

    assert card.front_text == "What is photosynthesis?"
    assert card.is_ai_generated is False
    assert card.was_edited is False
    assert card.generation_batch_id is None

    fetched = await service.get_flashcard("owner-a", card.id)
    assert fetched.back_text == "Conversion of light into chemical energy."

    await database.dispose()


@pytest.mark.asyncio
async def test_create_flashcard_reports_every_invalid_field(tmp_path) -> None:
    database, service = await _service(tmp_path)

    with pytest.raises(ValidationError) as exc_info:
        await service.create_flashcard("owner-a", front_text="   short   ", back_text="x" * 1001)

    assert [issue.field for issue in exc_info.value.issues] == ["front_text", "back_text"]
    assert (await service.get_stats("owner-a")).total_flashcards == 0

    await database.dispose()


@pytest.mark.asyncio
async def test_flashcards_are_owner_scoped(tmp_path) -> None:
    database, service = await _service(tmp_path)
    card = await service.create_flashcard(
        "owner-a",
        front_text="Capital city of France?",
        back_text="Paris is the capital.",
    )

    with pytest.raises(FlashcardNotFound):
        await service.get_flashcard("owner-b", card.id)
    with pytest.raises(FlashcardNotFound):
        await service.update_flashcard("owner-b", card.id, front_text="Hijacked question text")
    with pytest.raises(FlashcardNotFound):
        await service.delete_flashcard("owner-b", card.id)

    assert (await service.get_flashcard("owner-a", card.id)).front_text == "Capital city of France?"

    await database.dispose()


@pytest.mark.asyncio
async def test_update_flashcard_marks_card_as_edited(tmp_path) -> None:
    database, service = await _service(tmp_path)
    card = await service.create_flashcard(
        "owner-a",
        front_text="Boiling point of water?",
        back_text="100 degrees Celsius at sea level.",
    )

    updated = await service.update_flashcard("owner-a", card.id, back_text="  212 degrees Fahrenheit.  ")

    assert updated.front_text == "Boiling point of water?"
    assert updated.back_text == "212 degrees Fahrenheit."
    assert updated.was_edited is True
    assert updated.updated_at.replace(tzinfo=None) >= card.updated_at.replace(tzinfo=None)

    with pytest.raises(ValidationError):
        await service.update_flashcard("owner-a", card.id)

    await database.dispose()


@pytest.mark.asyncio
async def test_delete_flashcard_twice_reports_missing(tmp_path) -> None:
    database, service = await _service(tmp_path)
    card = await service.create_flashcard(
        "owner-a",
        front_text="Largest planet in the solar system?",
        back_text="Jupiter is the largest planet.",
    )

    assert await service.delete_flashcard("owner-a", card.id) == card.id
    with pytest.raises(FlashcardNotFound):
        await service.delete_flashcard("owner-a", card.id)

    await database.dispose()


@pytest.mark.asyncio
async def test_bulk_delete_ignores_ids_not_owned(tmp_path) -> None:
    database, service = await _service(tmp_path)
    first = await service.create_flashcard("owner-a", front_text="Owner A question 1", back_text="Owner A answer 1")
    second = await service.create_flashcard("owner-a", front_text="Owner A question 2", back_text="Owner A answer 2")
    foreign = await service.create_flashcard("owner-b", front_text="Owner B question 1", back_text="Owner B answer 1")

    result = await service.delete_flashcards("owner-a", [second.id, foreign.id, uuid.uuid4(), first.id])

    assert result.deleted_ids == [second.id, first.id]
    assert result.deleted_count == 2
    assert (await service.get_stats("owner-a")).total_flashcards == 0
    assert (await service.get_flashcard("owner-b", foreign.id)).id == foreign.id

    with pytest.raises(ValidationError):
        await service.delete_flashcards("owner-a", [])

    await database.dispose()


@pytest.mark.asyncio
async def test_list_flashcards_paginates_with_stats(tmp_path) -> None:
    database, service = await _service(tmp_path)
    for number in range(3):
        await service.create_flashcard(
            "owner-a",
            front_text=f"Question number {number}",
            back_text=f"Answer number {number}",
        )

    first_page = await service.list_flashcards("owner-a", page=1, limit=2)
    second_page = await service.list_flashcards("owner-a", page=2, limit=2)

    assert len(first_page.flashcards) == 2
    assert len(second_page.flashcards) == 1
    assert first_page.total == 3
    assert first_page.total_pages == 2
    assert first_page.stats.remaining_capacity == 497
    listed = {card.id for card in first_page.flashcards} | {card.id for card in second_page.flashcards}
    assert len(listed) == 3

    empty = await service.list_flashcards("owner-b")
    assert empty.flashcards == []
    assert empty.total_pages == 0

    await database.dispose()


@pytest.mark.asyncio
async def test_create_flashcard_respects_capacity(tmp_path) -> None:
    database, service = await _service(tmp_path, flashcard_limit=2)
    await service.create_flashcard("owner-a", front_text="Capacity question 1", back_text="Capacity answer 1")
    await service.create_flashcard("owner-a", front_text="Capacity question 2", back_text="Capacity answer 2")

    with pytest.raises(FlashcardLimitExceeded) as exc_info:
        await service.create_flashcard("owner-a", front_text="Capacity question 3", back_text="Capacity answer 3")

    assert (exc_info.value.current_count, exc_info.value.limit) == (2, 2)
    stats = await service.get_stats("owner-a")
    assert (stats.total_flashcards, stats.remaining_capacity) == (2, 0)

    # Other owners have their own allowance.
    await service.create_flashcard("owner-b", front_text="Capacity question 1", back_text="Capacity answer 1")

    await database.dispose()


@pytest.mark.asyncio
async def test_concurrent_creates_stop_at_capacity(tmp_path) -> None:
    database, service = await _service(tmp_path, flashcard_limit=3)
    await service.create_flashcard("owner-a", front_text="Capacity question 1", back_text="Capacity answer 1")
    await service.create_flashcard("owner-a", front_text="Capacity question 2", back_text="Capacity answer 2")

    outcomes = await asyncio.gather(
        *(
            service.create_flashcard(
                "owner-a",
                front_text=f"Racing question {index}",
                back_text=f"Racing answer {index}",
            )
            for index in range(5)
        ),
        return_exceptions=True,
    )

    refused = [outcome for outcome in outcomes if isinstance(outcome, FlashcardLimitExceeded)]
    created = [outcome for outcome in outcomes if not isinstance(outcome, BaseException)]
    assert len(created) == 1
    assert len(refused) == 4
    assert all(error.current_count == 3 for error in refused)
    assert (await service.get_stats("owner-a")).total_flashcards == 3

    await database.dispose()
