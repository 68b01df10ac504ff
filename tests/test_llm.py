"""Unit tests for card generators and LLM response helpers."""

from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from cardforge.resources.prompts import calculate_recommended_card_count
from cardforge.services.errors import GenerationOutputInvalid, GenerationRateLimited, GenerationUnavailable
from cardforge.services.llm import (
    OpenAICardGenerator,
    StubCardGenerator,
    _extract_first_text,
    parse_generated_cards,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


def test_extract_first_text_prefers_output_text_string() -> None:
    response = SimpleNamespace(output_text="Hello there!", output=[], text=None)
    assert _extract_first_text(response) == "Hello there!"


def test_extract_first_text_prefers_first_output_text_chunk() -> None:
    response = SimpleNamespace(output_text=["", "Good morning"], output=[], text=None)
    assert _extract_first_text(response) == "Good morning"


def test_extract_first_text_falls_back_to_text_field() -> None:
    response = SimpleNamespace(output_text=None, text=["", "hi"], output=[])
    assert _extract_first_text(response) == "hi"


def test_extract_first_text_uses_output_messages() -> None:
    content = SimpleNamespace(type="output_text", text=' {"flashcards": []} ')
    message_item = SimpleNamespace(type="message", content=[content])
    response = SimpleNamespace(output=[message_item], output_text=None, text=None)
    assert _extract_first_text(response) == '{"flashcards": []}'


def test_extract_first_text_raises_when_empty() -> None:
    response = SimpleNamespace(output=[], output_text=None, text=None)
    with pytest.raises(RuntimeError):
        _extract_first_text(response)


def test_parse_generated_cards_strips_fences_and_numbers_cards() -> None:
    raw = (
        "```json\n"
        '{"flashcards": ['
        '{"question": "  What is ATP?  ", "answer": "The energy currency of the cell."},'
        '{"question": "Where is ATP made?", "answer": "Mostly in the mitochondria."}'
        "]}\n"
        "```"
    )

    cards = parse_generated_cards(raw)

    assert [card.index for card in cards] == [0, 1]
    assert cards[0].front_text == "What is ATP?"
    assert cards[1].back_text == "Mostly in the mitochondria."


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        '{"flashcards": []}',
        '{"flashcards": [{"question": "Only a question"}]}',
        '{"flashcards": [{"question": "   ", "answer": "Blank question"}]}',
        '["a list", "not an object"]',
    ],
)
def test_parse_generated_cards_rejects_unusable_output(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_generated_cards(raw)


@pytest.mark.parametrize(
    ("length", "expected"),
    [(100, 3), (1000, 7), (2500, 19), (10000, 50)],
)
def test_recommended_card_count_is_clamped(length: int, expected: int) -> None:
    assert calculate_recommended_card_count("x" * length) == expected


@pytest.mark.asyncio
async def test_stub_generator_builds_cards_from_sentences() -> None:
    text = "Water boils at one hundred degrees. Ice melts at zero degrees. " * 20

    result = await StubCardGenerator().generate_cards(input_text=text)

    assert result.model_used == "stub-generator-v1"
    assert len(result.cards) == calculate_recommended_card_count(text)
    assert result.cards[0].back_text == "Water boils at one hundred degrees."
    assert all(len(card.front_text) >= 10 for card in result.cards)


def _generator_returning(create) -> OpenAICardGenerator:
    generator = OpenAICardGenerator(api_key="test-key", model="gpt-test")
    generator._client = SimpleNamespace(responses=SimpleNamespace(create=create))  # type: ignore[assignment]
    return generator


@pytest.mark.asyncio
async def test_openai_generator_returns_validated_cards() -> None:
    calls: list[dict] = []

    async def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(
            output_text='{"flashcards": [{"question": "What is ATP used for?", "answer": "Storing energy."}]}',
            output=[],
            text=None,
        )

    result = await _generator_returning(create).generate_cards(input_text="Cells store energy as ATP. " * 50)

    assert result.model_used == "gpt-test"
    assert [(card.index, card.front_text) for card in result.cards] == [(0, "What is ATP used for?")]
    assert calls[0]["model"] == "gpt-test"
    assert calls[0]["text"]["format"]["type"] == "json_schema"


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (openai.RateLimitError("slow down", response=httpx.Response(429, request=_REQUEST), body=None), GenerationRateLimited),
        (openai.InternalServerError("boom", response=httpx.Response(500, request=_REQUEST), body=None), GenerationUnavailable),
        (openai.AuthenticationError("bad key", response=httpx.Response(401, request=_REQUEST), body=None), GenerationUnavailable),
        (openai.APIConnectionError(request=_REQUEST), GenerationUnavailable),
        (openai.APITimeoutError(request=_REQUEST), GenerationUnavailable),
        (openai.BadRequestError("bad input", response=httpx.Response(400, request=_REQUEST), body=None), GenerationOutputInvalid),
    ],
)
@pytest.mark.asyncio
async def test_openai_generator_maps_upstream_errors(error: Exception, expected: type[Exception]) -> None:
    async def create(**kwargs):
        raise error

    with pytest.raises(expected) as exc_info:
        await _generator_returning(create).generate_cards(input_text="Some study text. " * 80)

    assert exc_info.value.__cause__ is error
    assert exc_info.value.suggestion


@pytest.mark.asyncio
async def test_openai_generator_rejects_malformed_output() -> None:
    async def create(**kwargs):
        return SimpleNamespace(output_text="I cannot help with that.", output=[], text=None)

    with pytest.raises(GenerationOutputInvalid):
        await _generator_returning(create).generate_cards(input_text="Some study text. " * 80)
