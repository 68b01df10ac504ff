"""Flashcard candidate generators backed by language models."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

import openai
from openai import AsyncOpenAI
from openai.types.responses import Response
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from ..resources.prompts import (
    FLASHCARD_GENERATION_JSON_SCHEMA,
    FLASHCARD_GENERATION_SYSTEM_PROMPT,
    MAX_RECOMMENDED_CARDS,
    build_flashcard_user_prompt,
    calculate_recommended_card_count,
)
from .errors import GenerationOutputInvalid, GenerationRateLimited, GenerationUnavailable

logger = logging.getLogger(__name__)

STUB_MODEL_NAME = "stub-generator-v1"


@dataclass(frozen=True)
class GeneratedCard:
    """A candidate card as produced by the generator, before review."""

    index: int
    front_text: str
    back_text: str


@dataclass(frozen=True)
class GenerationResult:
    """Ordered candidates plus the model that produced them."""

    cards: list[GeneratedCard]
    model_used: str


class CardGenerator(Protocol):
    """Protocol definition for turning study text into candidate cards."""

    async def generate_cards(self, *, input_text: str) -> GenerationResult:
        """Return candidates for the supplied text."""
        ...


class _CandidatePayload(BaseModel):
    question: str
    answer: str

    @field_validator("question", "answer")
    @classmethod
    def _strip_and_require(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class _GenerationPayload(BaseModel):
    flashcards: list[_CandidatePayload] = Field(min_length=1, max_length=MAX_RECOMMENDED_CARDS)


@dataclass
class OpenAICardGenerator:
    """Generate flashcard candidates using the OpenAI Responses API."""

    api_key: str
    model: str
    base_url: str | None = None
    timeout_seconds: float = 60.0
    max_retries: int = 2
    system_prompt: str = FLASHCARD_GENERATION_SYSTEM_PROMPT

    def __post_init__(self) -> None:
        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            max_retries=self.max_retries,
        )

    async def generate_cards(self, *, input_text: str) -> GenerationResult:
        """Request candidates for the text and validate the returned JSON."""
        start_time = time.perf_counter()

        logger.info(
            "Card generation request: model=%s, input_length=%d, recommended=%d",
            self.model,
            len(input_text),
            calculate_recommended_card_count(input_text),
        )

        try:
            response = await self._client.responses.create(
                model=self.model,
                input=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": build_flashcard_user_prompt(input_text)},
                ],
                text={
                    "format": {
                        "type": "json_schema",
                        "name": "flashcard_generation",
                        "schema": FLASHCARD_GENERATION_JSON_SCHEMA,
                        "strict": True,
                    }
                },
            )
        except openai.RateLimitError as exc:
            self._log_failure(start_time, "rate limited")
            raise GenerationRateLimited("The generation service is rate limiting requests.") from exc
        except openai.BadRequestError as exc:
            self._log_failure(start_time, "request rejected")
            raise GenerationOutputInvalid("The generation service rejected the request.") from exc
        except (openai.APIConnectionError, openai.APIStatusError) as exc:
            self._log_failure(start_time, type(exc).__name__)
            raise GenerationUnavailable("The generation service is unavailable.") from exc

        try:
            cards = parse_generated_cards(_extract_first_text(response))
        except (RuntimeError, ValueError) as exc:
            self._log_failure(start_time, "unusable output")
            raise GenerationOutputInvalid("Failed to generate valid flashcards.") from exc

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Card generation success: model=%s, duration_ms=%.2f, cards=%d",
            self.model,
            elapsed_ms,
            len(cards),
        )
        return GenerationResult(cards=cards, model_used=self.model)

    def _log_failure(self, start_time: float, reason: str) -> None:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.warning(
            "Card generation failed: model=%s, duration_ms=%.2f, reason=%s",
            self.model,
            elapsed_ms,
            reason,
        )


_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


class StubCardGenerator:
    """Offline generator that turns sentences of the input into cards."""

    model_name = STUB_MODEL_NAME

    async def generate_cards(self, *, input_text: str) -> GenerationResult:
        count = calculate_recommended_card_count(input_text)
        sentences = [
            sentence.strip()
            for sentence in _SENTENCE_SPLIT.split(input_text.strip())
            if len(sentence.strip()) >= 10
        ]
        if not sentences:
            sentences = [input_text.strip()]

        cards = [
            GeneratedCard(
                index=index,
                front_text=f"What does statement {index + 1} of the text say?",
                back_text=sentence[:1000],
            )
            for index, sentence in enumerate(sentences[:count])
        ]
        return GenerationResult(cards=cards, model_used=self.model_name)


def parse_generated_cards(raw: str) -> list[GeneratedCard]:
    """Validate a model reply and number its candidates from zero."""
    try:
        payload = _GenerationPayload.model_validate(_parse_json_object(raw))
    except PydanticValidationError as exc:
        raise ValueError(f"Generated flashcards failed validation: {exc.error_count()} error(s).") from exc
    return [
        GeneratedCard(index=index, front_text=item.question, back_text=item.answer)
        for index, item in enumerate(payload.flashcards)
    ]


def _extract_first_text(response: Response) -> str:
    """Fetch the first text segment produced by the Responses API."""
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text.strip():
        return output_text.strip()
    if isinstance(output_text, Iterable):
        for chunk in output_text:
            if isinstance(chunk, str) and chunk.strip():
                return chunk.strip()

    text_field = getattr(response, "text", None)
    if isinstance(text_field, str) and text_field.strip():
        return text_field.strip()
    if isinstance(text_field, Iterable):
        for segment in text_field:
            if isinstance(segment, str) and segment.strip():
                return segment.strip()

    for item in response.output or []:
        if item.type != "message":
            continue
        for content in item.content or []:
            if content.type == "output_text" and isinstance(content.text, str) and content.text.strip():
                return content.text.strip()
            if content.type == "text" and content.text and content.text.value.strip():
                return content.text.value.strip()
    raise RuntimeError("OpenAI response did not include a text message.")


def _parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a JSON object, tolerating Markdown fences and surrounding prose."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].startswith("```"):
            lines = lines[:-1]
        cleaned = "\n".join(lines).strip()

    if not cleaned.startswith("{"):
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start != -1 and end != -1 and end > start:
            cleaned = cleaned[start : end + 1]

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError("Generated flashcards were not valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Generated flashcards must be a JSON object.")
    return parsed
