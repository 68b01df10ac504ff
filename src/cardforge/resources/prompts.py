"""Prompt templates used when asking language models for flashcards."""

from __future__ import annotations

MIN_RECOMMENDED_CARDS = 3
MAX_RECOMMENDED_CARDS = 50

FLASHCARD_GENERATION_SYSTEM_PROMPT = """You write study flashcards for spaced repetition.

Read the supplied text and produce question/answer pairs that:
- cover the key concepts, definitions, facts and relationships in the text;
- ask specific, unambiguous questions that require recall (avoid yes/no questions);
- split complex ideas across several simple cards;
- reuse the terminology of the source text;
- keep questions between 10 and 500 characters and answers between 10 and 1000 characters.

Write the cards in the language of the source text.
Reply with JSON only: {"flashcards": [{"question": "...", "answer": "..."}]}."""

FLASHCARD_GENERATION_JSON_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "flashcards": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "question": {"type": "string"},
                    "answer": {"type": "string"},
                },
                "required": ["question", "answer"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["flashcards"],
    "additionalProperties": False,
}


def calculate_recommended_card_count(input_text: str) -> int:
    """Aim for 5-10 cards per 1000 characters, clamped to a sane range."""
    char_count = len(input_text)
    low = -(-char_count * 5 // 1000)
    high = -(-char_count * 10 // 1000)
    return max(MIN_RECOMMENDED_CARDS, min(MAX_RECOMMENDED_CARDS, (low + high) // 2))


def build_flashcard_user_prompt(input_text: str) -> str:
    """Wrap the learner's text with the requested card count."""
    estimated = calculate_recommended_card_count(input_text)
    return (
        f"Generate about {estimated} flashcards from the text below, "
        "focusing on the most important ideas.\n\n"
        f"<input_text>\n{input_text}\n</input_text>"
    )
