"""
Card Generator Service

Generates term/definition cards for a card set from an uploaded document.

Flow:
    owner check → per-(user, card set) guard → text extraction
        → LLM call → parse JSON → validate pairs → persist

Model output is untrusted. The reply is scanned for the outermost JSON
array (or a single object), keys are mapped leniently
(term|question|text, definition|answer|explanation), and pairs with an
empty side or a definition shorter than GENERATED_DEFINITION_MIN_LENGTH
are dropped. If nothing survives the request fails.

Usage:
    from intellicard.services.learning.card_generator import CardGeneratorService

    generator = CardGeneratorService(db)
    cards = await generator.generate_from_document(
        card_set_id=1,
        actor_id=2,
        filename="notes.pdf",
        data=pdf_bytes,
        question_count=10,
        difficulty="MEDIUM",
    )
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.config.settings import settings
from intellicard.enums.learning import GenerationDifficulty
from intellicard.middleware.error_handling import LLMError, ValidationError
from intellicard.models.learning import CardResponse, GeneratedCard
from intellicard.services.learning.access_policy import (
    get_card_set_snapshot,
    require_ownership,
)
from intellicard.services.learning.card_service import CardService, to_card_response
from intellicard.services.learning.document_text import extract_text
from intellicard.services.llm.client import LLMClient, build_messages, get_llm_client
from intellicard.services.locks import KeyedLock

logger = logging.getLogger(__name__)

# One generation at a time per (user, card set) within this process.
generation_locks = KeyedLock()

SYSTEM_PROMPT = (
    "You are an educational flashcard generator that creates precise, "
    "well-formatted JSON output."
)

DIFFICULTY_INSTRUCTIONS = {
    GenerationDifficulty.EASY: "Create basic questions that test fundamental understanding and recall",
    GenerationDifficulty.MEDIUM: "Create intermediate questions that test comprehension and application",
    GenerationDifficulty.HARD: "Create advanced questions that test analysis, synthesis, and evaluation",
    GenerationDifficulty.MIXED: "Create a mix of easy, medium, and hard questions",
}

CARD_GENERATION_PROMPT = """You are an expert educational content creator specializing in flashcard generation.

TASK:
Generate exactly {count} flashcards in {language} language based on the educational content below.

DIFFICULTY: {difficulty}
REQUIREMENTS:
- Each flashcard should have a clear, specific term/question and comprehensive definition/answer
- Focus on key concepts and important facts from the content
- {instructions}
- Must keep both terms and definitions comprehensive but under 250 characters
- Terms should be specific and unambiguous
- Questions should be directly based on the document content

OUTPUT FORMAT:
Return ONLY a valid JSON array with this exact structure:
[
  {{
    "term": "Clear, specific question or term",
    "definition": "Comprehensive answer or definition"
  }}
]

CRITICAL: Return ONLY the JSON array, no explanations, no additional text, no markdown formatting.

EDUCATIONAL CONTENT:
{content}
"""

TERM_KEYS = ("term", "question", "text")
DEFINITION_KEYS = ("definition", "answer", "explanation")


def difficulty_instructions(difficulty: Optional[str]) -> str:
    """Instruction line for a difficulty; unknown values get the MEDIUM one."""
    try:
        level = GenerationDifficulty((difficulty or "").upper())
    except ValueError:
        level = GenerationDifficulty.MEDIUM
    return DIFFICULTY_INSTRUCTIONS[level]


def build_prompt(
    content: str,
    question_count: int,
    difficulty: Optional[str],
    language: Optional[str],
) -> str:
    return CARD_GENERATION_PROMPT.format(
        count=question_count,
        language=language or "English",
        difficulty=(difficulty or GenerationDifficulty.MEDIUM.value).upper(),
        instructions=difficulty_instructions(difficulty),
        content=content,
    )


def extract_json_block(text: Optional[str]) -> str:
    """
    Cut the outermost JSON array out of a model reply.

    Falls back to the outermost object, then to "[]" when neither is
    present.
    """
    if not text or not text.strip():
        return "[]"

    for opening, closing in (("[", "]"), ("{", "}")):
        start = text.find(opening)
        end = text.rfind(closing)
        if start != -1 and end > start:
            return text[start : end + 1]

    return "[]"


def parse_generated_cards(reply: Optional[str]) -> list[dict[str, Any]]:
    """
    Parse a model reply into raw card objects.

    A single object is treated as a one-element list; non-object items
    are skipped.

    Raises:
        ValidationError: If the extracted block is not valid JSON
    """
    block = extract_json_block(reply)
    try:
        parsed = json.loads(block)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Failed to parse generated cards: {e.msg}")

    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list):
        raise ValidationError("Generated output is not a JSON array or object")

    return [item for item in parsed if isinstance(item, dict)]


def _first_present(item: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in item:
            return item[key]
    return None


def validate_generated_cards(
    items: list[dict[str, Any]],
    min_definition_length: Optional[int] = None,
) -> list[GeneratedCard]:
    """
    Keep only usable term/definition pairs.

    Args:
        items: Raw card objects from parse_generated_cards()
        min_definition_length: Shortest definition kept, after stripping
            (GENERATED_DEFINITION_MIN_LENGTH if None)

    Returns:
        Stripped, validated pairs in their original order
    """
    if min_definition_length is None:
        min_definition_length = settings.GENERATED_DEFINITION_MIN_LENGTH

    cards = []
    for item in items:
        card = GeneratedCard(
            term=_first_present(item, TERM_KEYS),
            definition=_first_present(item, DEFINITION_KEYS),
        )
        if not card.term or not card.definition:
            continue
        if len(card.definition) < min_definition_length:
            continue
        cards.append(card)

    dropped = len(items) - len(cards)
    if dropped:
        logger.warning(f"Dropped {dropped} of {len(items)} generated cards")
    return cards


class CardGeneratorService:
    """Service for generating cards from documents."""

    def __init__(
        self,
        db: AsyncSession,
        llm_client: LLMClient = None,
        locks: Optional[KeyedLock] = None,
    ):
        """
        Initialize the card generator service.

        Args:
            db: Async database session for persisting cards
            llm_client: LLM client (uses the shared one if not provided)
            locks: Generation guard (defaults to the process-wide map)
        """
        self.db = db
        self.llm_client = llm_client or get_llm_client()
        self.locks = locks if locks is not None else generation_locks
        self.cards = CardService(db)

    async def generate_from_document(
        self,
        card_set_id: int,
        actor_id: int,
        filename: Optional[str],
        data: bytes,
        question_count: int = 10,
        difficulty: Optional[str] = GenerationDifficulty.MEDIUM.value,
        language: Optional[str] = "English",
    ) -> list[CardResponse]:
        """
        Generate cards from a document and add them to a card set.

        Args:
            card_set_id: Target card set (actor must own it)
            actor_id: Requesting user
            filename: Uploaded filename (.txt or .pdf)
            data: Uploaded file bytes
            question_count: Number of cards to ask for (1..CARD_GENERATION_MAX_QUESTIONS)
            difficulty: EASY, MEDIUM, HARD or MIXED
            language: Language of the generated cards

        Returns:
            The created cards

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the actor is not the owner
            ConflictError: If a generation for this user and card set is running
            ValidationError: Bad document, bad count, or no usable cards generated
            LLMError: If the model call fails after retries
        """
        card_set = await get_card_set_snapshot(self.db, card_set_id)
        require_ownership(actor_id, card_set)

        if not 1 <= question_count <= settings.CARD_GENERATION_MAX_QUESTIONS:
            raise ValidationError(
                f"Question count must be between 1 and {settings.CARD_GENERATION_MAX_QUESTIONS}",
                details={"question_count": question_count},
            )

        async with self.locks.hold_or_fail(
            (actor_id, card_set_id),
            "Card generation is already running for this card set",
        ):
            text = extract_text(filename, data).strip()
            if len(text) < settings.DOCUMENT_MIN_CHARACTERS:
                raise ValidationError(
                    "Document appears to be empty or too short. "
                    f"Minimum {settings.DOCUMENT_MIN_CHARACTERS} characters required.",
                    details={"characters": len(text)},
                )

            prompt = build_prompt(text, question_count, difficulty, language)
            try:
                reply = await self.llm_client.complete(
                    messages=build_messages(prompt, system_prompt=SYSTEM_PROMPT),
                    temperature=settings.CARD_GENERATION_TEMPERATURE,
                    max_tokens=settings.CARD_GENERATION_MAX_TOKENS,
                )
            except Exception as e:
                logger.error(f"Card generation failed for card set {card_set_id}: {e}")
                raise LLMError(f"AI card generation failed: {e}") from e

            generated = validate_generated_cards(parse_generated_cards(reply))
            if not generated:
                raise ValidationError(
                    "No cards could be generated from the document content"
                )

            cards = await self.cards.add_cards(
                card_set_id, [(card.term, card.definition) for card in generated]
            )

        logger.info(
            f"Generated {len(cards)} cards for card set {card_set_id} "
            f"(requested {question_count}, difficulty={difficulty})"
        )
        return [to_card_response(card, None) for card in cards]
