"""
Card Service

Card listing and owner-only card edits.

Listing shows each card with the acting user's own progress; cards the
user never reviewed carry NEW defaults.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.models import Card, UserCardProgress
from intellicard.middleware.error_handling import NotFoundError, ValidationError
from intellicard.models.learning import CardCreate, CardResponse, CardUpdate
from intellicard.services.learning.access_policy import (
    get_card_set_snapshot,
    require_ownership,
    require_read_access,
)
from intellicard.services.learning.progress_store import ProgressStore
from intellicard.services.learning.sm2 import ProgressState, default_progress

logger = logging.getLogger(__name__)


def to_card_response(card: Card, progress: Optional[ProgressState]) -> CardResponse:
    """Card plus the learner's progress (NEW defaults if never reviewed)."""
    progress = progress or default_progress()
    return CardResponse(
        id=card.id,
        card_set_id=card.card_set_id,
        term=card.term,
        definition=card.definition,
        times_reviewed=progress.times_reviewed,
        times_correct=progress.times_correct,
        next_review_date=progress.next_review_date,
        status=progress.status,
    )


def require_text(field: str, value: Optional[str]) -> str:
    """Strip a term/definition and reject it if nothing is left."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"Card {field} must not be blank", details={"field": field})
    return text


async def get_card(db: AsyncSession, card_id: int) -> Card:
    """
    Load a card by id.

    Raises:
        NotFoundError: If the card doesn't exist
    """
    result = await db.execute(select(Card).where(Card.id == card_id))
    card = result.scalar_one_or_none()
    if card is None:
        raise NotFoundError("Card not found", details={"card_id": card_id})
    return card


class CardService:
    """
    Service for cards within a card set.

    Usage:
        service = CardService(db)
        cards = await service.list_cards(card_set_id=1, actor_id=2)
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.progress = ProgressStore(db)

    async def list_cards(self, card_set_id: int, actor_id: int) -> list[CardResponse]:
        """
        All cards of a set with the actor's progress.

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the actor has no access to the set
        """
        card_set = await get_card_set_snapshot(self.db, card_set_id)
        require_read_access(actor_id, card_set)

        result = await self.db.execute(
            select(Card).where(Card.card_set_id == card_set_id).order_by(Card.id)
        )
        progress = await self.progress.for_card_set(actor_id, card_set_id)

        return [
            to_card_response(card, progress.get(card.id))
            for card in result.scalars().all()
        ]

    async def add_card(
        self, card_set_id: int, actor_id: int, data: CardCreate
    ) -> CardResponse:
        """
        Add a card. Owner only.

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the actor is not the owner
            ValidationError: If term or definition is blank
        """
        card_set = await get_card_set_snapshot(self.db, card_set_id)
        require_ownership(actor_id, card_set)

        cards = await self.add_cards(
            card_set_id, [(data.term, data.definition)]
        )
        logger.info(f"Created card {cards[0].id} in card set {card_set_id}")
        return to_card_response(cards[0], None)

    async def add_cards(
        self, card_set_id: int, pairs: Iterable[tuple[str, str]]
    ) -> list[Card]:
        """
        Insert term/definition pairs into a set.

        Callers check ownership first.
        """
        cards = [
            Card(
                card_set_id=card_set_id,
                term=require_text("term", term),
                definition=require_text("definition", definition),
            )
            for term, definition in pairs
        ]
        self.db.add_all(cards)
        await self.db.flush()
        return cards

    async def update_card(
        self, card_id: int, actor_id: int, data: CardUpdate
    ) -> CardResponse:
        """
        Edit a card's term and/or definition. Owner only.

        Raises:
            NotFoundError: If the card doesn't exist
            AuthorizationError: If the actor does not own the card's set
            ValidationError: If a supplied term or definition is blank
        """
        card = await get_card(self.db, card_id)
        card_set = await get_card_set_snapshot(self.db, card.card_set_id)
        require_ownership(actor_id, card_set)

        if data.term is not None:
            card.term = require_text("term", data.term)
        if data.definition is not None:
            card.definition = require_text("definition", data.definition)
        await self.db.flush()

        logger.info(f"Updated card {card_id}")
        progress = await self.progress.get(actor_id, card_id)
        return to_card_response(card, progress)

    async def delete_card(self, card_id: int, actor_id: int) -> None:
        """
        Delete a card and every learner's progress on it. Owner only.

        Raises:
            NotFoundError: If the card doesn't exist
            AuthorizationError: If the actor does not own the card's set
        """
        card = await get_card(self.db, card_id)
        card_set = await get_card_set_snapshot(self.db, card.card_set_id)
        require_ownership(actor_id, card_set)

        await self.db.execute(
            delete(UserCardProgress).where(UserCardProgress.card_id == card_id)
        )
        await self.db.execute(delete(Card).where(Card.id == card_id))
        await self.db.flush()
        logger.info(f"Deleted card {card_id} from card set {card_set.id}")
