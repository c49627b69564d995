"""
Card Set Service

Listing, creation, and owner-only edits of card sets.

A user sees every public set, every set they own, and every private set
they were approved for; each comes back with the user's access level and
the number of cards in the set.
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.models import (
    AccessRequest,
    Card,
    CardSet,
    CardSetApprovedUser,
    User,
    UserCardProgress,
)
from intellicard.enums.learning import AccessLevel
from intellicard.models.learning import CardSetCreate, CardSetResponse, CardSetUpdate
from intellicard.services.learning.access_policy import (
    CardSetSnapshot,
    access_level,
    get_card_set_snapshot,
    require_ownership,
    require_read_access,
    require_user,
)

logger = logging.getLogger(__name__)


class CardSetService:
    """
    Service for card set CRUD.

    Usage:
        service = CardSetService(db)
        card_sets = await service.list_accessible(actor_id=2)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _owner_name(self, owner_id: int) -> Optional[str]:
        result = await self.db.execute(select(User.username).where(User.id == owner_id))
        return result.scalar_one_or_none()

    async def _count_cards(self, card_set_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Card.id)).where(Card.card_set_id == card_set_id)
        )
        return result.scalar() or 0

    async def _response(
        self, card_set: CardSetSnapshot, actor_id: int
    ) -> CardSetResponse:
        return CardSetResponse(
            id=card_set.id,
            name=card_set.name,
            is_public=card_set.is_public,
            owner_id=card_set.owner_id,
            owner_name=await self._owner_name(card_set.owner_id),
            access_level=access_level(actor_id, card_set),
            total_cards=await self._count_cards(card_set.id),
        )

    async def list_accessible(self, actor_id: int) -> list[CardSetResponse]:
        """Card sets the actor can read, ordered by id."""
        approved_ids = (
            select(CardSetApprovedUser.card_set_id)
            .where(CardSetApprovedUser.user_id == actor_id)
        )
        card_counts = (
            select(Card.card_set_id, func.count(Card.id).label("total"))
            .group_by(Card.card_set_id)
            .subquery()
        )

        result = await self.db.execute(
            select(CardSet, User.username, func.coalesce(card_counts.c.total, 0))
            .join(User, User.id == CardSet.owner_id)
            .outerjoin(card_counts, card_counts.c.card_set_id == CardSet.id)
            .where(
                or_(
                    CardSet.is_public.is_(True),
                    CardSet.owner_id == actor_id,
                    CardSet.id.in_(approved_ids),
                )
            )
            .order_by(CardSet.id)
        )
        rows = result.all()

        approved = await self.db.execute(
            select(CardSetApprovedUser.card_set_id).where(
                CardSetApprovedUser.user_id == actor_id
            )
        )
        approved_set_ids = set(approved.scalars().all())

        responses = []
        for card_set, owner_name, total in rows:
            snapshot = CardSetSnapshot(
                id=card_set.id,
                name=card_set.name,
                owner_id=card_set.owner_id,
                is_public=card_set.is_public,
                approved_user_ids=(
                    frozenset({actor_id})
                    if card_set.id in approved_set_ids
                    else frozenset()
                ),
            )
            responses.append(
                CardSetResponse(
                    id=card_set.id,
                    name=card_set.name,
                    is_public=card_set.is_public,
                    owner_id=card_set.owner_id,
                    owner_name=owner_name,
                    access_level=access_level(actor_id, snapshot),
                    total_cards=total,
                )
            )
        return responses

    async def get_card_set(self, card_set_id: int, actor_id: int) -> CardSetResponse:
        """
        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the actor has no access
        """
        card_set = await get_card_set_snapshot(self.db, card_set_id)
        require_read_access(actor_id, card_set)
        return await self._response(card_set, actor_id)

    async def create_card_set(
        self, actor_id: int, data: CardSetCreate
    ) -> CardSetResponse:
        """
        Create a card set owned by the actor.

        Raises:
            NotFoundError: If the actor has no user record
        """
        owner = await require_user(self.db, actor_id)

        card_set = CardSet(name=data.name, owner_id=actor_id, is_public=data.is_public)
        self.db.add(card_set)
        await self.db.flush()

        logger.info(f"Created card set {card_set.id} '{card_set.name}' for user {actor_id}")

        return CardSetResponse(
            id=card_set.id,
            name=card_set.name,
            is_public=card_set.is_public,
            owner_id=actor_id,
            owner_name=owner.username,
            access_level=AccessLevel.OWNER,
            total_cards=0,
        )

    async def update_card_set(
        self, card_set_id: int, actor_id: int, data: CardSetUpdate
    ) -> CardSetResponse:
        """
        Rename and/or change visibility. Owner only.

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the actor is not the owner
        """
        snapshot = await get_card_set_snapshot(self.db, card_set_id)
        require_ownership(actor_id, snapshot)

        card_set = await self.db.get(CardSet, card_set_id)
        if data.name is not None:
            card_set.name = data.name
        if data.is_public is not None:
            card_set.is_public = data.is_public
        await self.db.flush()

        logger.info(f"Updated card set {card_set_id}")

        updated = await get_card_set_snapshot(self.db, card_set_id)
        return await self._response(updated, actor_id)

    async def delete_card_set(self, card_set_id: int, actor_id: int) -> None:
        """
        Delete a card set with its cards, progress, approvals and requests.
        Owner only.

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the actor is not the owner
        """
        snapshot = await get_card_set_snapshot(self.db, card_set_id)
        require_ownership(actor_id, snapshot)

        card_ids = select(Card.id).where(Card.card_set_id == card_set_id)
        await self.db.execute(
            delete(UserCardProgress).where(UserCardProgress.card_id.in_(card_ids))
        )
        await self.db.execute(delete(Card).where(Card.card_set_id == card_set_id))
        await self.db.execute(
            delete(CardSetApprovedUser).where(
                CardSetApprovedUser.card_set_id == card_set_id
            )
        )
        await self.db.execute(
            delete(AccessRequest).where(AccessRequest.card_set_id == card_set_id)
        )
        await self.db.execute(delete(CardSet).where(CardSet.id == card_set_id))
        await self.db.flush()

        logger.info(f"Deleted card set {card_set_id}")
