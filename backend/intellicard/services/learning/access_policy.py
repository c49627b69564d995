"""
Card Set Access Policy

Evaluates an actor's relationship to a card set and yields an access level.

Precedence:
    1. actor owns the set           → OWNER
    2. actor is an approved user    → APPROVED
    3. set is public                → PUBLIC_READ
    4. otherwise                    → NO_ACCESS

The policy is a pure predicate over a snapshot. Callers load a fresh
snapshot for every check; nothing is cached.
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.models import CardSet, CardSetApprovedUser, User
from intellicard.enums.learning import AccessLevel
from intellicard.middleware.error_handling import AuthorizationError, NotFoundError

READ_LEVELS = frozenset({AccessLevel.OWNER, AccessLevel.APPROVED, AccessLevel.PUBLIC_READ})


@dataclass(frozen=True)
class CardSetSnapshot:
    """Point-in-time view of the card set fields the policy reads."""

    id: int
    name: str
    owner_id: int
    is_public: bool
    approved_user_ids: frozenset[int] = field(default_factory=frozenset)


def access_level(actor_id: int, card_set: CardSetSnapshot) -> AccessLevel:
    """Return the access level of actor_id on card_set."""
    if actor_id == card_set.owner_id:
        return AccessLevel.OWNER
    if actor_id in card_set.approved_user_ids:
        return AccessLevel.APPROVED
    if card_set.is_public:
        return AccessLevel.PUBLIC_READ
    return AccessLevel.NO_ACCESS


def require_ownership(actor_id: int, card_set: CardSetSnapshot) -> AccessLevel:
    """
    Fail unless the actor owns the card set.

    Used for card set rename / delete / visibility changes and for card
    create / update / delete / generation.

    Raises:
        AuthorizationError: If the actor is not the owner
    """
    level = access_level(actor_id, card_set)
    if level != AccessLevel.OWNER:
        raise AuthorizationError(
            "You are not authorized to perform this action on this card set",
            details={"card_set_id": card_set.id, "access_level": level.value},
        )
    return level


def require_read_access(actor_id: int, card_set: CardSetSnapshot) -> AccessLevel:
    """
    Fail unless the actor may read the card set.

    Used for card listing, due cards, study overviews and reviews.

    Raises:
        AuthorizationError: If the actor has no access
    """
    level = access_level(actor_id, card_set)
    if level not in READ_LEVELS:
        raise AuthorizationError(
            "You are not authorized to access this card set",
            details={"card_set_id": card_set.id},
        )
    return level


async def load_card_set_snapshot(
    db: AsyncSession, card_set_id: int
) -> Optional[CardSetSnapshot]:
    """
    Load a fresh snapshot of a card set and its approved users.

    Returns:
        Snapshot, or None if the card set doesn't exist
    """
    result = await db.execute(select(CardSet).where(CardSet.id == card_set_id))
    card_set = result.scalar_one_or_none()
    if card_set is None:
        return None

    approved = await db.execute(
        select(CardSetApprovedUser.user_id).where(
            CardSetApprovedUser.card_set_id == card_set_id
        )
    )

    return CardSetSnapshot(
        id=card_set.id,
        name=card_set.name,
        owner_id=card_set.owner_id,
        is_public=card_set.is_public,
        approved_user_ids=frozenset(approved.scalars().all()) - {card_set.owner_id},
    )


async def get_card_set_snapshot(db: AsyncSession, card_set_id: int) -> CardSetSnapshot:
    """
    Like load_card_set_snapshot but raises when the set is missing.

    Raises:
        NotFoundError: If the card set doesn't exist
    """
    snapshot = await load_card_set_snapshot(db, card_set_id)
    if snapshot is None:
        raise NotFoundError("Card set not found", details={"card_set_id": card_set_id})
    return snapshot


async def require_user(db: AsyncSession, user_id: int) -> User:
    """
    Load the acting user's record.

    Raises:
        NotFoundError: If no user has this id
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user
