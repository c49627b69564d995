"""
Integration tests for card set and card management.
"""

import pytest
from sqlalchemy import func, select

from intellicard.db.models import (
    AccessRequest,
    Card,
    CardSet,
    CardSetApprovedUser,
    UserCardProgress,
)
from intellicard.enums.learning import AccessLevel, ProgressStatus
from intellicard.middleware.error_handling import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from intellicard.models.learning import CardCreate, CardSetCreate, CardSetUpdate, CardUpdate
from intellicard.services.learning import (
    AccessRequestService,
    CardService,
    CardSetService,
    SpacedRepService,
)
from intellicard.services.locks import KeyedLock

pytestmark = pytest.mark.integration


async def count(db_session, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar()


class TestCardSetService:
    """Tests for CardSetService."""

    @pytest.mark.asyncio
    async def test_create(self, db_session, users):
        service = CardSetService(db_session)

        result = await service.create_card_set(
            users["bob"], CardSetCreate(name="  Spanish verbs ", is_public=True)
        )

        assert result.id is not None
        assert result.name == "Spanish verbs"
        assert result.owner_id == users["bob"]
        assert result.owner_name == "bob"
        assert result.access_level == AccessLevel.OWNER
        assert result.total_cards == 0

    @pytest.mark.asyncio
    async def test_create_for_unknown_user(self, db_session, users):
        with pytest.raises(NotFoundError):
            await CardSetService(db_session).create_card_set(999, CardSetCreate(name="X"))

    @pytest.mark.asyncio
    async def test_list_accessible(
        self, db_session, private_set, public_set, make_card_set, users
    ):
        bobs_private = await make_card_set(users["bob"], "Bob's notes")
        db_session.add(
            CardSetApprovedUser(card_set_id=private_set.id, user_id=users["carol"])
        )
        await db_session.flush()
        service = CardSetService(db_session)

        carol = await service.list_accessible(users["carol"])
        bob = await service.list_accessible(users["bob"])

        assert [(s.name, s.access_level, s.total_cards) for s in carol] == [
            ("Organic Chemistry", AccessLevel.APPROVED, 3),
            ("Capitals", AccessLevel.PUBLIC_READ, 2),
        ]
        assert [(s.id, s.access_level) for s in bob] == [
            (public_set.id, AccessLevel.PUBLIC_READ),
            (bobs_private.id, AccessLevel.OWNER),
        ]
        assert carol[0].owner_name == "alice"

    @pytest.mark.asyncio
    async def test_get_card_set(self, db_session, private_set, users):
        service = CardSetService(db_session)

        result = await service.get_card_set(private_set.id, users["alice"])

        assert result.total_cards == 3
        assert result.access_level == AccessLevel.OWNER
        with pytest.raises(AuthorizationError):
            await service.get_card_set(private_set.id, users["dave"])

    @pytest.mark.asyncio
    async def test_update_owner_only(self, db_session, private_set, users):
        service = CardSetService(db_session)

        updated = await service.update_card_set(
            private_set.id, users["alice"], CardSetUpdate(name="Chemistry II", is_public=True)
        )

        assert updated.name == "Chemistry II"
        assert updated.is_public is True
        with pytest.raises(AuthorizationError):
            await service.update_card_set(
                private_set.id, users["bob"], CardSetUpdate(is_public=False)
            )

    @pytest.mark.asyncio
    async def test_making_public_grants_read(self, db_session, private_set, users):
        service = CardSetService(db_session)
        with pytest.raises(AuthorizationError):
            await service.get_card_set(private_set.id, users["dave"])

        await service.update_card_set(
            private_set.id, users["alice"], CardSetUpdate(is_public=True)
        )

        result = await service.get_card_set(private_set.id, users["dave"])
        assert result.access_level == AccessLevel.PUBLIC_READ

    @pytest.mark.asyncio
    async def test_delete_removes_everything_beneath(
        self, db_session, private_set, card_ids, users
    ):
        db_session.add(
            CardSetApprovedUser(card_set_id=private_set.id, user_id=users["bob"])
        )
        await db_session.flush()
        await AccessRequestService(db_session).request_access(private_set.id, users["carol"])
        await SpacedRepService(db_session, locks=KeyedLock()).review_card(
            card_ids[0], users["bob"], True, 3
        )
        service = CardSetService(db_session)

        with pytest.raises(AuthorizationError):
            await service.delete_card_set(private_set.id, users["bob"])

        await service.delete_card_set(private_set.id, users["alice"])

        assert await count(db_session, CardSet) == 0
        assert await count(db_session, Card) == 0
        assert await count(db_session, UserCardProgress) == 0
        assert await count(db_session, CardSetApprovedUser) == 0
        assert await count(db_session, AccessRequest) == 0
        with pytest.raises(NotFoundError):
            await service.get_card_set(private_set.id, users["alice"])


class TestCardService:
    """Tests for CardService."""

    @pytest.mark.asyncio
    async def test_list_cards_with_learner_progress(
        self, db_session, public_set, users
    ):
        service = CardService(db_session)
        cards = await service.list_cards(public_set.id, users["carol"])
        await SpacedRepService(db_session, locks=KeyedLock()).review_card(
            cards[0].id, users["carol"], True, 3
        )

        carol = await service.list_cards(public_set.id, users["carol"])
        dave = await service.list_cards(public_set.id, users["dave"])

        assert [c.term for c in carol] == ["France", "Japan"]
        assert carol[0].status == ProgressStatus.LEARNING
        assert carol[0].times_reviewed == 1
        assert carol[1].status == ProgressStatus.NEW
        assert all(c.status == ProgressStatus.NEW for c in dave)

    @pytest.mark.asyncio
    async def test_add_card(self, db_session, private_set, users):
        service = CardService(db_session)

        card = await service.add_card(
            private_set.id, users["alice"], CardCreate(term="Benzene", definition="C6H6 ring")
        )

        assert card.card_set_id == private_set.id
        assert card.status == ProgressStatus.NEW
        assert len(await service.list_cards(private_set.id, users["alice"])) == 4

    @pytest.mark.asyncio
    async def test_add_card_owner_only(self, db_session, public_set, users):
        with pytest.raises(AuthorizationError):
            await CardService(db_session).add_card(
                public_set.id, users["bob"], CardCreate(term="Peru", definition="Lima")
            )

    @pytest.mark.asyncio
    async def test_add_cards_rejects_blank(self, db_session, private_set):
        with pytest.raises(ValidationError):
            await CardService(db_session).add_cards(private_set.id, [("Term", "   ")])

    @pytest.mark.asyncio
    async def test_update_card(self, db_session, card_ids, users):
        service = CardService(db_session)

        updated = await service.update_card(
            card_ids[0], users["alice"], CardUpdate(definition="Saturated hydrocarbon")
        )

        assert updated.term == "Alkane"
        assert updated.definition == "Saturated hydrocarbon"
        with pytest.raises(AuthorizationError):
            await service.update_card(card_ids[0], users["bob"], CardUpdate(term="X"))

    @pytest.mark.asyncio
    async def test_delete_card_removes_progress(self, db_session, card_ids, users):
        await SpacedRepService(db_session, locks=KeyedLock()).review_card(
            card_ids[0], users["alice"], True, 3
        )
        service = CardService(db_session)

        await service.delete_card(card_ids[0], users["alice"])

        assert await count(db_session, UserCardProgress) == 0
        with pytest.raises(NotFoundError):
            await service.delete_card(card_ids[0], users["alice"])
