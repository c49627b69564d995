"""
Integration tests for the access request workflow.

Covers the full request → reject → resubmit → approve cycle against a
real session, plus the conflict outcomes and compare-and-swap guards.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from intellicard.db.models import AccessRequest, CardSetApprovedUser
from intellicard.enums.learning import (
    AccessLevel,
    AccessRequestOutcome,
    AccessRequestStatus,
)
from intellicard.middleware.error_handling import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
)
from intellicard.services.learning import AccessRequestService
from intellicard.services.learning.access_policy import (
    access_level,
    get_card_set_snapshot,
)
from intellicard.services.learning.access_requests import _RequestRow

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session):
    return AccessRequestService(db_session)


async def request_status(db_session, request_id):
    result = await db_session.execute(
        select(AccessRequest.status).where(AccessRequest.id == request_id)
    )
    return result.scalar_one_or_none()


class TestRequestAccess:
    """Tests for AccessRequestService.request_access()."""

    @pytest.mark.asyncio
    async def test_submit(self, service, db_session, private_set, users):
        result = await service.request_access(private_set.id, users["carol"])

        assert result.outcome == AccessRequestOutcome.SUBMITTED
        assert result.message == "Request sent successfully!"
        assert result.request_id is not None
        assert await request_status(db_session, result.request_id) == "PENDING"

    @pytest.mark.asyncio
    async def test_duplicate_is_already_pending(self, service, private_set, users):
        first = await service.request_access(private_set.id, users["carol"])

        second = await service.request_access(private_set.id, users["carol"])

        assert second.outcome == AccessRequestOutcome.ALREADY_PENDING
        assert second.request_id == first.request_id

    @pytest.mark.asyncio
    async def test_owner(self, service, private_set, users):
        result = await service.request_access(private_set.id, users["alice"])

        assert result.outcome == AccessRequestOutcome.ALREADY_OWNER
        assert result.request_id is None

    @pytest.mark.asyncio
    async def test_already_approved(self, service, db_session, private_set, users):
        db_session.add(
            CardSetApprovedUser(card_set_id=private_set.id, user_id=users["bob"])
        )
        await db_session.flush()

        result = await service.request_access(private_set.id, users["bob"])

        assert result.outcome == AccessRequestOutcome.ALREADY_APPROVED

    @pytest.mark.asyncio
    async def test_missing_card_set(self, service, users):
        with pytest.raises(NotFoundError):
            await service.request_access(9999, users["carol"])

    @pytest.mark.asyncio
    async def test_unknown_requester(self, service, db_session, private_set, users):
        service._insert_pending = AsyncMock()

        with pytest.raises(NotFoundError) as exc_info:
            await service.request_access(private_set.id, 999)

        assert exc_info.value.details == {"user_id": 999}
        service._insert_pending.assert_not_awaited()
        rows = await db_session.execute(select(AccessRequest.id))
        assert rows.scalars().all() == []

    @pytest.mark.asyncio
    async def test_concurrent_insert_rereads(self, service, private_set, users):
        """A lost insert race re-reads the row and reports it as pending."""
        first = await service.request_access(private_set.id, users["carol"])
        existing = await service._find(users["carol"], private_set.id)
        service._find = AsyncMock(side_effect=[None, existing])

        result = await service.request_access(private_set.id, users["carol"])

        assert result.outcome == AccessRequestOutcome.ALREADY_PENDING
        assert result.request_id == first.request_id
        assert service._find.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_races(self, service, private_set, users):
        await service.request_access(private_set.id, users["carol"])
        service._find = AsyncMock(return_value=None)

        with pytest.raises(ConflictError):
            await service.request_access(private_set.id, users["carol"])


class TestListPending:
    """Tests for AccessRequestService.list_pending()."""

    @pytest.mark.asyncio
    async def test_lists_pending_only(self, service, private_set, users):
        carol = await service.request_access(private_set.id, users["carol"])
        dave = await service.request_access(private_set.id, users["dave"])
        await service.respond(private_set.id, dave.request_id, users["alice"], False)

        pending = await service.list_pending(private_set.id, users["alice"])

        assert [r.id for r in pending] == [carol.request_id]
        assert pending[0].requester_username == "carol"
        assert pending[0].card_set_name == "Organic Chemistry"
        assert pending[0].status == AccessRequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_owner_only(self, service, private_set, users):
        with pytest.raises(AuthorizationError):
            await service.list_pending(private_set.id, users["bob"])


class TestRespond:
    """Tests for AccessRequestService.respond()."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, service, db_session, private_set, users):
        """Submitted → Rejected → Resubmitted (same id) → Approved."""
        submitted = await service.request_access(private_set.id, users["carol"])

        rejected = await service.respond(
            private_set.id, submitted.request_id, users["alice"], False
        )
        assert rejected.outcome == AccessRequestOutcome.REJECTED
        assert await request_status(db_session, submitted.request_id) == "REJECTED"

        resubmitted = await service.request_access(private_set.id, users["carol"])
        assert resubmitted.outcome == AccessRequestOutcome.RESUBMITTED
        assert resubmitted.request_id == submitted.request_id
        assert await request_status(db_session, submitted.request_id) == "PENDING"

        approved = await service.respond(
            private_set.id, submitted.request_id, users["alice"], True
        )
        assert approved.outcome == AccessRequestOutcome.APPROVED
        assert approved.message == "Request has been approved"

        # approved requests are removed, the grant remains
        assert await request_status(db_session, submitted.request_id) is None
        snapshot = await get_card_set_snapshot(db_session, private_set.id)
        assert access_level(users["carol"], snapshot) == AccessLevel.APPROVED

        again = await service.request_access(private_set.id, users["carol"])
        assert again.outcome == AccessRequestOutcome.ALREADY_APPROVED

    @pytest.mark.asyncio
    async def test_mismatched_collection(
        self, service, db_session, private_set, make_card_set, users
    ):
        other_set = await make_card_set(users["alice"], "Physics")
        request = await service.request_access(private_set.id, users["carol"])

        result = await service.respond(other_set.id, request.request_id, users["alice"], True)

        assert result.outcome == AccessRequestOutcome.MISMATCHED_COLLECTION
        assert await request_status(db_session, request.request_id) == "PENDING"

    @pytest.mark.asyncio
    async def test_non_owner_denied(self, service, private_set, users):
        request = await service.request_access(private_set.id, users["carol"])

        with pytest.raises(AuthorizationError):
            await service.respond(private_set.id, request.request_id, users["bob"], True)

    @pytest.mark.asyncio
    async def test_non_owner_denied_before_mismatch(
        self, service, private_set, make_card_set, users
    ):
        bobs_set = await make_card_set(users["bob"], "Bob's set")
        request = await service.request_access(private_set.id, users["carol"])

        with pytest.raises(AuthorizationError):
            await service.respond(private_set.id, request.request_id, users["bob"], True)

        # bob owns the path set, so the mismatch is reported instead
        result = await service.respond(bobs_set.id, request.request_id, users["bob"], True)
        assert result.outcome == AccessRequestOutcome.MISMATCHED_COLLECTION

    @pytest.mark.asyncio
    @pytest.mark.parametrize("approve", [True, False])
    async def test_rejected_request_not_pending(self, service, private_set, users, approve):
        request = await service.request_access(private_set.id, users["carol"])
        await service.respond(private_set.id, request.request_id, users["alice"], False)

        result = await service.respond(
            private_set.id, request.request_id, users["alice"], approve
        )

        assert result.outcome == AccessRequestOutcome.NOT_PENDING

    @pytest.mark.asyncio
    async def test_stale_read_loses_compare_and_swap(
        self, service, db_session, private_set, users
    ):
        """The row was rejected after it was read as PENDING."""
        request = await service.request_access(private_set.id, users["carol"])
        stale = _RequestRow(
            id=request.request_id,
            requester_id=users["carol"],
            card_set_id=private_set.id,
            status=AccessRequestStatus.PENDING,
        )
        await service.respond(private_set.id, request.request_id, users["alice"], False)
        service._get = AsyncMock(return_value=stale)

        result = await service.respond(
            private_set.id, request.request_id, users["alice"], True
        )

        assert result.outcome == AccessRequestOutcome.NOT_PENDING
        snapshot = await get_card_set_snapshot(db_session, private_set.id)
        assert users["carol"] not in snapshot.approved_user_ids
        assert await request_status(db_session, request.request_id) == "REJECTED"

    @pytest.mark.asyncio
    async def test_missing_request(self, service, private_set, users):
        with pytest.raises(NotFoundError):
            await service.respond(private_set.id, 9999, users["alice"], True)

    @pytest.mark.asyncio
    async def test_approved_request_is_gone(self, service, private_set, users):
        request = await service.request_access(private_set.id, users["carol"])
        await service.respond(private_set.id, request.request_id, users["alice"], True)

        with pytest.raises(NotFoundError):
            await service.respond(private_set.id, request.request_id, users["alice"], True)

    @pytest.mark.asyncio
    async def test_missing_card_set(self, service, private_set, users):
        request = await service.request_access(private_set.id, users["carol"])

        with pytest.raises(NotFoundError):
            await service.respond(9999, request.request_id, users["alice"], True)
