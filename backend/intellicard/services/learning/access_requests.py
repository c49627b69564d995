"""
Access Request Workflow

State machine for requests to access private card sets.

    (none) ──request──▶ PENDING ──approve──▶ requester approved, row deleted
                           │
                           └──reject──▶ REJECTED ──request──▶ PENDING (same row)

Conflicts are reported as named outcomes (ALREADY_PENDING,
MISMATCHED_COLLECTION, NOT_PENDING) rather than exceptions so callers can
branch on them. Missing rows and policy denials still raise.

Status changes are compare-and-swap updates guarded on the expected status.
If a concurrent writer wins, the current row is re-read and the request is
re-decided, at most MAX_ATTEMPTS times.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.models import AccessRequest, CardSetApprovedUser, User
from intellicard.enums.learning import (
    AccessLevel,
    AccessRequestOutcome,
    AccessRequestStatus,
)
from intellicard.middleware.error_handling import ConflictError, NotFoundError
from intellicard.models.learning import AccessRequestResponse, AccessRequestResult
from intellicard.services.learning.access_policy import (
    CardSetSnapshot,
    access_level,
    get_card_set_snapshot,
    require_ownership,
    require_user,
)

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

OUTCOME_MESSAGES = {
    AccessRequestOutcome.SUBMITTED: "Request sent successfully!",
    AccessRequestOutcome.RESUBMITTED: "Request sent successfully!",
    AccessRequestOutcome.ALREADY_OWNER: "You are the creator of this card set.",
    AccessRequestOutcome.ALREADY_APPROVED: "You already have access to this card set.",
    AccessRequestOutcome.ALREADY_PENDING: "You already have a pending request for this card set.",
    AccessRequestOutcome.APPROVED: "Request has been approved",
    AccessRequestOutcome.REJECTED: "Request has been rejected",
    AccessRequestOutcome.MISMATCHED_COLLECTION: "Invalid card set for the given request",
    AccessRequestOutcome.NOT_PENDING: "Request is no longer pending",
}

CONFLICT_OUTCOMES = frozenset(
    {
        AccessRequestOutcome.ALREADY_PENDING,
        AccessRequestOutcome.MISMATCHED_COLLECTION,
        AccessRequestOutcome.NOT_PENDING,
    }
)


def decide_request(
    card_set: CardSetSnapshot,
    requester_id: int,
    existing_status: Optional[AccessRequestStatus],
) -> AccessRequestOutcome:
    """
    Decide what a new access request should do.

    Args:
        card_set: Fresh snapshot of the target card set
        requester_id: User asking for access
        existing_status: Status of the requester's current row for this set,
            or None if there is none

    Returns:
        SUBMITTED (insert), RESUBMITTED (flip REJECTED → PENDING), or one of
        the ALREADY_* outcomes (no change)
    """
    level = access_level(requester_id, card_set)
    if level == AccessLevel.OWNER:
        return AccessRequestOutcome.ALREADY_OWNER
    if level == AccessLevel.APPROVED:
        return AccessRequestOutcome.ALREADY_APPROVED
    if existing_status == AccessRequestStatus.PENDING:
        return AccessRequestOutcome.ALREADY_PENDING
    if existing_status == AccessRequestStatus.REJECTED:
        return AccessRequestOutcome.RESUBMITTED
    return AccessRequestOutcome.SUBMITTED


def decide_response(
    card_set: CardSetSnapshot,
    actor_id: int,
    request_card_set_id: int,
    request_status: AccessRequestStatus,
    approve: bool,
) -> AccessRequestOutcome:
    """
    Decide how an owner's response to a request resolves.

    Args:
        card_set: Snapshot of the card set named in the request path
        actor_id: User responding
        request_card_set_id: Card set the request actually targets
        request_status: Current status of the request
        approve: True to approve, False to reject

    Returns:
        APPROVED / REJECTED, or MISMATCHED_COLLECTION / NOT_PENDING

    Raises:
        AuthorizationError: If the actor does not own the path card set
    """
    require_ownership(actor_id, card_set)
    if request_card_set_id != card_set.id:
        return AccessRequestOutcome.MISMATCHED_COLLECTION
    if request_status != AccessRequestStatus.PENDING:
        return AccessRequestOutcome.NOT_PENDING
    return AccessRequestOutcome.APPROVED if approve else AccessRequestOutcome.REJECTED


def make_result(
    outcome: AccessRequestOutcome, request_id: Optional[int] = None
) -> AccessRequestResult:
    return AccessRequestResult(
        outcome=outcome,
        message=OUTCOME_MESSAGES[outcome],
        request_id=request_id,
    )


@dataclass(frozen=True)
class _RequestRow:
    id: int
    requester_id: int
    card_set_id: int
    status: AccessRequestStatus


class AccessRequestService:
    """
    Persists the access request state machine.

    Usage:
        service = AccessRequestService(db)
        result = await service.request_access(card_set_id=1, requester_id=3)
        if result.outcome == AccessRequestOutcome.ALREADY_PENDING:
            ...
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, requester_id: int, card_set_id: int) -> Optional[_RequestRow]:
        result = await self.db.execute(
            select(
                AccessRequest.id,
                AccessRequest.requester_id,
                AccessRequest.card_set_id,
                AccessRequest.status,
            ).where(
                AccessRequest.requester_id == requester_id,
                AccessRequest.card_set_id == card_set_id,
            )
        )
        row = result.one_or_none()
        return _row(row) if row else None

    async def _get(self, request_id: int) -> Optional[_RequestRow]:
        result = await self.db.execute(
            select(
                AccessRequest.id,
                AccessRequest.requester_id,
                AccessRequest.card_set_id,
                AccessRequest.status,
            ).where(AccessRequest.id == request_id)
        )
        row = result.one_or_none()
        return _row(row) if row else None

    async def _transition(
        self,
        request_id: int,
        expected: AccessRequestStatus,
        new: AccessRequestStatus,
    ) -> bool:
        """Compare-and-swap the status. Returns False if the row moved on."""
        result = await self.db.execute(
            update(AccessRequest)
            .where(
                AccessRequest.id == request_id,
                AccessRequest.status == expected.value,
            )
            .values(status=new.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _insert_pending(self, requester_id: int, card_set_id: int) -> int:
        request = AccessRequest(
            requester_id=requester_id,
            card_set_id=card_set_id,
            status=AccessRequestStatus.PENDING.value,
        )
        async with self.db.begin_nested():
            self.db.add(request)
            await self.db.flush()
        return request.id

    async def request_access(
        self, card_set_id: int, requester_id: int
    ) -> AccessRequestResult:
        """
        Ask the owner of a card set for access.

        Returns:
            AccessRequestResult with SUBMITTED, RESUBMITTED, ALREADY_OWNER,
            ALREADY_APPROVED or ALREADY_PENDING

        Raises:
            NotFoundError: If the card set or the requester doesn't exist
            ConflictError: If concurrent writers kept winning every attempt
        """
        await require_user(self.db, requester_id)
        for attempt in range(MAX_ATTEMPTS):
            card_set = await get_card_set_snapshot(self.db, card_set_id)
            existing = await self._find(requester_id, card_set_id)
            outcome = decide_request(
                card_set, requester_id, existing.status if existing else None
            )

            if outcome == AccessRequestOutcome.SUBMITTED:
                try:
                    request_id = await self._insert_pending(requester_id, card_set_id)
                except IntegrityError:
                    logger.warning(
                        f"Concurrent access request for card set {card_set_id} "
                        f"by user {requester_id}, re-reading (attempt {attempt + 1})"
                    )
                    continue
                logger.info(
                    f"User {requester_id} requested access to card set {card_set_id}"
                )
                return make_result(outcome, request_id)

            if outcome == AccessRequestOutcome.RESUBMITTED:
                if not await self._transition(
                    existing.id, AccessRequestStatus.REJECTED, AccessRequestStatus.PENDING
                ):
                    logger.warning(
                        f"Access request {existing.id} changed during resubmission, "
                        f"re-reading (attempt {attempt + 1})"
                    )
                    continue
                logger.info(
                    f"User {requester_id} resubmitted access request {existing.id}"
                )
                return make_result(outcome, existing.id)

            return make_result(outcome, existing.id if existing else None)

        raise ConflictError(
            "Access request kept changing concurrently, try again",
            details={"card_set_id": card_set_id},
        )

    async def list_pending(
        self, card_set_id: int, actor_id: int
    ) -> list[AccessRequestResponse]:
        """
        Pending requests for a card set. Owner only.

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the actor is not the owner
        """
        card_set = await get_card_set_snapshot(self.db, card_set_id)
        require_ownership(actor_id, card_set)

        result = await self.db.execute(
            select(AccessRequest, User.username)
            .join(User, User.id == AccessRequest.requester_id)
            .where(
                AccessRequest.card_set_id == card_set_id,
                AccessRequest.status == AccessRequestStatus.PENDING.value,
            )
            .order_by(AccessRequest.created_at, AccessRequest.id)
        )

        return [
            AccessRequestResponse(
                id=request.id,
                card_set_id=request.card_set_id,
                card_set_name=card_set.name,
                requester_id=request.requester_id,
                requester_username=username,
                status=AccessRequestStatus(request.status),
                created_at=request.created_at,
            )
            for request, username in result.all()
        ]

    async def respond(
        self,
        card_set_id: int,
        request_id: int,
        actor_id: int,
        approve: bool,
    ) -> AccessRequestResult:
        """
        Approve or reject a pending request.

        Approve adds the requester to the approved users and deletes the
        request. Reject flips it to REJECTED and keeps the row so it can be
        resubmitted.

        Returns:
            AccessRequestResult with APPROVED, REJECTED,
            MISMATCHED_COLLECTION or NOT_PENDING

        Raises:
            NotFoundError: If the request or the card set doesn't exist
            AuthorizationError: If the actor does not own the card set
        """
        request = await self._get(request_id)
        if request is None:
            raise NotFoundError(
                "Access request not found", details={"request_id": request_id}
            )

        card_set = await get_card_set_snapshot(self.db, card_set_id)
        outcome = decide_response(
            card_set, actor_id, request.card_set_id, request.status, approve
        )

        if outcome == AccessRequestOutcome.APPROVED:
            result = await self.db.execute(
                delete(AccessRequest)
                .where(
                    AccessRequest.id == request.id,
                    AccessRequest.status == AccessRequestStatus.PENDING.value,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return make_result(AccessRequestOutcome.NOT_PENDING, request.id)
            if request.requester_id not in card_set.approved_user_ids:
                self.db.add(
                    CardSetApprovedUser(
                        card_set_id=card_set.id, user_id=request.requester_id
                    )
                )
                await self.db.flush()
            logger.info(
                f"Owner {actor_id} approved user {request.requester_id} "
                f"for card set {card_set.id}"
            )

        elif outcome == AccessRequestOutcome.REJECTED:
            if not await self._transition(
                request.id, AccessRequestStatus.PENDING, AccessRequestStatus.REJECTED
            ):
                return make_result(AccessRequestOutcome.NOT_PENDING, request.id)
            logger.info(
                f"Owner {actor_id} rejected access request {request.id} "
                f"for card set {card_set.id}"
            )

        return make_result(outcome, request.id)


def _row(row) -> _RequestRow:
    return _RequestRow(
        id=row.id,
        requester_id=row.requester_id,
        card_set_id=row.card_set_id,
        status=AccessRequestStatus(row.status),
    )
