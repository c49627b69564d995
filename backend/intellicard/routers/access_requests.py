"""
Access Requests API Router

Endpoints:
- POST /cardsets/{id}/access-requests - Ask the owner for access
- GET /cardsets/{id}/access-requests - Pending requests (owner)
- PUT /cardsets/{id}/access-requests/{request_id}?approve= - Approve / reject (owner)

Conflict outcomes (ALREADY_PENDING, MISMATCHED_COLLECTION, NOT_PENDING)
come back with status 409 and the same body shape as other outcomes.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.base import get_db
from intellicard.dependencies import CurrentActor
from intellicard.models.learning import AccessRequestResponse, AccessRequestResult
from intellicard.services.learning import AccessRequestService
from intellicard.services.learning.access_requests import CONFLICT_OUTCOMES

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/cardsets/{card_set_id}/access-requests", tags=["access-requests"]
)


async def get_access_request_service(
    db: AsyncSession = Depends(get_db),
) -> AccessRequestService:
    """Get access request service."""
    return AccessRequestService(db)


def _with_status(result: AccessRequestResult, response: Response) -> AccessRequestResult:
    if result.outcome in CONFLICT_OUTCOMES:
        response.status_code = status.HTTP_409_CONFLICT
    return result


@router.post("", response_model=AccessRequestResult)
async def request_access(
    card_set_id: int,
    response: Response,
    actor_id: int = CurrentActor,
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestResult:
    result = await service.request_access(card_set_id, actor_id)
    return _with_status(result, response)


@router.get("", response_model=list[AccessRequestResponse])
async def list_pending_requests(
    card_set_id: int,
    actor_id: int = CurrentActor,
    service: AccessRequestService = Depends(get_access_request_service),
) -> list[AccessRequestResponse]:
    return await service.list_pending(card_set_id, actor_id)


@router.put("/{request_id}", response_model=AccessRequestResult)
async def respond_to_request(
    card_set_id: int,
    request_id: int,
    response: Response,
    approve: bool = Query(..., description="True to approve, false to reject"),
    actor_id: int = CurrentActor,
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestResult:
    result = await service.respond(card_set_id, request_id, actor_id, approve)
    return _with_status(result, response)
