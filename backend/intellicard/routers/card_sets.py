"""
Card Sets API Router

Endpoints:
- GET /cardsets - Card sets the user can read
- POST /cardsets - Create a card set
- GET /cardsets/{id} - Get a card set
- PUT /cardsets/{id} - Rename / change visibility (owner)
- DELETE /cardsets/{id} - Delete with all cards and progress (owner)
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.base import get_db
from intellicard.dependencies import CurrentActor
from intellicard.models.learning import CardSetCreate, CardSetResponse, CardSetUpdate
from intellicard.services.learning import CardSetService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cardsets", tags=["card-sets"])


async def get_card_set_service(
    db: AsyncSession = Depends(get_db),
) -> CardSetService:
    """Get card set service."""
    return CardSetService(db)


@router.get("", response_model=list[CardSetResponse])
async def list_card_sets(
    actor_id: int = CurrentActor,
    service: CardSetService = Depends(get_card_set_service),
) -> list[CardSetResponse]:
    """Public, owned, and approved card sets with the user's access level."""
    return await service.list_accessible(actor_id)


@router.post("", response_model=CardSetResponse, status_code=status.HTTP_201_CREATED)
async def create_card_set(
    data: CardSetCreate,
    actor_id: int = CurrentActor,
    service: CardSetService = Depends(get_card_set_service),
) -> CardSetResponse:
    return await service.create_card_set(actor_id, data)


@router.get("/{card_set_id}", response_model=CardSetResponse)
async def get_card_set(
    card_set_id: int,
    actor_id: int = CurrentActor,
    service: CardSetService = Depends(get_card_set_service),
) -> CardSetResponse:
    return await service.get_card_set(card_set_id, actor_id)


@router.put("/{card_set_id}", response_model=CardSetResponse)
async def update_card_set(
    card_set_id: int,
    data: CardSetUpdate,
    actor_id: int = CurrentActor,
    service: CardSetService = Depends(get_card_set_service),
) -> CardSetResponse:
    """Rename and/or change visibility. Owner only."""
    return await service.update_card_set(card_set_id, actor_id, data)


@router.delete("/{card_set_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card_set(
    card_set_id: int,
    actor_id: int = CurrentActor,
    service: CardSetService = Depends(get_card_set_service),
) -> Response:
    """Delete a card set, its cards, progress, approvals and requests. Owner only."""
    await service.delete_card_set(card_set_id, actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
