"""
Cards API Router

Endpoints:
- GET /cards/cardset/{id} - Cards of a set with the user's progress
- POST /cards/cardset/{id} - Add a card (owner)
- POST /cards/cardset/{id}/generate - Generate cards from a .txt/.pdf upload (owner)
- PUT /cards/{card_id} - Edit a card (owner)
- DELETE /cards/{card_id} - Delete a card (owner)
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.base import get_db
from intellicard.dependencies import CurrentActor
from intellicard.enums.learning import GenerationDifficulty
from intellicard.models.learning import CardCreate, CardResponse, CardUpdate
from intellicard.services.learning import CardGeneratorService, CardService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cards", tags=["cards"])


# ===========================================
# Dependency Injection
# ===========================================


async def get_card_service(
    db: AsyncSession = Depends(get_db),
) -> CardService:
    """Get card service."""
    return CardService(db)


async def get_card_generator(
    db: AsyncSession = Depends(get_db),
) -> CardGeneratorService:
    """Get card generator service."""
    return CardGeneratorService(db)


# ===========================================
# Card Endpoints
# ===========================================


@router.get("/cardset/{card_set_id}", response_model=list[CardResponse])
async def list_cards(
    card_set_id: int,
    actor_id: int = CurrentActor,
    service: CardService = Depends(get_card_service),
) -> list[CardResponse]:
    return await service.list_cards(card_set_id, actor_id)


@router.post(
    "/cardset/{card_set_id}",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_card(
    card_set_id: int,
    data: CardCreate,
    actor_id: int = CurrentActor,
    service: CardService = Depends(get_card_service),
) -> CardResponse:
    return await service.add_card(card_set_id, actor_id, data)


@router.post(
    "/cardset/{card_set_id}/generate",
    response_model=list[CardResponse],
    status_code=status.HTTP_201_CREATED,
)
async def generate_cards(
    card_set_id: int,
    file: UploadFile = File(..., description="Document to generate cards from (.txt or .pdf)"),
    question_count: int = Form(10, description="Number of cards to generate"),
    difficulty: str = Form(GenerationDifficulty.MEDIUM.value, description="EASY, MEDIUM, HARD or MIXED"),
    language: str = Form("English", description="Language of the generated cards"),
    actor_id: int = CurrentActor,
    generator: CardGeneratorService = Depends(get_card_generator),
) -> list[CardResponse]:
    """
    Generate cards from an uploaded document with an LLM.

    Returns 409 if a generation for the same card set is already running.
    """
    data = await file.read()
    return await generator.generate_from_document(
        card_set_id=card_set_id,
        actor_id=actor_id,
        filename=file.filename,
        data=data,
        question_count=question_count,
        difficulty=difficulty,
        language=language,
    )


@router.put("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: int,
    data: CardUpdate,
    actor_id: int = CurrentActor,
    service: CardService = Depends(get_card_service),
) -> CardResponse:
    return await service.update_card(card_id, actor_id, data)


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(
    card_id: int,
    actor_id: int = CurrentActor,
    service: CardService = Depends(get_card_service),
) -> Response:
    await service.delete_card(card_id, actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
