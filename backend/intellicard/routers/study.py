"""
Study API Router

Endpoints:
- GET /study/cardset/{id}/due - Cards due for the user
- POST /study/card/{card_id}/review - Submit a review outcome
- GET /study/cardset/{id}/overview - Total / due / mastered / learning counts
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.base import get_db
from intellicard.dependencies import CurrentActor
from intellicard.models.learning import (
    CardResponse,
    ReviewRequest,
    ReviewResponse,
    StudyOverview,
)
from intellicard.services.learning import SpacedRepService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/study", tags=["study"])


async def get_spaced_rep_service(
    db: AsyncSession = Depends(get_db),
) -> SpacedRepService:
    """Get spaced repetition service."""
    return SpacedRepService(db)


@router.get("/cardset/{card_set_id}/due", response_model=list[CardResponse])
async def get_due_cards(
    card_set_id: int,
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum cards to return"),
    actor_id: int = CurrentActor,
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> list[CardResponse]:
    """Never-reviewed cards first, then by due date."""
    return await service.get_due_cards(card_set_id, actor_id, limit)


@router.post("/card/{card_id}/review", response_model=ReviewResponse)
async def review_card(
    card_id: int,
    review: ReviewRequest,
    actor_id: int = CurrentActor,
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> ReviewResponse:
    """
    Submit a review.

    difficulty: 1 to 5. 5 grows the ease factor by 0.1, 4 keeps it, lower
    ratings shrink it. A wrong answer resets the card to a one-day interval.
    """
    return await service.review_card(
        card_id=card_id,
        actor_id=actor_id,
        correct=review.correct,
        difficulty=review.difficulty,
    )


@router.get("/cardset/{card_set_id}/overview", response_model=StudyOverview)
async def get_study_overview(
    card_set_id: int,
    actor_id: int = CurrentActor,
    service: SpacedRepService = Depends(get_spaced_rep_service),
) -> StudyOverview:
    return await service.get_study_overview(card_set_id, actor_id)
