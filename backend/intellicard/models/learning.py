"""
Learning API Models (Pydantic)

Request/response schemas for card sets, cards, study sessions, access
requests and document-based card generation.

ARCHITECTURE NOTE:
    This file contains PYDANTIC models for API validation.
    The corresponding SQLAlchemy tables live in intellicard/db/models.py.

    Data flows: API Request → Pydantic → Service → SQLAlchemy → Database

API Contract:
    Request models use StrictRequest (extra="forbid") to reject unknown fields.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, StrictBool, StrictInt, field_validator

from intellicard.enums.learning import (
    AccessLevel,
    AccessRequestOutcome,
    AccessRequestStatus,
    ProgressStatus,
)
from intellicard.models.base import StrictRequest, StrictResponse


# ===========================================
# Card Set Models
# ===========================================


class CardSetCreate(StrictRequest):
    """Request to create a card set owned by the acting user."""

    name: str = Field(..., min_length=1, max_length=255)
    is_public: bool = False


class CardSetUpdate(StrictRequest):
    """Owner-only rename / visibility change. Omitted fields are unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    is_public: Optional[bool] = None


class CardSetResponse(StrictResponse):
    """
    Card set as seen by the acting user.

    access_level tells the client whether it may edit (OWNER) or only study.
    """

    id: int
    name: str
    is_public: bool
    owner_id: int
    owner_name: Optional[str] = None
    access_level: AccessLevel
    total_cards: int = 0


# ===========================================
# Card Models
# ===========================================


class CardCreate(StrictRequest):
    """Request to add a card to a card set."""

    term: str = Field(..., min_length=1)
    definition: str = Field(..., min_length=1)


class CardUpdate(StrictRequest):
    """Owner-only edit of a card's text. Omitted fields are unchanged."""

    term: Optional[str] = Field(None, min_length=1)
    definition: Optional[str] = Field(None, min_length=1)


class CardResponse(StrictResponse):
    """
    Card with the acting user's own progress.

    Cards the user never reviewed carry NEW defaults and no review date.
    """

    id: int
    card_set_id: int
    term: str
    definition: str
    times_reviewed: int = 0
    times_correct: int = 0
    next_review_date: Optional[datetime] = None
    status: ProgressStatus = ProgressStatus.NEW


# ===========================================
# Study Models
# ===========================================


class ReviewRequest(StrictRequest):
    """
    One review outcome.

    difficulty is the learner's rating, 1 (easy) to 5 (hard). Strict types
    keep booleans and numeric strings from being coerced into a rating.
    """

    correct: StrictBool
    difficulty: StrictInt = Field(..., ge=1, le=5)


class ReviewResponse(StrictResponse):
    """Progress record after a review."""

    card_id: int
    times_reviewed: int
    times_correct: int
    consecutive_correct: int
    ease_factor: float
    interval: int
    last_reviewed: datetime
    next_review_date: datetime
    status: ProgressStatus


class StudyOverview(StrictResponse):
    """Per-learner summary counts for one card set."""

    card_set_id: int
    card_set_name: str
    total_cards: int
    due_cards: int
    mastered_cards: int
    learning_cards: int


# ===========================================
# Access Request Models
# ===========================================


class AccessRequestResponse(StrictResponse):
    """A request to access a private card set."""

    id: int
    card_set_id: int
    card_set_name: Optional[str] = None
    requester_id: int
    requester_username: Optional[str] = None
    status: AccessRequestStatus
    created_at: Optional[datetime] = None


class AccessRequestResult(StrictResponse):
    """
    Named outcome of request_access / respond.

    Conflicts (ALREADY_PENDING, MISMATCHED_COLLECTION, NOT_PENDING) are
    outcomes, not exceptions, so callers can branch on them.
    """

    outcome: AccessRequestOutcome
    message: str
    request_id: Optional[int] = None


# ===========================================
# Card Generation Models
# ===========================================


class GeneratedCard(StrictResponse):
    """A term/definition pair parsed from model output, before persisting."""

    term: str
    definition: str

    @field_validator("term", "definition", mode="before")
    @classmethod
    def coerce_to_text(cls, value):
        if value is None:
            return ""
        return str(value).strip()
