"""API request/response models."""

from intellicard.models.base import StrictRequest, StrictResponse
from intellicard.models.learning import (
    AccessRequestResponse,
    AccessRequestResult,
    CardCreate,
    CardResponse,
    CardSetCreate,
    CardSetResponse,
    CardSetUpdate,
    CardUpdate,
    GeneratedCard,
    ReviewRequest,
    ReviewResponse,
    StudyOverview,
)

__all__ = [
    "StrictRequest",
    "StrictResponse",
    "AccessRequestResponse",
    "AccessRequestResult",
    "CardCreate",
    "CardResponse",
    "CardSetCreate",
    "CardSetResponse",
    "CardSetUpdate",
    "CardUpdate",
    "GeneratedCard",
    "ReviewRequest",
    "ReviewResponse",
    "StudyOverview",
]
