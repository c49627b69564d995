"""API Routers package."""

from intellicard.routers import access_requests as access_requests_router
from intellicard.routers import card_sets as card_sets_router
from intellicard.routers import cards as cards_router
from intellicard.routers import study as study_router

__all__ = [
    "access_requests_router",
    "card_sets_router",
    "cards_router",
    "study_router",
]
