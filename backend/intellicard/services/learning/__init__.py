"""
Learning services: SM-2 scheduling, access control, card sets and cards,
access requests, and document-based card generation.
"""

from intellicard.services.learning.access_requests import AccessRequestService
from intellicard.services.learning.card_generator import CardGeneratorService
from intellicard.services.learning.card_service import CardService
from intellicard.services.learning.card_set_service import CardSetService
from intellicard.services.learning.spaced_rep_service import SpacedRepService

__all__ = [
    "AccessRequestService",
    "CardGeneratorService",
    "CardService",
    "CardSetService",
    "SpacedRepService",
]
