"""
Spaced Repetition Service

Service layer that connects SM-2 scheduling with the database.
Handles review processing, due card queries, and study overviews.

Every call checks the access policy against a freshly loaded card set
before touching progress.

Usage:
    from intellicard.services.learning import SpacedRepService

    service = SpacedRepService(db_session)

    # Get due cards
    cards = await service.get_due_cards(card_set_id=1, actor_id=2)

    # Process a review
    result = await service.review_card(card_id=123, actor_id=2, correct=True, difficulty=3)
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.config.settings import settings
from intellicard.middleware.error_handling import ConflictError
from intellicard.models.learning import CardResponse, ReviewResponse, StudyOverview
from intellicard.services.clock import Clock, get_clock
from intellicard.services.learning.access_policy import (
    get_card_set_snapshot,
    require_read_access,
    require_user,
)
from intellicard.services.learning.aggregator import summarize_progress
from intellicard.services.learning.card_service import get_card, to_card_response
from intellicard.services.learning.progress_store import (
    ProgressStore,
    progress_from_record,
)
from intellicard.services.learning.sm2 import (
    apply_review,
    default_progress,
    validate_difficulty,
)
from intellicard.services.locks import KeyedLock

logger = logging.getLogger(__name__)

# Serializes reviews of the same (user, card) pair within this process.
# Row locks on the progress table cover concurrent processes.
review_locks = KeyedLock()

MAX_REVIEW_ATTEMPTS = 3


class SpacedRepService:
    """
    Service for SM-2 reviews and study queries.

    Provides:
    - Review processing with the SM-2 algorithm
    - Due card queries
    - Per-learner study overview counts
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        locks: Optional[KeyedLock] = None,
    ):
        """
        Initialize the spaced repetition service.

        Args:
            db: Database session
            clock: Source of "now" (defaults to the system clock)
            locks: Per-key review locks (defaults to the process-wide map)
        """
        self.db = db
        self.clock = clock or get_clock()
        self.locks = locks if locks is not None else review_locks
        self.progress = ProgressStore(db)

    async def review_card(
        self,
        card_id: int,
        actor_id: int,
        correct: bool,
        difficulty: int,
    ) -> ReviewResponse:
        """
        Process one review of a card by the acting user.

        Creates the user's progress record on the first review. Reviews of
        the same (user, card) are serialized; the read-modify-write happens
        under a row lock.

        Args:
            card_id: Card being reviewed
            actor_id: Reviewing user
            correct: Whether the user recalled the card
            difficulty: Recall rating 1..5

        Returns:
            ReviewResponse with the updated progress

        Raises:
            NotFoundError: If the card, its set or the user doesn't exist
            AuthorizationError: If the user has no access to the card's set
            ValidationError: If difficulty is outside [1, 5]
        """
        card = await get_card(self.db, card_id)
        card_set = await get_card_set_snapshot(self.db, card.card_set_id)
        require_read_access(actor_id, card_set)
        await require_user(self.db, actor_id)
        validate_difficulty(difficulty)

        async with self.locks.hold((actor_id, card_id)):
            now = self.clock.now()

            for attempt in range(MAX_REVIEW_ATTEMPTS):
                record = await self.progress.load_for_update(actor_id, card_id)
                current = progress_from_record(record) if record else default_progress()
                updated = apply_review(current, correct, difficulty, now)

                if record is not None:
                    await self.progress.update(record, updated)
                    break

                try:
                    await self.progress.insert(actor_id, card_id, updated)
                    break
                except IntegrityError:
                    logger.warning(
                        f"Progress for user {actor_id} card {card_id} created "
                        f"concurrently, retrying (attempt {attempt + 1})"
                    )
            else:
                raise ConflictError(
                    "Card review kept conflicting, try again",
                    details={"card_id": card_id},
                )

        logger.info(
            f"Reviewed card {card_id} by user {actor_id}: correct={correct}, "
            f"difficulty={difficulty}, interval={updated.interval}d, "
            f"ease={updated.ease_factor:.2f}, status={updated.status.value}"
        )

        return ReviewResponse(
            card_id=card_id,
            times_reviewed=updated.times_reviewed,
            times_correct=updated.times_correct,
            consecutive_correct=updated.consecutive_correct,
            ease_factor=updated.ease_factor,
            interval=updated.interval,
            last_reviewed=updated.last_reviewed,
            next_review_date=updated.next_review_date,
            status=updated.status,
        )

    async def get_due_cards(
        self,
        card_set_id: int,
        actor_id: int,
        limit: Optional[int] = None,
    ) -> list[CardResponse]:
        """
        Cards of a set due for the acting user.

        Never-reviewed cards are due immediately and come first.

        Args:
            card_set_id: Card set to study
            actor_id: Studying user
            limit: Maximum cards to return (DUE_CARDS_DEFAULT_LIMIT if None)

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the user has no access
        """
        card_set = await get_card_set_snapshot(self.db, card_set_id)
        require_read_access(actor_id, card_set)

        limit = limit or settings.DUE_CARDS_DEFAULT_LIMIT
        due = await self.progress.due_cards(
            actor_id, card_set_id, self.clock.now(), limit
        )
        return [to_card_response(card, progress) for card, progress in due]

    async def get_study_overview(
        self, card_set_id: int, actor_id: int
    ) -> StudyOverview:
        """
        Total / due / mastered / learning counts for the acting user.

        Raises:
            NotFoundError: If the card set doesn't exist
            AuthorizationError: If the user has no access
        """
        card_set = await get_card_set_snapshot(self.db, card_set_id)
        require_read_access(actor_id, card_set)

        total = await self.progress.count_cards(card_set_id)
        progress = await self.progress.for_card_set(actor_id, card_set_id)
        summary = summarize_progress(total, progress.values(), self.clock.now())

        return StudyOverview(
            card_set_id=card_set.id,
            card_set_name=card_set.name,
            total_cards=summary.total_cards,
            due_cards=summary.due_cards,
            mastered_cards=summary.mastered_cards,
            learning_cards=summary.learning_cards,
        )
