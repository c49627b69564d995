"""
Progress Store

Loads and saves per-(learner, card) SM-2 progress records and answers the
predicate queries the services need: by card set and by due date.

Rows are converted to ProgressState snapshots on the way out; the SM-2
processor never sees an ORM object.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from intellicard.db.models import Card, UserCardProgress
from intellicard.enums.learning import ProgressStatus
from intellicard.services.learning.sm2 import ProgressState


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def progress_from_record(record: UserCardProgress) -> ProgressState:
    """Build a ProgressState snapshot from a progress row."""
    return ProgressState(
        times_reviewed=record.times_reviewed,
        times_correct=record.times_correct,
        consecutive_correct=record.consecutive_correct,
        ease_factor=record.ease_factor,
        interval=record.interval,
        last_reviewed=_as_utc(record.last_reviewed),
        next_review_date=_as_utc(record.next_review_date),
        status=ProgressStatus(record.status),
    )


def copy_to_record(state: ProgressState, record: UserCardProgress) -> UserCardProgress:
    """Write a ProgressState onto a progress row."""
    record.times_reviewed = state.times_reviewed
    record.times_correct = state.times_correct
    record.consecutive_correct = state.consecutive_correct
    record.ease_factor = state.ease_factor
    record.interval = state.interval
    record.last_reviewed = state.last_reviewed
    record.next_review_date = state.next_review_date
    record.status = state.status.value
    return record


class ProgressStore:
    """Persistence for UserCardProgress rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_for_update(
        self, user_id: int, card_id: int
    ) -> Optional[UserCardProgress]:
        """
        Load the progress row and lock it for the rest of the transaction.

        Returns:
            The row, or None if the learner never reviewed the card
        """
        result = await self.db.execute(
            select(UserCardProgress)
            .where(
                UserCardProgress.user_id == user_id,
                UserCardProgress.card_id == card_id,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: int, card_id: int) -> Optional[ProgressState]:
        result = await self.db.execute(
            select(UserCardProgress).where(
                UserCardProgress.user_id == user_id,
                UserCardProgress.card_id == card_id,
            )
        )
        record = result.scalar_one_or_none()
        return progress_from_record(record) if record else None

    async def insert(
        self, user_id: int, card_id: int, state: ProgressState
    ) -> UserCardProgress:
        """
        Create the progress row for a first review.

        Runs inside a savepoint so a concurrent insert of the same
        (user_id, card_id) surfaces as IntegrityError without aborting the
        caller's transaction.
        """
        record = copy_to_record(state, UserCardProgress(user_id=user_id, card_id=card_id))
        async with self.db.begin_nested():
            self.db.add(record)
            await self.db.flush()
        return record

    async def update(
        self, record: UserCardProgress, state: ProgressState
    ) -> UserCardProgress:
        copy_to_record(state, record)
        await self.db.flush()
        return record

    async def for_card_set(
        self, user_id: int, card_set_id: int
    ) -> dict[int, ProgressState]:
        """
        The learner's progress on every card of a set they have reviewed.

        Returns:
            Mapping of card_id → ProgressState
        """
        result = await self.db.execute(
            select(UserCardProgress)
            .join(Card, Card.id == UserCardProgress.card_id)
            .where(
                Card.card_set_id == card_set_id,
                UserCardProgress.user_id == user_id,
            )
        )
        return {
            record.card_id: progress_from_record(record)
            for record in result.scalars().all()
        }

    async def count_cards(self, card_set_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Card.id)).where(Card.card_set_id == card_set_id)
        )
        return result.scalar() or 0

    async def due_cards(
        self,
        user_id: int,
        card_set_id: int,
        now: datetime,
        limit: int,
    ) -> list[tuple[Card, Optional[ProgressState]]]:
        """
        Cards of a set that are due for the learner.

        Never-reviewed cards come first, then by next_review_date, then id.

        Returns:
            List of (card, progress or None) pairs
        """
        query = (
            select(Card, UserCardProgress)
            .outerjoin(
                UserCardProgress,
                and_(
                    UserCardProgress.card_id == Card.id,
                    UserCardProgress.user_id == user_id,
                ),
            )
            .where(
                Card.card_set_id == card_set_id,
                or_(
                    UserCardProgress.id.is_(None),
                    UserCardProgress.next_review_date.is_(None),
                    UserCardProgress.next_review_date <= now,
                ),
            )
            .order_by(
                UserCardProgress.next_review_date.asc().nulls_first(),
                Card.id,
            )
            .limit(limit)
        )
        result = await self.db.execute(query)

        return [
            (card, progress_from_record(record) if record else None)
            for card, record in result.all()
        ]
