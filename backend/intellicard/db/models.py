"""
SQLAlchemy Database Models

Tables:
- users: Learners and card set owners (credentials live in the auth service)
- card_sets: Named, owned groups of cards with a visibility flag
- card_set_approved_users: Users granted access to a private card set
- cards: Term/definition pairs, each belonging to exactly one card set
- user_card_progress: SM-2 scheduling state per (learner, card)
- access_requests: Requests to access private card sets

ARCHITECTURE NOTE:
    Ownership is one-directional. A CardSet owns its cards; cards, progress
    records and access requests refer back by id only. Foreign keys cascade
    on delete so removing a card set removes everything beneath it.

    The service layer works on value snapshots (CardSetSnapshot,
    ProgressState) built from these rows, never on live ORM objects.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intellicard.db.base import Base
from intellicard.enums.learning import AccessRequestStatus, ProgressStatus


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# ===========================================
# Users
# ===========================================


class User(Base):
    """
    A learner / card set owner.

    Attributes:
        id: Primary key.
        username: Unique login name, shown as card set owner name.
        full_name: Display name. Optional.
        email: Contact address. Optional, unique when set.
        created_at: Row creation time.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


# ===========================================
# Card Sets
# ===========================================


class CardSet(Base):
    """
    A named group of cards with a visibility policy.

    Attributes:
        id: Primary key.
        name: Display name.
        owner_id: User who created the set and has full control over it.
        is_public: Public sets are readable by every user.
        created_at: Row creation time.
        last_modified: Updated on rename / visibility change.
        cards: Cards owned by this set (deleted with it).
    """

    __tablename__ = "card_sets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    cards: Mapped[List["Card"]] = relationship(
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Card.id",
    )


class CardSetApprovedUser(Base):
    """
    Grant of read access on a private card set.

    The owner is never stored here; ownership already implies full access.
    """

    __tablename__ = "card_set_approved_users"

    card_set_id: Mapped[int] = mapped_column(
        ForeignKey("card_sets.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    approved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


# ===========================================
# Cards
# ===========================================


class Card(Base):
    """
    A term/definition pair, the unit of study.

    Attributes:
        id: Primary key.
        card_set_id: Owning card set.
        term: Prompt side of the card.
        definition: Answer side of the card.
        created_at: Row creation time.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(primary_key=True)
    card_set_id: Mapped[int] = mapped_column(
        ForeignKey("card_sets.id", ondelete="CASCADE"), index=True
    )
    term: Mapped[str] = mapped_column(Text)
    definition: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


# ===========================================
# Progress (SM-2 state per learner × card)
# ===========================================


class UserCardProgress(Base):
    """
    Spaced repetition state for one learner on one card.

    Created lazily on the learner's first review and mutated only through
    the SM-2 review processor.

    Attributes:
        times_reviewed: Total reviews.
        times_correct: Correct reviews, never above times_reviewed.
        consecutive_correct: Current correct streak, reset on a miss.
        ease_factor: Interval multiplier, floor 1.3.
        interval: Whole days until the next review.
        last_reviewed: Time of the most recent review.
        next_review_date: last_reviewed + interval days.
        status: NEW, LEARNING, REVIEW or MASTERED.
    """

    __tablename__ = "user_card_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "card_id", name="uq_user_card_progress_user_card"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[int] = mapped_column(
        ForeignKey("cards.id", ondelete="CASCADE"), index=True
    )

    times_reviewed: Mapped[int] = mapped_column(Integer, default=0)
    times_correct: Mapped[int] = mapped_column(Integer, default=0)
    consecutive_correct: Mapped[int] = mapped_column(Integer, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval: Mapped[int] = mapped_column(Integer, default=1)

    last_reviewed: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    next_review_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=ProgressStatus.NEW.value)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


# ===========================================
# Access Requests
# ===========================================


class AccessRequest(Base):
    """
    Request by a user to access a private card set.

    At most one row exists per (requester, card set). A rejected request is
    flipped back to PENDING on resubmission instead of inserting a new row;
    an approved request is deleted after the requester is granted access.
    """

    __tablename__ = "access_requests"
    __table_args__ = (
        UniqueConstraint(
            "requester_id", "card_set_id", name="uq_access_requests_requester_set"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    requester_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    card_set_id: Mapped[int] = mapped_column(
        ForeignKey("card_sets.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=AccessRequestStatus.PENDING.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )
