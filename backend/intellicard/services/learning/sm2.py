"""
SM-2 Review Outcome Processor

Turns a review outcome into an updated memory-strength estimate and a
next-due timestamp. This is a variant of the SuperMemo-2 algorithm with a
binary correct/incorrect outcome plus a 1-5 difficulty rating.

Key Concepts:
- Ease factor (EF): Multiplier for interval growth, floor 1.3, starts at 2.5
- Interval: Whole days until the next review
- Streak: Consecutive correct reviews, reset to 0 on any miss

Ease update on a correct review (difficulty d, 1 = easiest, 5 = hardest):
    EF' = max(1.3, EF + (0.1 - (5 - d) * (0.08 + (5 - d) * 0.02)))

Interval on a correct review:
    streak == 1  →  1 day
    streak == 2  →  6 days
    otherwise    →  round_half_away(interval * EF')

State Machine:
    NEW → LEARNING → REVIEW (streak ≥ 2) → MASTERED (streak ≥ 5)
    any incorrect review → LEARNING

apply_review() is pure: identical inputs give bit-identical outputs. The
caller must serialize concurrent reviews of the same (learner, card) pair.

Usage:
    from intellicard.services.learning.sm2 import apply_review, default_progress

    progress = default_progress()
    progress = apply_review(progress, correct=True, difficulty=3, now=now)
    print(progress.interval, progress.next_review_date)
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from intellicard.enums.learning import ProgressStatus
from intellicard.middleware.error_handling import ValidationError

INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
INITIAL_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5

REVIEW_STREAK = 2
MASTERED_STREAK = 5


@dataclass(frozen=True)
class ProgressState:
    """
    SM-2 scheduling state of one learner on one card.

    Mirrors the columns of user_card_progress. All datetimes are
    timezone-aware UTC.
    """

    times_reviewed: int = 0
    times_correct: int = 0
    consecutive_correct: int = 0
    ease_factor: float = INITIAL_EASE_FACTOR
    interval: int = INITIAL_INTERVAL_DAYS
    last_reviewed: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    status: ProgressStatus = ProgressStatus.NEW

    def is_due(self, now: datetime) -> bool:
        """A card without a scheduled date is due immediately."""
        return self.next_review_date is None or self.next_review_date <= now


def default_progress() -> ProgressState:
    """Initial state for a card the learner has never reviewed."""
    return ProgressState()


def round_half_away(value: float) -> int:
    """
    Round to the nearest integer, ties away from zero.

    Goes through Decimal so values such as 0.49999999999999994 are not
    pushed over the tie by float addition.
    """
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def validate_difficulty(difficulty: int) -> int:
    """
    Check a difficulty rating.

    Raises:
        ValidationError: If difficulty is not an int in [1, 5]
    """
    if isinstance(difficulty, bool) or not isinstance(difficulty, int):
        raise ValidationError(
            f"Difficulty must be an integer between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}",
            details={"difficulty": repr(difficulty)},
        )
    if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
        raise ValidationError(
            f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, got {difficulty}",
            details={"difficulty": difficulty},
        )
    return difficulty


def next_ease_factor(ease_factor: float, difficulty: int) -> float:
    """EF after a correct review. Difficulty 5 adds 0.1, difficulty 1 subtracts 0.54."""
    return max(
        MIN_EASE_FACTOR,
        ease_factor + (0.1 - (5 - difficulty) * (0.08 + (5 - difficulty) * 0.02)),
    )


def status_for_streak(consecutive_correct: int) -> ProgressStatus:
    """Status after a correct review that left the given streak."""
    if consecutive_correct >= MASTERED_STREAK:
        return ProgressStatus.MASTERED
    if consecutive_correct >= REVIEW_STREAK:
        return ProgressStatus.REVIEW
    return ProgressStatus.LEARNING


def apply_review(
    progress: ProgressState,
    correct: bool,
    difficulty: int,
    now: datetime,
) -> ProgressState:
    """
    Process one review and return the next scheduling state.

    Args:
        progress: Current state (default_progress() for a first review)
        correct: Whether the learner recalled the card
        difficulty: Learner's rating, 1 (easy) to 5 (hard). Validated for
            both outcomes even though a miss does not use it.
        now: Review time, timezone-aware UTC

    Returns:
        New ProgressState; the input is not modified.

    Raises:
        ValidationError: If difficulty is outside [1, 5]
    """
    validate_difficulty(difficulty)

    times_reviewed = progress.times_reviewed + 1

    if not correct:
        return replace(
            progress,
            times_reviewed=times_reviewed,
            last_reviewed=now,
            consecutive_correct=0,
            interval=INITIAL_INTERVAL_DAYS,
            next_review_date=now + timedelta(days=INITIAL_INTERVAL_DAYS),
            status=ProgressStatus.LEARNING,
        )

    consecutive_correct = progress.consecutive_correct + 1
    ease_factor = next_ease_factor(progress.ease_factor, difficulty)

    if consecutive_correct == 1:
        interval = INITIAL_INTERVAL_DAYS
    elif consecutive_correct == 2:
        interval = SECOND_INTERVAL_DAYS
    else:
        interval = round_half_away(progress.interval * ease_factor)

    return replace(
        progress,
        times_reviewed=times_reviewed,
        times_correct=progress.times_correct + 1,
        consecutive_correct=consecutive_correct,
        ease_factor=ease_factor,
        interval=interval,
        last_reviewed=now,
        next_review_date=now + timedelta(days=interval),
        status=status_for_streak(consecutive_correct),
    )
