"""
Learning System Enums

Defines enums for SM-2 scheduling, card set access control, access request
workflow, and AI card generation.
"""

from enum import Enum


class ProgressStatus(str, Enum):
    """
    Per-learner card states in the scheduling state machine.

    State transitions:
    - NEW → LEARNING (first correct review, or any incorrect review)
    - LEARNING → REVIEW (2 consecutive correct reviews)
    - REVIEW → MASTERED (5 consecutive correct reviews)
    - any state → LEARNING (incorrect review resets the streak)
    """

    NEW = "NEW"  # Never reviewed by this learner
    LEARNING = "LEARNING"  # Streak below 2
    REVIEW = "REVIEW"  # Streak of 2-4
    MASTERED = "MASTERED"  # Streak of 5 or more, not terminal


class AccessLevel(str, Enum):
    """
    Coarse-grained permission an actor holds over a card set.

    Evaluated in precedence order: OWNER, APPROVED, PUBLIC_READ, NO_ACCESS.
    """

    OWNER = "OWNER"
    APPROVED = "APPROVED"
    PUBLIC_READ = "PUBLIC_READ"
    NO_ACCESS = "NO_ACCESS"


class AccessRequestStatus(str, Enum):
    """
    Status of a request to access a private card set.

    APPROVED requests are deleted once the requester is added to the
    approved users, so persisted rows are PENDING or REJECTED.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AccessRequestOutcome(str, Enum):
    """
    Named result of an access request operation.

    Conflicts are reported as outcomes rather than exceptions so callers
    can branch on them.
    """

    # request_access
    SUBMITTED = "SUBMITTED"
    RESUBMITTED = "RESUBMITTED"
    ALREADY_OWNER = "ALREADY_OWNER"
    ALREADY_APPROVED = "ALREADY_APPROVED"
    ALREADY_PENDING = "ALREADY_PENDING"

    # respond
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    MISMATCHED_COLLECTION = "MISMATCHED_COLLECTION"
    NOT_PENDING = "NOT_PENDING"


class GenerationDifficulty(str, Enum):
    """
    Difficulty requested from the card generation model.
    """

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"
    MIXED = "MIXED"
