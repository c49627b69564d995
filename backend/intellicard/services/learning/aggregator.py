"""
Collection Aggregator

Summary counts over one learner's progress records in a card set.

due_cards counts cards the learner never reviewed plus records whose
next_review_date is at or before now. mastered_cards and learning_cards
count records in those statuses; never-reviewed cards are in neither.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from intellicard.enums.learning import ProgressStatus
from intellicard.services.learning.sm2 import ProgressState


@dataclass(frozen=True)
class ProgressSummary:
    total_cards: int
    due_cards: int
    mastered_cards: int
    learning_cards: int


def summarize_progress(
    total_cards: int,
    progress: Iterable[ProgressState],
    now: datetime,
) -> ProgressSummary:
    """
    Count due / mastered / learning cards.

    Args:
        total_cards: Number of cards in the set, reviewed or not
        progress: The learner's progress records for cards in the set
        now: Reference instant for the due check

    Returns:
        ProgressSummary with all four counts
    """
    tracked = 0
    due = 0
    mastered = 0
    learning = 0

    for state in progress:
        tracked += 1
        if state.is_due(now):
            due += 1
        if state.status == ProgressStatus.MASTERED:
            mastered += 1
        elif state.status == ProgressStatus.LEARNING:
            learning += 1

    untracked = max(total_cards - tracked, 0)

    return ProgressSummary(
        total_cards=total_cards,
        due_cards=due + untracked,
        mastered_cards=mastered,
        learning_cards=learning,
    )
