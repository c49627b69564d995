"""Enums package."""

from intellicard.enums.learning import (
    AccessLevel,
    AccessRequestOutcome,
    AccessRequestStatus,
    GenerationDifficulty,
    ProgressStatus,
)

__all__ = [
    "AccessLevel",
    "AccessRequestOutcome",
    "AccessRequestStatus",
    "GenerationDifficulty",
    "ProgressStatus",
]
