"""
Types for study analytics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from srs_engine.fsrs.memory_state import CardMemoryState


@dataclass(frozen=True)
class StudyStats:
    """
    Snapshot of a user's deck.

    learning_cards counts both learning and relearning cards.
    """
    total_cards: int = 0
    new_cards: int = 0
    learning_cards: int = 0
    review_cards: int = 0
    due_now: int = 0
    reviewed_today: int = 0
    retention_rate: Optional[int] = None  # percent, None when nothing reviewed today


@dataclass(frozen=True)
class DifficultyBucketPage:
    """Cards in one difficulty bucket, hardest-hit first."""
    bucket: str
    total: int
    cards: list[CardMemoryState] = field(default_factory=list)
