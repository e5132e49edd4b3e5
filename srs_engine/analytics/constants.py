"""
Constants for study analytics.
"""

from __future__ import annotations

from typing import Final


# Difficulty buckets: label -> inclusive (min, max) on the rounded 1-10 scale
DIFFICULTY_BUCKETS: Final[dict[str, tuple[int, int]]] = {
    "1-2": (1, 2),
    "3-4": (3, 4),
    "5-6": (5, 6),
    "7-8": (7, 8),
    "9-10": (9, 10),
}

CARD_COLUMNS: Final[list[str]] = [
    "card_id", "block_id", "state", "difficulty", "due", "lapses", "reps", "suspended",
]
LOG_COLUMNS: Final[list[str]] = ["log_id", "card_id", "rating", "reviewed_at"]
