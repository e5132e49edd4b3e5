"""
Exam Scheduling - Retrievability period before an exam

Cards linked to an upcoming exam are prioritized during a window before the
exam date. The window scales with the number of cards so that all of them can
be reviewed in time.

Formula: period_days = min(30, round(3 + card_count * 0.05))

Examples:
- 20 cards   -> 4 days
- 100 cards  -> 8 days
- 500 cards  -> 28 days
- 1000+      -> 30 days (cap)
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from srs_engine.errors import InvalidArgument
from srs_engine.fsrs.constants import DAY_MS
from srs_engine.fsrs.intervals import round_half_up
from srs_engine.fsrs.memory_state import now_ms


BASE_PERIOD_DAYS = 3
SCALE_FACTOR = 0.05  # 1 day per 20 cards
MAX_PERIOD_DAYS = 30


@dataclass(frozen=True)
class ExamWindow:
    """Half-open window [period_start, exam_timestamp) in epoch ms."""
    period_start: int
    exam_timestamp: int
    period_days: int

    def contains(self, timestamp: int) -> bool:
        return self.period_start <= timestamp < self.exam_timestamp


def retrievability_period_days(card_count: float) -> int:
    """
    Length of the retrievability period in days.

    Args:
        card_count: Number of cards linked to the exam (negative counts as 0)

    Returns:
        Period in days, at most 30

    Raises:
        InvalidArgument: card_count is NaN or infinite
    """
    if card_count is None or not math.isfinite(card_count):
        raise InvalidArgument(f"card_count must be a finite number, got {card_count!r}")

    safe_count = max(0, card_count)
    return min(MAX_PERIOD_DAYS, round_half_up(BASE_PERIOD_DAYS + safe_count * SCALE_FACTOR))


def retrievability_period_start(exam_timestamp: int, card_count: float) -> int:
    """Timestamp (ms) when the retrievability period starts."""
    return exam_timestamp - retrievability_period_days(card_count) * DAY_MS


def exam_window(exam_timestamp: int, card_count: float) -> ExamWindow:
    """Build the ExamWindow for an exam."""
    period_days = retrievability_period_days(card_count)
    return ExamWindow(
        period_start=exam_timestamp - period_days * DAY_MS,
        exam_timestamp=exam_timestamp,
        period_days=period_days,
    )


def is_in_retrievability_period(
    exam_timestamp: int,
    card_count: float,
    now: Optional[int] = None
) -> bool:
    """
    Check if now falls inside the retrievability period of an exam.

    The exam moment itself is outside the window.
    """
    if now is None:
        now = now_ms()
    return exam_window(exam_timestamp, card_count).contains(now)


def days_until(exam_timestamp: int, now: Optional[int] = None) -> int:
    """Days until an exam, rounded up (negative once the exam has passed)."""
    if now is None:
        now = now_ms()
    return math.ceil((exam_timestamp - now) / DAY_MS)


def count_cards_from_blocks(blocks: Iterable[Mapping]) -> int:
    """
    Count reviewable cards from a list of blocks.

    Bidirectional blocks count as 2 (forward + reverse), disabled as 0.
    """
    count = 0
    for block in blocks:
        direction = block.get("card_direction")
        if direction == "bidirectional":
            count += 2
        elif direction and direction != "disabled":
            count += 1
    return count
