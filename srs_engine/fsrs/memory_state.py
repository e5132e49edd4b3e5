"""
Memory State - FSRS Card State and Retrievability

Defines the memory state variables of a card, the review log entry, and
derived quantities.

Key concepts:
- Stability (S): Days for retrievability to decay to 90%
- Difficulty (D): How hard the card is to learn (1-10 scale)
- Retrievability (R): Probability of successful recall at time t

All timestamps are epoch milliseconds (UTC).
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from typing import Optional
import math
import time

from srs_engine.fsrs.constants import (
    CardStatus,
    DAY_MS,
    DECAY,
    FACTOR,
    S_MIN,
)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CardMemoryState:
    """
    Memory state for a single card.

    A card is defined as: (block_id, direction)
    """
    card_id: str = ""
    owner_id: str = ""
    block_id: str = ""
    direction: str = "forward"

    # Long-term memory parameters
    stability: float = 0.0   # S, in days
    difficulty: float = 0.0  # D, range 1-10 (0 until first review)

    # Scheduling
    due: int = 0                       # Next review (epoch ms)
    last_review: Optional[int] = None  # Most recent review (epoch ms)
    reps: int = 0
    lapses: int = 0
    state: CardStatus = CardStatus.NEW
    scheduled_days: int = 0
    elapsed_days: int = 0

    # Position in learning/relearning steps (None outside those states)
    step: Optional[int] = None

    suspended: bool = False

    def __post_init__(self):
        """Accept plain strings for the state field."""
        self.state = CardStatus(self.state)


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    Append-only audit record of one review.

    Memory values and scheduled_days are the ones in effect *before* the
    review; state is the pre-review state.
    """
    card_id: str
    owner_id: str
    rating: int
    state: CardStatus
    scheduled_days: int
    elapsed_days: int
    stability: float
    difficulty: float
    reviewed_at: int
    log_id: Optional[int] = None


_SNAPSHOT_FIELDS = (
    "stability",
    "difficulty",
    "due",
    "last_review",
    "reps",
    "lapses",
    "state",
    "scheduled_days",
    "elapsed_days",
    "step",
)


@dataclass(frozen=True)
class CardSnapshot:
    """
    Memory fields of a card captured before a review.

    Undo restores a snapshot instead of inverting the FSRS math.
    """
    stability: float
    difficulty: float
    due: int
    last_review: Optional[int]
    reps: int
    lapses: int
    state: CardStatus
    scheduled_days: int
    elapsed_days: int
    step: Optional[int] = None

    @classmethod
    def from_card(cls, card: CardMemoryState) -> CardSnapshot:
        return cls(**{name: getattr(card, name) for name in _SNAPSHOT_FIELDS})

    @classmethod
    def from_dict(cls, data: dict) -> CardSnapshot:
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["state"] = CardStatus(values["state"])
        return cls(**values)

    def apply_to(self, card: CardMemoryState) -> CardMemoryState:
        """Return a copy of card with this snapshot's memory fields."""
        return replace(card, **{name: getattr(self, name) for name in _SNAPSHOT_FIELDS})

    def to_dict(self) -> dict:
        data = {name: getattr(self, name) for name in _SNAPSHOT_FIELDS}
        data["state"] = self.state.value
        return data


def create_initial(now: Optional[int] = None, **identity) -> CardMemoryState:
    """
    Initialize state for a new card (never seen before).

    Args:
        now: Creation time in epoch ms (defaults to now)
        **identity: card_id, owner_id, block_id, direction

    Returns:
        New CardMemoryState, due immediately
    """
    if now is None:
        now = now_ms()
    return CardMemoryState(due=now, **identity)


def elapsed_days_between(last_review: Optional[int], now: int) -> float:
    """
    Fractional days between the last review and now.

    Returns 0 for never-reviewed cards and for clocks running backwards.
    """
    if last_review is None:
        return 0.0
    return max(0.0, (now - last_review) / DAY_MS)


def forgetting_curve(elapsed_days: float, stability: float) -> float:
    """
    FSRS-6 power forgetting curve.

    Formula: R = (1 + F * t / S) ^ decay, with F chosen so R(S) = 0.9

    Args:
        elapsed_days: Time since last review (days)
        stability: Current stability (days)

    Returns:
        Retrievability between 0 and 1
    """
    stability = max(stability, S_MIN)
    elapsed_days = max(elapsed_days, 0.0)
    r = (1.0 + FACTOR * elapsed_days / stability) ** DECAY
    if not math.isfinite(r):
        return 0.0
    return max(0.0, min(1.0, r))


def retrievability(card: CardMemoryState, now: Optional[int] = None) -> float:
    """
    Probability that the card would be recalled at `now`.

    New cards have no retrievability (0). Cards missing last_review derive
    it from due - scheduled_days.
    """
    if card.state == CardStatus.NEW:
        return 0.0
    if now is None:
        now = now_ms()

    last_review = card.last_review
    if last_review is None:
        last_review = card.due - card.scheduled_days * DAY_MS

    return forgetting_curve(elapsed_days_between(last_review, now), card.stability)


def is_due(card: CardMemoryState, now: Optional[int] = None) -> bool:
    """Check if a card is due for review."""
    if now is None:
        now = now_ms()
    return card.due <= now
