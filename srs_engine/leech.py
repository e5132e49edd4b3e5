"""
Leech Detector - Flag chronically failed cards

A leech is a card the learner keeps forgetting. Detection is a pure
classification over already-fetched counters and review logs; acting on it
(suspending the card) is a separate, explicit operation.

Criteria: lapses > 5 OR (reps > 10 AND retention < 40%)
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from srs_engine.fsrs.constants import Rating
from srs_engine.fsrs.intervals import round_half_up
from srs_engine.fsrs.memory_state import CardMemoryState, ReviewLogEntry


# ---- Thresholds ----

LEECH_LAPSE_THRESHOLD = 5        # lapses above this -> leech
LEECH_REPS_THRESHOLD = 10        # retention path needs reps above this
LEECH_RETENTION_THRESHOLD = 40   # percent
MIN_LOGS_FOR_RETENTION = 5


@dataclass(frozen=True)
class LeechStats:
    """Summary counts for a user's leeches."""
    total_leeches: int = 0
    suspended_count: int = 0
    high_lapses_count: int = 0
    low_retention_count: int = 0


def retention_rate(logs: Iterable[ReviewLogEntry]) -> Optional[int]:
    """
    Percentage (0-100) of reviews rated Good or Easy.

    Returns None when fewer than 5 logs exist (insufficient sample).
    """
    logs = list(logs)
    if len(logs) < MIN_LOGS_FOR_RETENTION:
        return None

    successful = sum(1 for log in logs if log.rating >= Rating.GOOD)
    return round_half_up(successful / len(logs) * 100)


def retention_by_card(logs: Iterable[ReviewLogEntry]) -> dict[str, Optional[int]]:
    """
    Group a user's logs by card in one pass and compute each card's retention.
    """
    grouped = defaultdict(list)
    for log in logs:
        grouped[log.card_id].append(log)
    return {card_id: retention_rate(card_logs) for card_id, card_logs in grouped.items()}


def _high_lapses(card: CardMemoryState) -> bool:
    return card.lapses > LEECH_LAPSE_THRESHOLD


def _low_retention(card: CardMemoryState, retention: Optional[int]) -> bool:
    return (
        card.reps > LEECH_REPS_THRESHOLD
        and retention is not None
        and retention < LEECH_RETENTION_THRESHOLD
    )


def is_leech(card: CardMemoryState, retention: Optional[int]) -> bool:
    """
    Determine if a card is a leech.

    Args:
        card: Card memory state (lapses and reps are used)
        retention: Retention percentage, or None for an insufficient sample

    Returns:
        True if the card should be flagged
    """
    return _high_lapses(card) or _low_retention(card, retention)


def leech_reason(card: CardMemoryState, retention: Optional[int]) -> str:
    """
    Human-readable explanation for why a card is a leech.

    The lapse count is reported first when both criteria apply.
    """
    if _high_lapses(card):
        return f"High lapse count (forgotten {card.lapses} times)"
    if _low_retention(card, retention):
        return f"Low retention ({retention}% after {card.reps} reviews)"
    return "Multiple learning difficulties detected"


def summarize_leeches(
    cards: Iterable[CardMemoryState],
    retention_map: dict[str, Optional[int]]
) -> LeechStats:
    """
    Count leeches among a user's cards (suspended cards included).

    Args:
        cards: All of the user's card states
        retention_map: Output of retention_by_card
    """
    total = suspended = high_lapses = low_retention = 0
    for card in cards:
        retention = retention_map.get(card.card_id)
        if not is_leech(card, retention):
            continue
        total += 1
        if card.suspended:
            suspended += 1
        if _high_lapses(card):
            high_lapses += 1
        if _low_retention(card, retention):
            low_retention += 1

    return LeechStats(
        total_leeches=total,
        suspended_count=suspended,
        high_lapses_count=high_lapses,
        low_retention_count=low_retention,
    )
