"""
FSRS - Free Spaced Repetition Scheduler

Memory state model for the flashcard scheduling engine.

This package implements FSRS-6 with:
- Fixed 21-weight parameter vector, 90% target retention
- Learning (1m, 10m) and relearning (10m) steps
- Short-term stability for same-day reviews
- Power forgetting curve: R = (1 + F*t/S)^-w20
- Deterministic interval fuzz

Quick start:
    from srs_engine import fsrs

    card = fsrs.create_initial(card_id="c1", owner_id="u1", block_id="b1")

    # Process a review (algorithm only, no DB calls)
    card, log = fsrs.apply_review(card, fsrs.Rating.GOOD)

    # Persist
    repo = fsrs.CardRepository.from_url()
    repo.init_db()
    repo.commit_review(card, log)
"""

# Core scheduler API (algorithm logic)
from srs_engine.fsrs.scheduler import (
    IntervalPreview,
    ReviewResult,
    apply_review,
    preview_intervals,
)

# Database API
from srs_engine.fsrs.database import CardRepository, get_engine

# Constants and parameters
from srs_engine.fsrs.constants import (
    CardStatus,
    Rating,
    DAY_MS,
    MAXIMUM_INTERVAL,
    REQUEST_RETENTION,
    W,
)

# Memory state
from srs_engine.fsrs.memory_state import (
    CardMemoryState,
    CardSnapshot,
    ReviewLogEntry,
    create_initial,
    is_due,
    now_ms,
    retrievability,
)

from srs_engine.fsrs.intervals import format_interval


__all__ = [
    # Core algorithm
    "apply_review",
    "preview_intervals",
    "ReviewResult",
    "IntervalPreview",
    "format_interval",

    # Database operations
    "CardRepository",
    "get_engine",

    # Enums
    "Rating",
    "CardStatus",

    # Memory state
    "CardMemoryState",
    "CardSnapshot",
    "ReviewLogEntry",
    "create_initial",
    "is_due",
    "now_ms",
    "retrievability",

    # Parameters
    "DAY_MS",
    "MAXIMUM_INTERVAL",
    "REQUEST_RETENTION",
    "W",
]
