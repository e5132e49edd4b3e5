"""
Scheduler - FSRS Algorithm Logic

Pure FSRS scheduling and state updates (no database calls).

Main workflow:
1. Load card state (caller's responsibility)
2. Calculate elapsed time and retrievability
3. Apply memory updates (stability, difficulty)
4. Walk the state transition table and pick the next interval
5. Return updated card + review log entry

This module handles ONLY the algorithm logic.
Database I/O is handled by the database module.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import NamedTuple, Optional
import os

from srs_engine.fsrs import intervals, memory_state, stability_updates
from srs_engine.fsrs.constants import (
    CardStatus,
    DAY_MS,
    LEARNING_STEPS,
    MINUTE_MS,
    RELEARNING_STEPS,
    Rating,
)
from srs_engine.fsrs.memory_state import CardMemoryState, ReviewLogEntry


def fuzz_enabled() -> bool:
    """Check whether interval fuzz is on (SRS_ENABLE_FUZZ, default true)."""
    return os.getenv("SRS_ENABLE_FUZZ", "true").lower() != "false"


class ReviewResult(NamedTuple):
    """Outcome of one review: the next card state and its audit log."""
    card: CardMemoryState
    log: ReviewLogEntry


@dataclass(frozen=True)
class IntervalPreview:
    """Interval (in days, fractional for learning steps) for each rating."""
    again: float
    hard: float
    good: float
    easy: float

    def formatted(self) -> dict[str, str]:
        return {
            "again": intervals.format_interval(self.again),
            "hard": intervals.format_interval(self.hard),
            "good": intervals.format_interval(self.good),
            "easy": intervals.format_interval(self.easy),
        }


@dataclass
class _Memory:
    """Post-review memory for one rating, plus the review-state interval."""
    stability: float
    difficulty: float
    interval_days: int = 0


def apply_review(
    card: CardMemoryState,
    rating: int,
    now: Optional[int] = None,
    enable_fuzz: Optional[bool] = None
) -> ReviewResult:
    """
    Process a review and return the updated card state + review log.

    This is the core FSRS algorithm. No database calls. The input card is
    not modified.

    Args:
        card: Current memory state (may be new or existing)
        rating: Learner rating (1=AGAIN, 2=HARD, 3=GOOD, 4=EASY)
        now: Review timestamp in epoch ms (defaults to now)
        enable_fuzz: Override the SRS_ENABLE_FUZZ setting

    Returns:
        ReviewResult(card, log)
    """
    rating = Rating(rating)
    if now is None:
        now = memory_state.now_ms()
    if enable_fuzz is None:
        enable_fuzz = fuzz_enabled()

    memories = _next_memories(card, now, enable_fuzz)
    memory = memories[rating]

    elapsed = memory_state.elapsed_days_between(card.last_review, now)
    log = ReviewLogEntry(
        card_id=card.card_id,
        owner_id=card.owner_id,
        rating=int(rating),
        state=card.state,
        scheduled_days=card.scheduled_days,
        elapsed_days=int(elapsed),
        stability=card.stability,
        difficulty=card.difficulty,
        reviewed_at=now,
    )

    updated = replace(
        card,
        stability=memory.stability,
        difficulty=memory.difficulty,
        last_review=now,
        reps=card.reps + 1,
        elapsed_days=int(elapsed),
    )
    _transition(updated, card.state, card.step, rating, memory, now)
    return ReviewResult(updated, log)


def preview_intervals(card: CardMemoryState, now: Optional[int] = None) -> IntervalPreview:
    """
    Preview the next interval for every rating without mutating the card.

    Returns:
        IntervalPreview with the resulting intervals in days
    """
    if now is None:
        now = memory_state.now_ms()

    results = {}
    for rating in Rating:
        next_card, _ = apply_review(card, rating, now)
        results[rating] = max(0, next_card.due - now) / DAY_MS

    return IntervalPreview(
        again=results[Rating.AGAIN],
        hard=results[Rating.HARD],
        good=results[Rating.GOOD],
        easy=results[Rating.EASY],
    )


def _next_memories(card: CardMemoryState, now: int, enable_fuzz: bool) -> dict[Rating, _Memory]:
    """
    Compute post-review memory for all four ratings at once.

    Review-state intervals are ordered against each other, so they are
    derived together.
    """
    is_new_card = card.state == CardStatus.NEW or (card.stability <= 0 and card.difficulty <= 0)
    elapsed = memory_state.elapsed_days_between(card.last_review, now)
    elapsed_days = int(elapsed)
    r = 1.0 if is_new_card else memory_state.forgetting_curve(elapsed, card.stability)

    memories = {}
    for rating in Rating:
        stability, difficulty = stability_updates.apply_memory_update(
            stability=card.stability,
            difficulty=card.difficulty,
            retrievability=r,
            rating=rating,
            elapsed_days=elapsed_days,
            is_new_card=is_new_card,
        )
        memories[rating] = _Memory(stability, difficulty)

    seed = None
    if enable_fuzz:
        seed = intervals.fuzz_seed(now, card.reps, card.difficulty, card.stability)

    for rating, memory in memories.items():
        memory.interval_days = intervals.next_interval(memory.stability, elapsed_days, seed)

    if card.state == CardStatus.REVIEW:
        hard, good, easy = intervals.order_review_intervals(
            memories[Rating.HARD].interval_days,
            memories[Rating.GOOD].interval_days,
            memories[Rating.EASY].interval_days,
        )
        memories[Rating.HARD].interval_days = hard
        memories[Rating.GOOD].interval_days = good
        memories[Rating.EASY].interval_days = easy

    return memories


def _transition(
    card: CardMemoryState,
    previous_state: CardStatus,
    previous_step: Optional[int],
    rating: Rating,
    memory: _Memory,
    now: int
) -> None:
    """
    Apply the state transition table (modifies card in place).

    new        + 1..3 -> learning, 4 -> review
    learning   + 1 -> learning (step 0), 3 past last step / 4 -> review
    review     + 1 -> relearning (lapse), 2..4 -> review
    relearning + 1 -> relearning (lapse), 3 past last step / 4 -> review
    """
    if previous_state == CardStatus.REVIEW:
        if rating == Rating.AGAIN:
            card.lapses += 1
            if RELEARNING_STEPS:
                _schedule_step(card, CardStatus.RELEARNING, 0, RELEARNING_STEPS[0], now)
                return
        _schedule_review(card, memory.interval_days, now)
        return

    if previous_state == CardStatus.RELEARNING:
        steps = RELEARNING_STEPS
        target = CardStatus.RELEARNING
        if rating == Rating.AGAIN:
            card.lapses += 1
    else:
        steps = LEARNING_STEPS
        target = CardStatus.LEARNING

    step = 0 if previous_state == CardStatus.NEW or previous_step is None else previous_step
    _learning_step(card, target, steps, step, rating, memory, now)


def _learning_step(
    card: CardMemoryState,
    target: CardStatus,
    steps: tuple[float, ...],
    step: int,
    rating: Rating,
    memory: _Memory,
    now: int
) -> None:
    """Walk the (re)learning steps, graduating to review when they are done."""
    if not steps or rating == Rating.EASY:
        _schedule_review(card, memory.interval_days, now)
        return

    if rating == Rating.AGAIN:
        _schedule_step(card, target, 0, steps[0], now)
    elif rating == Rating.HARD:
        if step == 0 and len(steps) == 1:
            minutes = steps[0] * 1.5
        elif step == 0:
            minutes = (steps[0] + steps[1]) / 2.0
        else:
            minutes = steps[min(step, len(steps) - 1)]
        _schedule_step(card, target, step, minutes, now)
    elif step + 1 >= len(steps):
        _schedule_review(card, memory.interval_days, now)
    else:
        _schedule_step(card, target, step + 1, steps[step + 1], now)


def _schedule_step(card: CardMemoryState, state: CardStatus, step: int, minutes: float, now: int) -> None:
    card.state = state
    card.step = step
    card.scheduled_days = 0
    card.due = now + int(round(minutes * MINUTE_MS))


def _schedule_review(card: CardMemoryState, interval_days: int, now: int) -> None:
    card.state = CardStatus.REVIEW
    card.step = None
    card.scheduled_days = interval_days
    card.due = now + interval_days * DAY_MS
