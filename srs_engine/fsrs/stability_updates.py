"""
Stability and Difficulty Updates

Implements the FSRS-6 recurrences for a single review.

Key principles:
- Spaced, effortful success produces the largest stability gains
- Failures shrink stability, never below S_MIN
- Same-day reviews use the short-term stability formula
- Difficulty drifts with linear damping and mean reversion
"""

from __future__ import annotations
import math

from srs_engine.fsrs.constants import (
    Rating,
    W,
    S_MIN,
    S_MAX,
    D_MIN,
    D_MAX,
    INITIAL_S_FLOOR,
)


def clamp_stability(stability: float) -> float:
    """Clip stability to [S_MIN, S_MAX]."""
    if not math.isfinite(stability):
        return S_MAX if stability > 0 else S_MIN
    return max(S_MIN, min(S_MAX, stability))


def clamp_difficulty(difficulty: float) -> float:
    """Clip difficulty to [1, 10]."""
    return max(D_MIN, min(D_MAX, difficulty))


def initial_stability(rating: Rating) -> float:
    """
    Stability assigned on the very first review.

    Formula: S_0(G) = w[G-1]
    """
    return max(W[rating - 1], INITIAL_S_FLOOR)


def initial_difficulty(rating: Rating, clamp: bool = True) -> float:
    """
    Difficulty assigned on the very first review.

    Formula: D_0(G) = w4 - e^(w5 * (G - 1)) + 1
    """
    difficulty = W[4] - math.exp(W[5] * (rating - 1)) + 1.0
    if clamp:
        return clamp_difficulty(difficulty)
    return difficulty


def next_difficulty(difficulty: float, rating: Rating) -> float:
    """
    Update difficulty based on the rating.

    Formula:
        ΔD = -w6 * (G - 3)
        D' = D + ΔD * (10 - D) / 9          (linear damping)
        D'' = w7 * D_0(Easy) + (1 - w7) * D'  (mean reversion)

    Returns:
        New difficulty value (clipped to [1, 10])
    """
    delta = -W[6] * (rating - 3)
    damped = difficulty + delta * (10.0 - difficulty) / 9.0
    reverted = W[7] * initial_difficulty(Rating.EASY, clamp=False) + (1.0 - W[7]) * damped
    return clamp_difficulty(reverted)


def next_recall_stability(
    difficulty: float,
    stability: float,
    retrievability: float,
    rating: Rating
) -> float:
    """
    Update stability after successful retrieval (Hard/Good/Easy).

    Formula:
        S' = S * (1 + e^w8 * (11 - D) * S^-w9 * (e^((1 - R) * w10) - 1) * h * b)

    Where h = w15 for Hard (penalty) and b = w16 for Easy (bonus).
    """
    if rating == Rating.AGAIN:
        raise ValueError("Use next_forget_stability for AGAIN ratings")

    hard_penalty = W[15] if rating == Rating.HARD else 1.0
    easy_bonus = W[16] if rating == Rating.EASY else 1.0

    growth = (
        math.exp(W[8])
        * (11.0 - difficulty)
        * math.pow(stability, -W[9])
        * (math.exp((1.0 - retrievability) * W[10]) - 1.0)
        * hard_penalty
        * easy_bonus
    )
    return clamp_stability(stability * (1.0 + growth))


def next_forget_stability(
    difficulty: float,
    stability: float,
    retrievability: float
) -> float:
    """
    Update stability after failed retrieval (Again).

    Formula:
        S' = min(
            w11 * D^-w12 * ((S + 1)^w13 - 1) * e^((1 - R) * w14),
            S / e^(w17 * w18)
        )

    The second term guarantees a lapse never raises stability.
    """
    long_term = (
        W[11]
        * math.pow(difficulty, -W[12])
        * (math.pow(stability + 1.0, W[13]) - 1.0)
        * math.exp((1.0 - retrievability) * W[14])
    )
    short_term_ceiling = stability / math.exp(W[17] * W[18])
    return clamp_stability(min(long_term, short_term_ceiling))


def next_short_term_stability(stability: float, rating: Rating) -> float:
    """
    Update stability for a same-day review.

    Formula:
        SInc = e^(w17 * (G - 3 + w18)) * S^-w19
        S' = S * SInc, with SInc >= 1 for Good/Easy
    """
    increase = math.exp(W[17] * (rating - 3 + W[18])) * math.pow(stability, -W[19])
    if rating >= Rating.GOOD:
        increase = max(increase, 1.0)
    return clamp_stability(stability * increase)


def apply_memory_update(
    stability: float,
    difficulty: float,
    retrievability: float,
    rating: Rating,
    elapsed_days: int,
    is_new_card: bool = False
) -> tuple[float, float]:
    """
    Apply FSRS update rules to get new S and D.

    This is the main entry point for memory updates.

    Args:
        stability: Current stability
        difficulty: Current difficulty
        retrievability: Retrievability at review time
        rating: Learner rating
        elapsed_days: Whole days since the last review
        is_new_card: True if this is the first review

    Returns:
        (new_stability, new_difficulty)
    """
    if is_new_card:
        return initial_stability(rating), initial_difficulty(rating)

    stability = clamp_stability(stability)
    difficulty = clamp_difficulty(difficulty)

    if elapsed_days < 1:
        new_stability = next_short_term_stability(stability, rating)
    elif rating == Rating.AGAIN:
        new_stability = next_forget_stability(difficulty, stability, retrievability)
    else:
        new_stability = next_recall_stability(difficulty, stability, retrievability, rating)

    return new_stability, next_difficulty(difficulty, rating)
