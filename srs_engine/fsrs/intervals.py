"""
Intervals - Interval derivation, fuzz, and display

Converts stability into whole-day intervals, spreads them with a small
deterministic fuzz so cards reviewed together do not stay clumped, and
formats intervals for display.
"""

from __future__ import annotations
import math
import random
from typing import Optional

from srs_engine.fsrs.constants import (
    DECAY,
    FACTOR,
    FUZZ_MIN_INTERVAL,
    FUZZ_RANGES,
    MAXIMUM_INTERVAL,
    REQUEST_RETENTION,
)


INTERVAL_MODIFIER = (REQUEST_RETENTION ** (1.0 / DECAY) - 1.0) / FACTOR


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (banker's rounding is not wanted here)."""
    return int(math.floor(value + 0.5))


def fuzz_seed(now: int, reps: int, difficulty: float, stability: float) -> str:
    """Seed tying the fuzz to one specific review of one card."""
    return f"{now}_{reps}_{difficulty * stability}"


def fuzz_range(interval: float, elapsed_days: int, maximum_interval: int = MAXIMUM_INTERVAL) -> tuple[int, int]:
    """
    Compute the [min, max] day range an interval may be fuzzed into.

    The spread grows piecewise with the interval length.
    """
    delta = 1.0
    for start, end, factor in FUZZ_RANGES:
        delta += factor * max(min(interval, end) - start, 0.0)

    interval = min(interval, maximum_interval)
    min_ivl = max(2, round_half_up(interval - delta))
    max_ivl = min(round_half_up(interval + delta), maximum_interval)
    if interval > elapsed_days:
        min_ivl = max(min_ivl, elapsed_days + 1)
    min_ivl = min(min_ivl, max_ivl)
    return min_ivl, max_ivl


def apply_fuzz(
    interval: float,
    elapsed_days: int,
    seed: Optional[str],
    maximum_interval: int = MAXIMUM_INTERVAL
) -> int:
    """
    Fuzz an interval within its range.

    Intervals below 2.5 days and unseeded calls are returned unchanged.
    """
    if seed is None or interval < FUZZ_MIN_INTERVAL:
        return round_half_up(interval)

    fuzz_factor = random.Random(seed).random()
    min_ivl, max_ivl = fuzz_range(interval, elapsed_days, maximum_interval)
    return int(math.floor(fuzz_factor * (max_ivl - min_ivl + 1) + min_ivl))


def next_interval(
    stability: float,
    elapsed_days: int = 0,
    seed: Optional[str] = None,
    maximum_interval: int = MAXIMUM_INTERVAL
) -> int:
    """
    Whole-day interval for a stability value.

    Formula: I = round(S * modifier), clamped to [1, maximum_interval]

    At 90% requested retention the modifier is exactly 1, so the interval
    is the stability rounded to days.
    """
    interval = min(max(1, round_half_up(stability * INTERVAL_MODIFIER)), maximum_interval)
    return min(apply_fuzz(interval, elapsed_days, seed, maximum_interval), maximum_interval)


def order_review_intervals(hard: int, good: int, easy: int) -> tuple[int, int, int]:
    """
    Force Hard <= Good < Easy for review-state intervals.

    The ceiling is applied last, so Good and Easy may tie at the maximum.
    """
    hard = min(hard, good)
    good = max(good, hard + 1)
    easy = max(easy, good + 1)
    return (
        min(hard, MAXIMUM_INTERVAL),
        min(good, MAXIMUM_INTERVAL),
        min(easy, MAXIMUM_INTERVAL),
    )


def format_interval(days: float) -> str:
    """
    Get a human-readable interval string.

    The value is rounded in each unit before the unit is chosen, so a
    rounded count never reaches the next unit (6.6 days is "1w", not "7d").

    Examples: "10m", "3h", "4d", "2w", "3mo", "1.5y"
    """
    days = max(0.0, days)
    minutes = round_half_up(days * 24 * 60)
    if minutes < 60:
        return f"{minutes}m"
    hours = round_half_up(days * 24)
    if hours < 24:
        return f"{hours}h"
    whole_days = round_half_up(days)
    if whole_days < 7:
        return f"{whole_days}d"
    if whole_days < 30:
        return f"{round_half_up(days / 7)}w"
    if whole_days < 365:
        return f"{round_half_up(days / 30)}mo"
    years = round_half_up(days / 365 * 10) / 10
    return f"{years:g}y"
