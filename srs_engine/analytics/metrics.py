"""
Metric computations for study analytics.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from srs_engine.analytics.constants import DIFFICULTY_BUCKETS
from srs_engine.fsrs.intervals import round_half_up


def compute_state_counts(cards_df: pd.DataFrame) -> dict[str, int]:
    """
    Count cards per FSRS state (learning includes relearning).
    """
    counts = {"new": 0, "learning": 0, "review": 0}
    if cards_df.empty:
        return counts

    states = cards_df["state"].replace({"relearning": "learning"})
    for state, count in states.value_counts().items():
        counts[state] = int(count)
    return counts


def compute_due_now(cards_df: pd.DataFrame, now: int) -> int:
    """
    Count reviewed (non-new) cards whose due time has passed.
    """
    if cards_df.empty:
        return 0
    mask = (cards_df["state"] != "new") & (cards_df["due"] <= now)
    return int(mask.sum())


def compute_retention_rate(logs_df: pd.DataFrame) -> Optional[int]:
    """
    Percent of reviews rated Good or Easy; None without reviews.
    """
    if logs_df.empty:
        return None
    share = float((logs_df["rating"] >= 3).mean()) * 100
    return round_half_up(share)


def assign_difficulty_bucket(cards_df: pd.DataFrame) -> pd.Series:
    """
    Difficulty bucket label per card.

    Difficulty is rounded to the nearest whole number first; never-reviewed
    cards (difficulty 0) get no bucket.
    """
    if cards_df.empty:
        return pd.Series(dtype="object")

    rounded = (cards_df["difficulty"].astype("float64") + 0.5) // 1
    labels = pd.Series(None, index=cards_df.index, dtype="object")
    for label, (low, high) in DIFFICULTY_BUCKETS.items():
        labels[(rounded >= low) & (rounded <= high)] = label
    return labels


def compute_difficulty_distribution(cards_df: pd.DataFrame) -> dict[str, int]:
    """
    Number of non-suspended cards per difficulty bucket.
    """
    distribution = {label: 0 for label in DIFFICULTY_BUCKETS}
    if cards_df.empty:
        return distribution

    active = cards_df[~cards_df["suspended"].astype(bool)]
    for label, count in assign_difficulty_bucket(active).value_counts().items():
        distribution[label] = int(count)
    return distribution
