"""
Service layer to assemble study analytics.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from srs_engine.analytics.constants import DIFFICULTY_BUCKETS
from srs_engine.analytics.metrics import (
    assign_difficulty_bucket,
    compute_difficulty_distribution,
    compute_due_now,
    compute_retention_rate,
    compute_state_counts,
)
from srs_engine.analytics.queries import cards_to_df, load_cards_df, load_logs_df
from srs_engine.analytics.types import DifficultyBucketPage, StudyStats
from srs_engine.errors import InvalidArgument
from srs_engine.fsrs.memory_state import now_ms


def start_of_day(now: int) -> int:
    """
    Midnight (UTC) of the day containing `now`, in epoch ms.
    """
    moment = datetime.fromtimestamp(now / 1000, tz=timezone.utc)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def build_study_stats(
    card_repo,
    owner_id: str,
    now: Optional[int] = None,
    day_start: Optional[int] = None
) -> StudyStats:
    """
    Build deck counts plus today's review activity for a user.

    Args:
        card_repo: Card state store
        owner_id: User identifier
        now: Current time in epoch ms (defaults to now)
        day_start: Start of "today" in epoch ms (defaults to UTC midnight)
    """
    if now is None:
        now = now_ms()
    if day_start is None:
        day_start = start_of_day(now)

    cards_df = load_cards_df(card_repo, owner_id)
    today_df = load_logs_df(card_repo, owner_id, since=day_start)
    counts = compute_state_counts(cards_df)

    return StudyStats(
        total_cards=len(cards_df),
        new_cards=counts["new"],
        learning_cards=counts["learning"],
        review_cards=counts["review"],
        due_now=compute_due_now(cards_df, now),
        reviewed_today=len(today_df),
        retention_rate=compute_retention_rate(today_df),
    )


def difficulty_distribution(card_repo, owner_id: str) -> dict[str, int]:
    """
    Count a user's non-suspended cards per difficulty bucket.
    """
    return compute_difficulty_distribution(load_cards_df(card_repo, owner_id))


def cards_in_difficulty_bucket(
    card_repo,
    owner_id: str,
    bucket: str,
    limit: Optional[int] = None
) -> DifficultyBucketPage:
    """
    List a user's non-suspended cards in one difficulty bucket.

    Sorted by lapses (desc), then due (asc), then difficulty (desc).

    Raises:
        InvalidArgument: unknown bucket label
    """
    if bucket not in DIFFICULTY_BUCKETS:
        raise InvalidArgument(f"Unknown difficulty bucket: {bucket!r}")

    cards = [c for c in card_repo.list_cards_by_owner(owner_id) if not c.suspended]
    cards_df = cards_to_df(cards)
    if cards_df.empty:
        return DifficultyBucketPage(bucket=bucket, total=0)

    cards_df["bucket"] = assign_difficulty_bucket(cards_df)
    selected = cards_df[cards_df["bucket"] == bucket].sort_values(
        ["lapses", "due", "difficulty"],
        ascending=[False, True, False],
        kind="stable",
    )

    by_id = {c.card_id: c for c in cards}
    ordered = [by_id[card_id] for card_id in selected["card_id"]]
    if limit is not None:
        ordered = ordered[:max(limit, 0)]
    return DifficultyBucketPage(bucket=bucket, total=len(selected), cards=ordered)
