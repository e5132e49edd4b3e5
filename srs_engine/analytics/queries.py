"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd

from srs_engine.analytics.constants import CARD_COLUMNS, LOG_COLUMNS
from srs_engine.fsrs.memory_state import CardMemoryState, ReviewLogEntry


def cards_to_df(cards: Iterable[CardMemoryState]) -> pd.DataFrame:
    """
    Card states as a dataframe (one row per card).
    """
    rows = [
        {
            "card_id": c.card_id,
            "block_id": c.block_id,
            "state": c.state.value,
            "difficulty": float(c.difficulty),
            "due": int(c.due),
            "lapses": int(c.lapses),
            "reps": int(c.reps),
            "suspended": bool(c.suspended),
        }
        for c in cards
    ]
    if not rows:
        return pd.DataFrame(columns=CARD_COLUMNS)
    return pd.DataFrame(rows, columns=CARD_COLUMNS)


def logs_to_df(logs: Iterable[ReviewLogEntry]) -> pd.DataFrame:
    """
    Review logs as a dataframe, oldest first.
    """
    rows = [
        {
            "log_id": log.log_id,
            "card_id": log.card_id,
            "rating": int(log.rating),
            "reviewed_at": int(log.reviewed_at),
        }
        for log in logs
    ]
    if not rows:
        return pd.DataFrame(columns=LOG_COLUMNS)
    df = pd.DataFrame(rows, columns=LOG_COLUMNS)
    return df.sort_values("reviewed_at", kind="stable").reset_index(drop=True)


def load_cards_df(card_repo, owner_id: str) -> pd.DataFrame:
    """
    Load all card states of a user into a dataframe.
    """
    return cards_to_df(card_repo.list_cards_by_owner(owner_id))


def load_logs_df(card_repo, owner_id: str, since: Optional[int] = None) -> pd.DataFrame:
    """
    Load a user's review logs (optionally since a timestamp) into a dataframe.
    """
    return logs_to_df(card_repo.list_review_logs(owner_id, since))
