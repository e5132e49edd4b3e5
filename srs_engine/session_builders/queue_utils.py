"""
Queue utilities for session builders.

These helpers provide shared, minimal primitives for sorting, deduplicating
and decorating study queues without enforcing a single scheduling policy.
"""

from __future__ import annotations
import logging
from typing import Iterable, Optional, TypeVar

from srs_engine.content_repo import is_reviewable
from srs_engine.fsrs.memory_state import CardMemoryState, retrievability
from srs_engine.fsrs.scheduler import preview_intervals
from srs_engine.session_builders.queue_types import QueueBucket, QueueEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def take(items: list[T], limit: Optional[int]) -> list[T]:
    """First `limit` items (all of them when limit is None)."""
    if limit is None:
        return list(items)
    return list(items[:max(limit, 0)])


def dedupe_cards(cards: Iterable[CardMemoryState], seen: set[str]) -> list[CardMemoryState]:
    """
    Drop cards already in `seen`, then record the kept ones.

    Walking the buckets in queue order with one shared set guarantees a card
    lands in at most one bucket.
    """
    result = []
    for card in cards:
        if card.card_id in seen:
            continue
        seen.add(card.card_id)
        result.append(card)
    return result


def sort_by_retrievability(cards: list[CardMemoryState], now: int) -> list[CardMemoryState]:
    """Lowest recall probability first (ties: earliest due, then ID)."""
    return sorted(cards, key=lambda c: (retrievability(c, now), c.due, c.card_id))


def sort_by_due(cards: list[CardMemoryState]) -> list[CardMemoryState]:
    """Earliest due first (ties broken by ID for a stable order)."""
    return sorted(cards, key=lambda c: (c.due, c.card_id))


def drop_unreviewable(
    cards: Iterable[CardMemoryState],
    blocks: dict[str, dict]
) -> list[CardMemoryState]:
    """
    Keep only cards whose block still exists, is a card and is enabled.

    Content can vanish between reading card states and reading blocks;
    such cards are dropped instead of failing the whole queue.
    """
    kept = []
    dropped = 0
    for card in cards:
        if is_reviewable(blocks.get(card.block_id)):
            kept.append(card)
        else:
            dropped += 1
    if dropped:
        logger.warning("Dropped %d queue card(s) with missing or disabled content", dropped)
    return kept


def build_entry(
    card: CardMemoryState,
    block: dict,
    documents: dict[str, dict],
    now: int,
    bucket: QueueBucket,
    is_exam_card: bool = False
) -> QueueEntry:
    """Decorate a card with its block, document title, recall odds and previews."""
    document = documents.get(block.get("document_id"))
    return QueueEntry(
        card=card,
        block=block,
        document=(
            {"document_id": document["document_id"], "title": document.get("title", "")}
            if document else None
        ),
        retrievability=retrievability(card, now),
        interval_previews=preview_intervals(card, now).formatted(),
        is_exam_card=is_exam_card,
        bucket=bucket,
    )
