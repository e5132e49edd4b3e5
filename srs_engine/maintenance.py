"""
Maintenance - Batch cleanup jobs

Both jobs work in bounded pages and repeat until nothing is left, so a
single write never touches an unbounded number of records.
"""

from __future__ import annotations
import logging
from typing import Optional

from srs_engine.content_repo import card_directions
from srs_engine.fsrs.memory_state import CardMemoryState, now_ms

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


def archive_past_exams(content_repo, now: Optional[int] = None, batch_size: int = BATCH_SIZE) -> int:
    """
    Archive every non-archived exam whose date has passed.

    Returns:
        Total number of exams archived
    """
    if now is None:
        now = now_ms()

    total = 0
    while True:
        archived = content_repo.archive_past_exams_page(now, batch_size)
        total += archived
        if archived < batch_size:
            break

    logger.info("Archived %d past exam(s)", total)
    return total


def is_orphaned(card: CardMemoryState, block: Optional[dict]) -> bool:
    """
    A card is orphaned when its block is gone, no longer a card, disabled,
    or no longer needs the card's direction.
    """
    if block is None:
        return True
    return card.direction not in card_directions(block)


def purge_orphaned_card_states(
    card_repo,
    content_repo,
    batch_size: int = BATCH_SIZE,
    dry_run: bool = False
) -> int:
    """
    Delete card states (and their review logs) whose content no longer
    produces them.

    Args:
        card_repo: Card state store
        content_repo: Content store
        batch_size: Cards examined per page
        dry_run: Count only, delete nothing

    Returns:
        Number of orphaned card states found
    """
    total = 0
    last_card_id = None
    while True:
        page = card_repo.list_cards_page(last_card_id, batch_size)
        if not page:
            break

        blocks = content_repo.get_blocks(card.block_id for card in page)
        for card in page:
            if is_orphaned(card, blocks.get(card.block_id)):
                total += 1
                if not dry_run:
                    card_repo.delete_card(card.card_id)

        last_card_id = page[-1].card_id
        if len(page) < batch_size:
            break

    logger.info("%s %d orphaned card state(s)", "Found" if dry_run else "Purged", total)
    return total
