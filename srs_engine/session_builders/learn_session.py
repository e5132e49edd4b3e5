"""
Learn Session - Exam-aware study queue creation

Creates study sessions from four buckets:
1. Exam due:    reviewed cards of documents whose exam is in its
                retrievability period (regardless of due date)
2. Regular due: reviewed cards with due <= now
3. Exam new:    never-reviewed cards of those exam documents
4. Regular new: all other never-reviewed cards

Session Logic:
- Suspended cards and cards with missing/disabled content are excluded
- Due buckets are ordered by ascending retrievability (most at risk first)
- Exam due is capped at exam_limit, regular due at review_limit
- Exam new plus regular new never exceeds new_limit
- Every card appears at most once
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from srs_engine.content_repo import ExamInfo, is_reviewable
from srs_engine.exam_scheduling import (
    count_cards_from_blocks,
    days_until,
    is_in_retrievability_period,
)
from srs_engine.fsrs.constants import CardStatus
from srs_engine.fsrs.memory_state import CardMemoryState, now_ms
from srs_engine.session_builders.queue_types import (
    DEFAULT_DUE_CARDS_LIMIT,
    DEFAULT_NEW_CARDS_LIMIT,
    QueueConfig,
    QueueEntry,
    SessionLimits,
)
from srs_engine.session_builders.queue_utils import (
    build_entry,
    dedupe_cards,
    drop_unreviewable,
    sort_by_due,
    sort_by_retrievability,
    take,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExamSummary:
    """An upcoming exam with its card workload."""
    exam: ExamInfo
    card_count: int
    days_until: int
    in_period: bool


def summarize_exams(content_repo, owner_id: str, now: int) -> list[ExamSummary]:
    """
    Count each upcoming exam's cards and check its retrievability period.

    Documents shared by several exams are only read once.
    """
    units_by_document: dict[str, list[dict]] = {}
    summaries = []
    for exam in content_repo.list_active_exams(owner_id, now):
        card_count = 0
        for document_id in exam.linked_document_ids:
            if document_id not in units_by_document:
                units_by_document[document_id] = content_repo.list_reviewable_content_units(document_id)
            card_count += count_cards_from_blocks(units_by_document[document_id])

        summaries.append(ExamSummary(
            exam=exam,
            card_count=card_count,
            days_until=days_until(exam.exam_timestamp, now),
            in_period=is_in_retrievability_period(exam.exam_timestamp, card_count, now),
        ))
    return summaries


def prioritized_exam_documents(content_repo, owner_id: str, now: int) -> set[str]:
    """Document IDs linked to an exam currently inside its retrievability period."""
    document_ids: set[str] = set()
    for summary in summarize_exams(content_repo, owner_id, now):
        if summary.in_period:
            document_ids.update(summary.exam.linked_document_ids)
    return document_ids


def _load_scope_cards(card_repo, content_repo, owner_id: str, config: QueueConfig) -> list[CardMemoryState]:
    """Non-suspended cards of the user within the configured scope."""
    if config.scope == "document":
        units = content_repo.list_reviewable_content_units(config.document_id)
        block_ids = [unit["block_id"] for unit in units if is_reviewable(unit)]
        cards = card_repo.list_cards_by_blocks(block_ids)
    else:
        cards = card_repo.list_cards_by_owner(owner_id)

    return [card for card in cards if card.owner_id == owner_id and not card.suspended]


def build_learn_queue(
    owner_id: str,
    card_repo,
    content_repo,
    config: Optional[QueueConfig] = None,
    limits: Optional[SessionLimits] = None,
    now: Optional[int] = None
) -> list[QueueEntry]:
    """
    Build the ordered study queue for a learn session.

    Args:
        owner_id: User identifier
        card_repo: Card state store (CardRepository or compatible)
        content_repo: Content store (MongoContentRepository or compatible)
        config: Scope and exam-awareness (defaults to global, exam-aware)
        limits: Session caps (defaults to 20 new / 100 review / 50 exam)
        now: Current time in epoch ms (defaults to now)

    Returns:
        exam_due ++ regular_due ++ exam_new ++ regular_new
    """
    config = config or QueueConfig()
    limits = limits or SessionLimits()
    if now is None:
        now = now_ms()

    cards = _load_scope_cards(card_repo, content_repo, owner_id, config)
    blocks = content_repo.get_blocks(card.block_id for card in cards)
    cards = drop_unreviewable(cards, blocks)

    exam_documents = set()
    if config.exam_aware:
        exam_documents = prioritized_exam_documents(content_repo, owner_id, now)

    def is_exam_card(card: CardMemoryState) -> bool:
        return blocks[card.block_id].get("document_id") in exam_documents

    reviewed = [card for card in cards if card.state != CardStatus.NEW]
    new_cards = sort_by_due([card for card in cards if card.state == CardStatus.NEW])

    seen: set[str] = set()

    # ---- Due buckets ----
    exam_due = take(
        sort_by_retrievability([c for c in reviewed if is_exam_card(c)], now),
        limits.exam_limit
    )
    exam_due = dedupe_cards(exam_due, seen)

    regular_candidates = sort_by_due([
        c for c in reviewed
        if not is_exam_card(c) and c.due <= now
    ])
    regular_due = take(regular_candidates, limits.review_limit)
    if config.scope == "global":
        regular_due = sort_by_retrievability(regular_due, now)
    regular_due = dedupe_cards(regular_due, seen)

    # ---- New buckets ----
    exam_new = dedupe_cards(
        take([c for c in new_cards if is_exam_card(c)], limits.new_limit),
        seen
    )
    remaining_new_slots = max(limits.new_limit - len(exam_new), 0)
    regular_new = dedupe_cards(
        take([c for c in new_cards if not is_exam_card(c)], remaining_new_slots),
        seen
    )

    documents = content_repo.get_documents(
        blocks[card.block_id].get("document_id") for card in exam_due + regular_due + exam_new + regular_new
    )

    queue = (
        [build_entry(c, blocks[c.block_id], documents, now, "exam_due", True) for c in exam_due]
        + [build_entry(c, blocks[c.block_id], documents, now, "regular_due") for c in regular_due]
        + [build_entry(c, blocks[c.block_id], documents, now, "exam_new", True) for c in exam_new]
        + [build_entry(c, blocks[c.block_id], documents, now, "regular_new") for c in regular_new]
    )

    logger.debug(
        "Learn queue for %s (%s): %d exam due, %d due, %d exam new, %d new",
        owner_id, config.scope, len(exam_due), len(regular_due), len(exam_new), len(regular_new)
    )
    return queue


def build_due_queue(
    owner_id: str,
    card_repo,
    content_repo,
    limit: int = DEFAULT_DUE_CARDS_LIMIT,
    now: Optional[int] = None
) -> list[QueueEntry]:
    """
    Reviewed cards that are due, without exam interleaving.

    The earliest-due `limit` cards are kept, then ordered by ascending
    retrievability.
    """
    if now is None:
        now = now_ms()

    cards = [
        card for card in card_repo.list_cards_by_owner(owner_id)
        if not card.suspended and card.state != CardStatus.NEW and card.due <= now
    ]
    blocks = content_repo.get_blocks(card.block_id for card in cards)
    cards = drop_unreviewable(cards, blocks)
    cards = sort_by_retrievability(take(sort_by_due(cards), limit), now)

    documents = content_repo.get_documents(blocks[c.block_id].get("document_id") for c in cards)
    return [build_entry(c, blocks[c.block_id], documents, now, "regular_due") for c in cards]


def build_new_queue(
    owner_id: str,
    card_repo,
    content_repo,
    limit: int = DEFAULT_NEW_CARDS_LIMIT,
    now: Optional[int] = None
) -> list[QueueEntry]:
    """
    Never-reviewed cards, oldest first, without exam interleaving.
    """
    if now is None:
        now = now_ms()

    cards = [
        card for card in card_repo.list_cards_by_owner(owner_id)
        if not card.suspended and card.state == CardStatus.NEW
    ]
    blocks = content_repo.get_blocks(card.block_id for card in cards)
    cards = take(sort_by_due(drop_unreviewable(cards, blocks)), limit)

    documents = content_repo.get_documents(blocks[c.block_id].get("document_id") for c in cards)
    return [build_entry(c, blocks[c.block_id], documents, now, "regular_new") for c in cards]
