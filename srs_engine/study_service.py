"""
Study Service - Caller-facing API of the scheduling engine

Wires the card repository, the content repository, the queue builders and
the review processor together. Every method takes the calling user's ID and
enforces ownership before touching records.

Quick start:
    service = StudyService.from_env()
    queue = service.get_learn_session("user-1")
    summary = service.review_card(queue[0].card_id, 3, "user-1")
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from srs_engine import analytics
from srs_engine.content_repo import MongoContentRepository, card_directions, is_reviewable
from srs_engine.errors import Forbidden, InvalidArgument, NotFound
from srs_engine.fsrs.constants import DIRECTIONS
from srs_engine.fsrs.database import CardRepository, generate_card_id
from srs_engine.fsrs.memory_state import CardMemoryState, CardSnapshot, create_initial, now_ms
from srs_engine.leech import (
    LeechStats,
    is_leech,
    leech_reason,
    retention_by_card,
    summarize_leeches,
)
from srs_engine.review_processor import ReviewProcessor, ReviewSummary
from srs_engine.session_builders import (
    ExamSummary,
    QueueConfig,
    QueueEntry,
    SessionLimits,
    build_due_queue,
    build_learn_queue,
    build_new_queue,
    summarize_exams,
)
from srs_engine.session_builders.queue_types import (
    DEFAULT_DUE_CARDS_LIMIT,
    DEFAULT_EXAM_LIMIT,
    DEFAULT_NEW_CARDS_LIMIT,
    DEFAULT_NEW_LIMIT,
    DEFAULT_REVIEW_LIMIT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeechCard:
    """A leech with the context needed to fix or suspend it."""
    card: CardMemoryState
    block: Optional[dict]
    retention: Optional[int]
    reason: str


class StudyService:
    """
    Spaced-repetition operations for one deployment.

    Args:
        card_repo: Card state store
        content_repo: Block/document/exam store
        processor: Review processor (built from card_repo if omitted)
    """

    def __init__(self, card_repo, content_repo, processor: Optional[ReviewProcessor] = None):
        self.card_repo = card_repo
        self.content_repo = content_repo
        self.processor = processor or ReviewProcessor(card_repo)

    @classmethod
    def from_env(cls) -> StudyService:
        """Build a service from DATABASE_URL / MONGO_URI, creating tables if needed."""
        card_repo = CardRepository.from_url()
        card_repo.init_db()
        return cls(card_repo, MongoContentRepository())

    # ---- Ownership ----

    def _require_document(self, document_id: str, owner_id: str) -> dict:
        document = self.content_repo.get_documents([document_id]).get(document_id)
        if document is None:
            raise NotFound("Document not found")
        if document.get("user_id") != owner_id:
            raise Forbidden("Not authorized to access this document")
        return document

    def _require_block(self, block_id: str, owner_id: str) -> dict:
        block = self.content_repo.get_block(block_id)
        if block is None:
            raise NotFound("Block not found")
        if block.get("user_id") != owner_id:
            raise Forbidden("Not authorized to manage card states for this block")
        return block

    # ---- Queues ----

    def get_learn_session(
        self,
        owner_id: str,
        new_limit: int = DEFAULT_NEW_LIMIT,
        review_limit: int = DEFAULT_REVIEW_LIMIT,
        exam_limit: int = DEFAULT_EXAM_LIMIT,
        now: Optional[int] = None
    ) -> list[QueueEntry]:
        """
        Exam-aware study queue across all of the user's cards.

        Order: exam due, regular due, exam new, regular new.
        """
        limits = SessionLimits(new_limit=new_limit, review_limit=review_limit, exam_limit=exam_limit)
        return build_learn_queue(
            owner_id, self.card_repo, self.content_repo,
            config=QueueConfig.global_session(exam_aware=True),
            limits=limits,
            now=now,
        )

    def get_document_learn_session(
        self,
        owner_id: str,
        document_id: str,
        new_limit: int = DEFAULT_NEW_LIMIT,
        review_limit: int = DEFAULT_REVIEW_LIMIT,
        now: Optional[int] = None
    ) -> list[QueueEntry]:
        """
        Study queue limited to one document (due by due date, then new).

        Raises:
            NotFound: document does not exist
            Forbidden: document belongs to another user
        """
        self._require_document(document_id, owner_id)
        limits = SessionLimits(new_limit=new_limit, review_limit=review_limit)
        return build_learn_queue(
            owner_id, self.card_repo, self.content_repo,
            config=QueueConfig.for_document(document_id),
            limits=limits,
            now=now,
        )

    def get_due_cards(
        self,
        owner_id: str,
        limit: int = DEFAULT_DUE_CARDS_LIMIT,
        now: Optional[int] = None
    ) -> list[QueueEntry]:
        """Due reviewed cards, lowest retrievability first."""
        return build_due_queue(owner_id, self.card_repo, self.content_repo, limit=limit, now=now)

    def get_new_cards(
        self,
        owner_id: str,
        limit: int = DEFAULT_NEW_CARDS_LIMIT,
        now: Optional[int] = None
    ) -> list[QueueEntry]:
        """Never-reviewed cards, oldest first."""
        return build_new_queue(owner_id, self.card_repo, self.content_repo, limit=limit, now=now)

    # ---- Reviews ----

    def review_card(
        self,
        card_id: str,
        rating: int,
        owner_id: str,
        now: Optional[int] = None
    ) -> ReviewSummary:
        """Apply a rating to a card (see ReviewProcessor.review)."""
        return self.processor.review(card_id, rating, owner_id, now)

    def undo_review(
        self,
        card_id: str,
        snapshot: Union[CardSnapshot, dict],
        log_id: int,
        owner_id: str
    ) -> CardMemoryState:
        """Undo the card's latest review (see ReviewProcessor.undo)."""
        return self.processor.undo(card_id, snapshot, log_id, owner_id)

    def suspend_card(self, card_id: str, suspended: bool, owner_id: str) -> CardMemoryState:
        """Exclude a card from (or return it to) all study queues."""
        return self.processor.set_suspended(card_id, suspended, owner_id)

    # ---- Leeches ----

    def list_leech_cards(self, owner_id: str) -> list[LeechCard]:
        """
        All leeches of a user (suspended ones included).

        Sorted by lapses (desc), then retention (asc, unknown last).
        """
        cards = self.card_repo.list_cards_by_owner(owner_id)
        retention_map = retention_by_card(self.card_repo.list_review_logs(owner_id))

        leeches = [
            card for card in cards
            if is_leech(card, retention_map.get(card.card_id))
        ]
        blocks = self.content_repo.get_blocks(card.block_id for card in leeches)

        result = [
            LeechCard(
                card=card,
                block=blocks.get(card.block_id),
                retention=retention_map.get(card.card_id),
                reason=leech_reason(card, retention_map.get(card.card_id)),
            )
            for card in leeches
        ]
        return sorted(
            result,
            key=lambda item: (
                -item.card.lapses,
                item.retention if item.retention is not None else 101,
                item.card.card_id,
            )
        )

    def get_leech_stats(self, owner_id: str) -> LeechStats:
        """Leech counts for a user."""
        cards = self.card_repo.list_cards_by_owner(owner_id)
        retention_map = retention_by_card(self.card_repo.list_review_logs(owner_id))
        return summarize_leeches(cards, retention_map)

    # ---- Statistics ----

    def get_stats(
        self,
        owner_id: str,
        now: Optional[int] = None,
        day_start: Optional[int] = None
    ) -> analytics.StudyStats:
        """Deck counts, cards due now, and today's review activity."""
        return analytics.build_study_stats(self.card_repo, owner_id, now=now, day_start=day_start)

    def list_cards_by_difficulty_bucket(
        self,
        owner_id: str,
        bucket: str,
        limit: Optional[int] = None
    ) -> analytics.DifficultyBucketPage:
        """Non-suspended cards in a difficulty bucket ("1-2" ... "9-10")."""
        return analytics.cards_in_difficulty_bucket(self.card_repo, owner_id, bucket, limit=limit)

    # ---- Exams ----

    def get_active_exams(self, owner_id: str, now: Optional[int] = None) -> list[ExamSummary]:
        """Upcoming exams currently inside their retrievability period, soonest first."""
        if now is None:
            now = now_ms()
        active = [s for s in summarize_exams(self.content_repo, owner_id, now) if s.in_period]
        return sorted(active, key=lambda s: s.days_until)

    # ---- Card State Lifecycle ----

    def ensure_card_states(
        self,
        owner_id: str,
        block_id: str,
        directions: Iterable[str],
        now: Optional[int] = None
    ) -> list[str]:
        """
        Make sure a card state exists for each direction of a block.

        Returns:
            Card IDs in the order of `directions` (existing or newly created)

        Raises:
            InvalidArgument: direction is not forward/reverse
            NotFound: block does not exist
            Forbidden: block belongs to another user
        """
        directions = list(directions)
        for direction in directions:
            if direction not in DIRECTIONS:
                raise InvalidArgument(f"Unknown card direction: {direction!r}")
        self._require_block(block_id, owner_id)

        if now is None:
            now = now_ms()

        card_ids = []
        for direction in directions:
            card_ids.append(self._get_or_create(owner_id, block_id, direction, now).card_id)
        return card_ids

    def initialize_document_card_states(
        self,
        owner_id: str,
        document_id: str,
        now: Optional[int] = None
    ) -> int:
        """
        Create missing card states for every enabled flashcard in a document.

        Cloze cards only get a forward card; bidirectional blocks get both.

        Returns:
            Number of card states created
        """
        self._require_document(document_id, owner_id)
        if now is None:
            now = now_ms()

        created = 0
        for unit in self.content_repo.list_reviewable_content_units(document_id):
            if not is_reviewable(unit) or unit.get("user_id") != owner_id:
                continue
            for direction in card_directions(unit):
                if self.card_repo.get_card_for_block(unit["block_id"], direction) is None:
                    self._create(owner_id, unit["block_id"], direction, now)
                    created += 1

        logger.info("Initialized %d card state(s) for document %s", created, document_id)
        return created

    def delete_card_states_for_block(self, owner_id: str, block_id: str) -> int:
        """
        Delete all card states and review logs of a block.

        Returns:
            Number of card states deleted
        """
        self._require_block(block_id, owner_id)
        return self.card_repo.delete_cards_for_block(block_id)

    def _get_or_create(self, owner_id: str, block_id: str, direction: str, now: int) -> CardMemoryState:
        existing = self.card_repo.get_card_for_block(block_id, direction)
        if existing is not None:
            return existing
        return self._create(owner_id, block_id, direction, now)

    def _create(self, owner_id: str, block_id: str, direction: str, now: int) -> CardMemoryState:
        card = create_initial(
            now,
            card_id=generate_card_id(),
            owner_id=owner_id,
            block_id=block_id,
            direction=direction,
        )
        return self.card_repo.put_card(card)
