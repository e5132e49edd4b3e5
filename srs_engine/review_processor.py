"""
Review Processor - Apply ratings to stored cards

Loads a card, runs the FSRS transition, and persists the new state together
with its review log in one transaction. Also provides single-step undo by
restoring a caller-supplied snapshot.

Reviews for the same card are serialized inside one processor. Across
processes the write is version-checked against the state the review was
computed from; a stale write is retried on fresh state.
"""

from __future__ import annotations
import logging
import math
import threading
import weakref
from dataclasses import dataclass
from typing import Optional, Union

from srs_engine.errors import Conflict, Forbidden, InvalidArgument, NotFound
from srs_engine.fsrs.constants import D_MAX, D_MIN, CardStatus, Rating
from srs_engine.fsrs.memory_state import CardMemoryState, CardSnapshot, ReviewLogEntry, now_ms
from srs_engine.fsrs.scheduler import apply_review

logger = logging.getLogger(__name__)

MAX_REVIEW_ATTEMPTS = 3


@dataclass(frozen=True)
class ReviewSummary:
    """What the caller needs after a review."""
    next_due: int
    scheduled_days: int
    state: CardStatus
    log_id: int


def validate_rating(rating) -> Rating:
    """
    Convert a raw rating into a Rating.

    Raises:
        InvalidArgument: rating is not an integer in 1-4
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidArgument(f"Rating must be an integer 1-4, got {rating!r}")
    if rating not in (1, 2, 3, 4):
        raise InvalidArgument(f"Rating must be between 1 and 4, got {rating}")
    return Rating(rating)


# ---- Snapshot Validation ----

_INT_FIELDS = ("due", "reps", "lapses", "scheduled_days", "elapsed_days")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate_snapshot(snapshot: Union[CardSnapshot, dict]) -> CardSnapshot:
    """
    Parse an undo snapshot and check it describes a possible card state.

    Raises:
        InvalidArgument: missing fields, wrong types, or values outside
            the card invariants
    """
    if isinstance(snapshot, dict):
        try:
            snapshot = CardSnapshot.from_dict(snapshot)
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidArgument(f"Malformed snapshot: {e}") from e
    elif not isinstance(snapshot, CardSnapshot):
        raise InvalidArgument("Snapshot must be a CardSnapshot or dict")

    for name in _INT_FIELDS:
        value = getattr(snapshot, name)
        if not _is_int(value) or value < 0:
            raise InvalidArgument(f"Snapshot {name} must be a non-negative integer")
    for name in ("last_review", "step"):
        value = getattr(snapshot, name)
        if value is not None and (not _is_int(value) or value < 0):
            raise InvalidArgument(f"Snapshot {name} must be a non-negative integer or None")
    for name in ("stability", "difficulty"):
        if not _is_number(getattr(snapshot, name)):
            raise InvalidArgument(f"Snapshot {name} must be a finite number")

    if snapshot.stability < 0:
        raise InvalidArgument("Snapshot stability must be >= 0")
    if snapshot.state == CardStatus.NEW:
        if snapshot.reps != 0 or snapshot.last_review is not None or snapshot.difficulty != 0:
            raise InvalidArgument("New-card snapshot must have no reviews")
    elif not D_MIN <= snapshot.difficulty <= D_MAX:
        raise InvalidArgument(f"Snapshot difficulty must be within [{D_MIN}, {D_MAX}]")

    return snapshot


def _check_snapshot_matches_log(
    snapshot: CardSnapshot,
    card: CardMemoryState,
    log: ReviewLogEntry
) -> None:
    """The log records the pre-review memory state; the snapshot must agree."""
    matches = (
        snapshot.state == log.state
        and snapshot.scheduled_days == log.scheduled_days
        and math.isclose(snapshot.stability, log.stability, rel_tol=1e-9, abs_tol=1e-9)
        and math.isclose(snapshot.difficulty, log.difficulty, rel_tol=1e-9, abs_tol=1e-9)
        and snapshot.reps == card.reps - 1
        and (snapshot.last_review is None or snapshot.last_review <= log.reviewed_at)
    )
    if not matches:
        raise InvalidArgument("Snapshot does not match the state before the review")


class ReviewProcessor:
    """
    Review and undo against a card repository.

    Args:
        card_repo: CardRepository (or compatible) used for all reads/writes
        enable_fuzz: Override the SRS_ENABLE_FUZZ setting
    """

    def __init__(self, card_repo, enable_fuzz: Optional[bool] = None):
        self.card_repo = card_repo
        self.enable_fuzz = enable_fuzz
        # Entries disappear once no caller holds the lock
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _card_lock(self, card_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(card_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[card_id] = lock
            return lock

    def _load_owned_card(self, card_id: str, owner_id: str, action: str) -> CardMemoryState:
        card = self.card_repo.get_card(card_id)
        if card is None:
            raise NotFound("Card state not found")
        if card.owner_id != owner_id:
            raise Forbidden(f"Not authorized to {action}")
        return card

    def review(
        self,
        card_id: str,
        rating: int,
        owner_id: str,
        now: Optional[int] = None
    ) -> ReviewSummary:
        """
        Apply one rating to a card and persist the result.

        Args:
            card_id: Card state ID
            rating: 1=AGAIN, 2=HARD, 3=GOOD, 4=EASY
            owner_id: Calling user (must own the card)
            now: Review time in epoch ms (defaults to now)

        Returns:
            ReviewSummary with the next due time and the new log ID

        Raises:
            InvalidArgument: rating outside 1-4
            NotFound: card does not exist
            Forbidden: card belongs to another user
            Conflict: card kept changing during every attempt
        """
        rating = validate_rating(rating)
        if now is None:
            now = now_ms()

        with self._card_lock(card_id):
            for attempt in range(1, MAX_REVIEW_ATTEMPTS + 1):
                card = self._load_owned_card(card_id, owner_id, "review this card")
                result = apply_review(card, rating, now, enable_fuzz=self.enable_fuzz)
                try:
                    log_id = self.card_repo.commit_review(result.card, result.log, previous=card)
                    break
                except Conflict:
                    if attempt == MAX_REVIEW_ATTEMPTS:
                        raise
                    logger.info("Card %s changed during review, retrying (attempt %d)", card_id, attempt)

        logger.debug(
            "Reviewed %s rating=%d: %s -> %s, next in %d day(s)",
            card_id, rating, card.state.value, result.card.state.value, result.card.scheduled_days
        )
        return ReviewSummary(
            next_due=result.card.due,
            scheduled_days=result.card.scheduled_days,
            state=result.card.state,
            log_id=log_id,
        )

    def set_suspended(self, card_id: str, suspended: bool, owner_id: str) -> CardMemoryState:
        """
        Suspend or unsuspend a card.

        Only the suspended flag is written, so a concurrent review is kept.

        Raises:
            NotFound: card does not exist
            Forbidden: card belongs to another user
        """
        with self._card_lock(card_id):
            self._load_owned_card(card_id, owner_id, "modify this card")
            card = self.card_repo.set_suspended(card_id, suspended)
            if card is None:
                raise NotFound("Card state not found")

        logger.debug("Card %s suspended=%s", card_id, card.suspended)
        return card

    def undo(
        self,
        card_id: str,
        snapshot: Union[CardSnapshot, dict],
        log_id: int,
        owner_id: str
    ) -> CardMemoryState:
        """
        Undo the latest review of a card.

        Restores the snapshot taken before that review and deletes its log.
        Only the most recent log of the card can be undone, and the snapshot
        must agree with the pre-review values recorded in that log.

        Returns:
            The restored card state

        Raises:
            InvalidArgument: snapshot is malformed or does not match the log
            NotFound: card or review log does not exist
            Forbidden: card belongs to another user
            Conflict: log belongs to another card or is not the latest one
        """
        snapshot = validate_snapshot(snapshot)

        with self._card_lock(card_id):
            card = self._load_owned_card(card_id, owner_id, "undo this review")

            log = self.card_repo.get_review_log(log_id)
            if log is None:
                raise NotFound("Review log not found")
            if log.card_id != card_id:
                raise Conflict("Review log does not match card state")

            latest = self.card_repo.latest_review_log(card_id)
            if latest is None or latest.log_id != log_id:
                raise Conflict("Review log does not match latest review")

            _check_snapshot_matches_log(snapshot, card, log)

            restored = snapshot.apply_to(card)
            self.card_repo.restore_snapshot(restored, log_id)

        logger.debug("Undid review log %s for %s", log_id, card_id)
        return restored
