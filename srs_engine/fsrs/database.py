"""
Database - FSRS Database I/O Operations

Handles all database operations for card states and review logs.
Uses SQLAlchemy ORM; any SQLAlchemy URL works (Postgres in production,
SQLite for local runs and tests).

This module handles ONLY database I/O.
Algorithm logic is handled by the scheduler module.
"""

from __future__ import annotations
import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from srs_engine.config import get_database_url
from srs_engine.errors import Conflict
from srs_engine.fsrs.constants import CardStatus
from srs_engine.fsrs.memory_state import CardMemoryState, ReviewLogEntry
from srs_engine.fsrs.models import Base, CardState as CardStateModel, ReviewLog as ReviewLogModel

logger = logging.getLogger(__name__)


def get_engine(db_url: Optional[str] = None) -> Engine:
    """
    Get SQLAlchemy engine for database connection.

    Uses connection pooling for server databases. In-memory SQLite shares a
    single connection so every session sees the same tables.

    Returns:
        SQLAlchemy Engine instance
    """
    if db_url is None:
        db_url = get_database_url()

    if db_url.startswith("sqlite"):
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                db_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(db_url, connect_args={"check_same_thread": False})

    return create_engine(
        db_url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=False
    )


def generate_card_id() -> str:
    """Generate a unique card state ID (UUID)."""
    return str(uuid.uuid4())


class CardRepository:
    """
    SQLAlchemy-backed store for card states and review logs.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, db_url: Optional[str] = None) -> CardRepository:
        """Build a repository (DATABASE_URL when no URL is given)."""
        return cls(get_engine(db_url))

    def get_session(self) -> Session:
        """Get a SQLAlchemy session for database operations."""
        return self._session_factory()

    # ---- Schema ----

    def init_db(self):
        """
        Initialize database schema if tables don't exist.

        Safe to call multiple times - only creates missing tables.
        """
        existing_tables = inspect(self.engine).get_table_names()
        if 'card_states' not in existing_tables or 'review_logs' not in existing_tables:
            Base.metadata.create_all(self.engine)
            logger.info("Created card_states/review_logs tables")

    def reset_db(self):
        """
        DANGEROUS: Delete all data and recreate tables.

        All review history will be lost!
        """
        Base.metadata.drop_all(self.engine)
        logger.warning("All scheduling tables dropped")
        self.init_db()

    # ---- Card States ----

    def get_card(self, card_id: str) -> Optional[CardMemoryState]:
        """
        Load a card state by ID.

        Returns:
            CardMemoryState if found, None otherwise
        """
        session = self.get_session()
        try:
            row = session.get(CardStateModel, card_id)
            return _to_card(row) if row is not None else None
        finally:
            session.close()

    def get_card_for_block(self, block_id: str, direction: str) -> Optional[CardMemoryState]:
        """Load the card state of one (block, direction) pair."""
        session = self.get_session()
        try:
            row = session.query(CardStateModel).filter(
                CardStateModel.block_id == block_id,
                CardStateModel.direction == direction
            ).first()
            return _to_card(row) if row is not None else None
        finally:
            session.close()

    def list_cards_by_owner(self, owner_id: str) -> list[CardMemoryState]:
        """All card states of a user, earliest due first."""
        session = self.get_session()
        try:
            rows = session.query(CardStateModel).filter(
                CardStateModel.owner_id == owner_id
            ).order_by(CardStateModel.due, CardStateModel.card_id).all()
            return [_to_card(row) for row in rows]
        finally:
            session.close()

    def list_cards_by_content_unit(self, block_id: str) -> list[CardMemoryState]:
        """All card states (one per direction) of a block."""
        return self.list_cards_by_blocks([block_id])

    def list_cards_by_blocks(self, block_ids: Iterable[str]) -> list[CardMemoryState]:
        """All card states for a set of blocks, earliest due first."""
        block_ids = list(set(block_ids))
        if not block_ids:
            return []

        session = self.get_session()
        try:
            rows = session.query(CardStateModel).filter(
                CardStateModel.block_id.in_(block_ids)
            ).order_by(CardStateModel.due, CardStateModel.card_id).all()
            return [_to_card(row) for row in rows]
        finally:
            session.close()

    def list_cards_page(self, after_card_id: Optional[str], limit: int) -> list[CardMemoryState]:
        """
        One page of card states ordered by ID (keyset pagination).

        Args:
            after_card_id: Last ID of the previous page (None for the first page)
            limit: Page size
        """
        session = self.get_session()
        try:
            query = session.query(CardStateModel)
            if after_card_id is not None:
                query = query.filter(CardStateModel.card_id > after_card_id)
            rows = query.order_by(CardStateModel.card_id).limit(limit).all()
            return [_to_card(row) for row in rows]
        finally:
            session.close()

    def put_card(self, card: CardMemoryState) -> CardMemoryState:
        """
        Save card state to database (insert or update).

        Cards without an ID are assigned one.

        Returns:
            The saved card (with its ID)
        """
        if not card.card_id:
            card.card_id = generate_card_id()

        session = self.get_session()
        try:
            _upsert_card(session, card)
            session.commit()
            return card
        finally:
            session.close()

    def delete_card(self, card_id: str) -> bool:
        """
        Delete a card state and its review logs.

        Returns:
            True if the card existed
        """
        session = self.get_session()
        try:
            session.query(ReviewLogModel).filter(
                ReviewLogModel.card_id == card_id
            ).delete(synchronize_session=False)
            deleted = session.query(CardStateModel).filter(
                CardStateModel.card_id == card_id
            ).delete(synchronize_session=False)
            session.commit()
            return deleted > 0
        finally:
            session.close()

    def delete_cards_for_block(self, block_id: str) -> int:
        """
        Delete all card states (and their review logs) of a block.

        Returns:
            Number of card states deleted
        """
        session = self.get_session()
        try:
            card_ids = [
                row.card_id for row in session.query(CardStateModel.card_id).filter(
                    CardStateModel.block_id == block_id
                ).all()
            ]
            if not card_ids:
                return 0

            session.query(ReviewLogModel).filter(
                ReviewLogModel.card_id.in_(card_ids)
            ).delete(synchronize_session=False)
            session.query(CardStateModel).filter(
                CardStateModel.card_id.in_(card_ids)
            ).delete(synchronize_session=False)
            session.commit()
            return len(card_ids)
        finally:
            session.close()

    # ---- Review Logs ----

    def append_review_log(self, entry: ReviewLogEntry) -> int:
        """
        Append a review log entry.

        Returns:
            ID of the new log entry
        """
        session = self.get_session()
        try:
            row = _new_log_row(entry)
            session.add(row)
            session.commit()
            return row.id
        finally:
            session.close()

    def get_review_log(self, log_id: int) -> Optional[ReviewLogEntry]:
        """Load one review log entry by ID."""
        session = self.get_session()
        try:
            row = session.get(ReviewLogModel, log_id)
            return _to_log(row) if row is not None else None
        finally:
            session.close()

    def latest_review_log(self, card_id: str) -> Optional[ReviewLogEntry]:
        """The most recent review log of a card (ties broken by ID)."""
        session = self.get_session()
        try:
            row = session.query(ReviewLogModel).filter(
                ReviewLogModel.card_id == card_id
            ).order_by(
                ReviewLogModel.reviewed_at.desc(),
                ReviewLogModel.id.desc()
            ).first()
            return _to_log(row) if row is not None else None
        finally:
            session.close()

    def list_review_logs(self, owner_id: str, since: Optional[int] = None) -> list[ReviewLogEntry]:
        """
        Review logs of a user, oldest first.

        Args:
            owner_id: User identifier
            since: Only logs reviewed at or after this epoch ms
        """
        session = self.get_session()
        try:
            query = session.query(ReviewLogModel).filter(ReviewLogModel.owner_id == owner_id)
            if since is not None:
                query = query.filter(ReviewLogModel.reviewed_at >= since)
            rows = query.order_by(ReviewLogModel.reviewed_at, ReviewLogModel.id).all()
            return [_to_log(row) for row in rows]
        finally:
            session.close()

    def list_review_logs_for_card(self, card_id: str) -> list[ReviewLogEntry]:
        """Review logs of one card, oldest first."""
        session = self.get_session()
        try:
            rows = session.query(ReviewLogModel).filter(
                ReviewLogModel.card_id == card_id
            ).order_by(ReviewLogModel.reviewed_at, ReviewLogModel.id).all()
            return [_to_log(row) for row in rows]
        finally:
            session.close()

    def delete_review_log(self, log_id: int) -> bool:
        """Delete one review log entry."""
        session = self.get_session()
        try:
            deleted = session.query(ReviewLogModel).filter(
                ReviewLogModel.id == log_id
            ).delete(synchronize_session=False)
            session.commit()
            return deleted > 0
        finally:
            session.close()

    # ---- Atomic Review Operations ----

    def commit_review(
        self,
        card: CardMemoryState,
        entry: ReviewLogEntry,
        previous: Optional[CardMemoryState] = None
    ) -> int:
        """
        Save the reviewed card and append its log in one transaction.

        Args:
            card: Card state after the review
            entry: Log entry of the review
            previous: Card state the review was computed from. When given,
                the write only succeeds if the stored row still matches it.

        Returns:
            ID of the new log entry

        Raises:
            Conflict: the card changed since `previous` was read
        """
        session = self.get_session()
        try:
            if previous is None:
                _upsert_card(session, card, lock=True)
            else:
                row = _locked_row_query(session, card.card_id).filter(
                    CardStateModel.reps == previous.reps,
                    _last_review_matches(previous.last_review)
                ).first()
                if row is None:
                    raise Conflict("Card state changed since it was read")
                _copy_to_row(row, card)

            row = _new_log_row(entry)
            session.add(row)
            session.commit()
            return row.id
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def restore_snapshot(self, card: CardMemoryState, log_id: int) -> None:
        """
        Write the restored card and delete the undone log in one transaction.

        Raises:
            Conflict: log_id is no longer the card's latest review log
        """
        session = self.get_session()
        try:
            row = _locked_row_query(session, card.card_id).first()
            latest = session.query(ReviewLogModel.id).filter(
                ReviewLogModel.card_id == card.card_id
            ).order_by(
                ReviewLogModel.reviewed_at.desc(),
                ReviewLogModel.id.desc()
            ).first()
            if row is None or latest is None or latest.id != log_id:
                raise Conflict("Review log does not match latest review")

            _copy_to_row(row, card)
            session.query(ReviewLogModel).filter(
                ReviewLogModel.id == log_id
            ).delete(synchronize_session=False)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def set_suspended(self, card_id: str, suspended: bool) -> Optional[CardMemoryState]:
        """
        Update only the suspended flag of a card.

        Returns:
            The updated card, or None if it does not exist
        """
        session = self.get_session()
        try:
            row = _locked_row_query(session, card_id).first()
            if row is None:
                return None
            row.suspended = bool(suspended)
            session.commit()
            return _to_card(row)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# ---- Row Conversion ----

def _to_card(row: CardStateModel) -> CardMemoryState:
    return CardMemoryState(
        card_id=row.card_id,
        owner_id=row.owner_id,
        block_id=row.block_id,
        direction=row.direction,
        stability=row.stability,
        difficulty=row.difficulty,
        due=row.due,
        last_review=row.last_review,
        reps=row.reps,
        lapses=row.lapses,
        state=CardStatus(row.state),
        scheduled_days=row.scheduled_days,
        elapsed_days=row.elapsed_days,
        step=row.step,
        suspended=bool(row.suspended),
    )


def _locked_row_query(session: Session, card_id: str):
    return session.query(CardStateModel).filter(
        CardStateModel.card_id == card_id
    ).with_for_update()


def _last_review_matches(last_review: Optional[int]):
    if last_review is None:
        return CardStateModel.last_review.is_(None)
    return CardStateModel.last_review == last_review


def _upsert_card(session: Session, card: CardMemoryState, lock: bool = False) -> None:
    query = session.query(CardStateModel).filter(CardStateModel.card_id == card.card_id)
    if lock:
        query = query.with_for_update()
    row = query.first()

    if row is None:
        row = CardStateModel(card_id=card.card_id)
        session.add(row)

    _copy_to_row(row, card)
    row.suspended = card.suspended


def _copy_to_row(row: CardStateModel, card: CardMemoryState) -> None:
    """Copy identity and memory fields; the suspended flag is left as stored."""
    row.owner_id = card.owner_id
    row.block_id = card.block_id
    row.direction = card.direction
    row.stability = card.stability
    row.difficulty = card.difficulty
    row.due = card.due
    row.last_review = card.last_review
    row.reps = card.reps
    row.lapses = card.lapses
    row.state = CardStatus(card.state).value
    row.scheduled_days = card.scheduled_days
    row.elapsed_days = card.elapsed_days
    row.step = card.step


def _new_log_row(entry: ReviewLogEntry) -> ReviewLogModel:
    return ReviewLogModel(
        card_id=entry.card_id,
        owner_id=entry.owner_id,
        rating=int(entry.rating),
        state=CardStatus(entry.state).value,
        scheduled_days=entry.scheduled_days,
        elapsed_days=entry.elapsed_days,
        stability=entry.stability,
        difficulty=entry.difficulty,
        reviewed_at=entry.reviewed_at,
    )


def _to_log(row: ReviewLogModel) -> ReviewLogEntry:
    return ReviewLogEntry(
        log_id=row.id,
        card_id=row.card_id,
        owner_id=row.owner_id,
        rating=row.rating,
        state=CardStatus(row.state),
        scheduled_days=row.scheduled_days,
        elapsed_days=row.elapsed_days,
        stability=row.stability,
        difficulty=row.difficulty,
        reviewed_at=row.reviewed_at,
    )
