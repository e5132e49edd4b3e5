"""
SQLAlchemy ORM Models for FSRS Database

Defines CardState and ReviewLog models for persistence.
Timestamps are stored as epoch milliseconds.
"""

from sqlalchemy import BigInteger, Boolean, Column, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CardState(Base):
    """
    Persistent memory state for a single card (block_id + direction).

    Represents the FSRS state of a flashcard used in spaced repetition.
    """
    __tablename__ = 'card_states'

    card_id = Column(String(64), primary_key=True)

    # Ownership and content linkage
    owner_id = Column(String(255), nullable=False)
    block_id = Column(String(255), nullable=False)
    direction = Column(String(16), nullable=False)

    # Long-term memory parameters
    stability = Column(Float, nullable=False, default=0.0)
    difficulty = Column(Float, nullable=False, default=0.0)

    # Scheduling
    due = Column(BigInteger, nullable=False)
    last_review = Column(BigInteger, nullable=True)
    reps = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)
    state = Column(String(16), nullable=False, default='new')
    scheduled_days = Column(Integer, nullable=False, default=0)
    elapsed_days = Column(Integer, nullable=False, default=0)
    step = Column(Integer, nullable=True)

    suspended = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('ix_card_states_owner_due', 'owner_id', 'due'),
        Index('ix_card_states_owner_state', 'owner_id', 'state'),
        Index('ix_card_states_block_direction', 'block_id', 'direction', unique=True),
    )

    def __repr__(self):
        return f"<CardState({self.card_id}, {self.block_id}/{self.direction}, {self.state})>"


class ReviewLog(Base):
    """
    Log entry for a single review of a card.

    Captures the memory state in effect before the review.
    """
    __tablename__ = 'review_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)

    card_id = Column(String(64), nullable=False)
    owner_id = Column(String(255), nullable=False)

    rating = Column(Integer, nullable=False)  # 1=AGAIN, 2=HARD, 3=GOOD, 4=EASY
    state = Column(String(16), nullable=False)  # State before review
    scheduled_days = Column(Integer, nullable=False)
    elapsed_days = Column(Integer, nullable=False)
    stability = Column(Float, nullable=False)
    difficulty = Column(Float, nullable=False)
    reviewed_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index('ix_review_logs_card', 'card_id', 'reviewed_at'),
        Index('ix_review_logs_owner_date', 'owner_id', 'reviewed_at'),
    )

    def __repr__(self):
        return f"<ReviewLog(id={self.id}, card={self.card_id}, rating={self.rating})>"
