"""
Typed queue models shared across session builders.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Literal, Optional

from srs_engine.errors import InvalidArgument
from srs_engine.fsrs.memory_state import CardMemoryState


QueueScope = Literal["global", "document"]
QueueBucket = Literal["exam_due", "regular_due", "exam_new", "regular_new"]

DEFAULT_NEW_LIMIT = 20
DEFAULT_REVIEW_LIMIT = 100
DEFAULT_EXAM_LIMIT = 50

DEFAULT_DUE_CARDS_LIMIT = 50
DEFAULT_NEW_CARDS_LIMIT = 20


@dataclass(frozen=True)
class QueueConfig:
    """
    Which cards a learn session draws from.

    global:   all of the user's cards, optionally exam-aware
    document: cards of one document, never exam-aware
    """
    scope: QueueScope = "global"
    document_id: Optional[str] = None
    exam_aware: bool = True

    def __post_init__(self):
        if self.scope not in ("global", "document"):
            raise InvalidArgument(f"Unknown queue scope: {self.scope!r}")
        if self.scope == "document":
            if not self.document_id:
                raise InvalidArgument("document_id is required for a document-scoped queue")
            if self.exam_aware:
                object.__setattr__(self, "exam_aware", False)

    @classmethod
    def global_session(cls, exam_aware: bool = True) -> QueueConfig:
        return cls(scope="global", exam_aware=exam_aware)

    @classmethod
    def for_document(cls, document_id: str) -> QueueConfig:
        return cls(scope="document", document_id=document_id, exam_aware=False)


@dataclass(frozen=True)
class SessionLimits:
    """Per-session caps on new, review and exam cards."""
    new_limit: int = DEFAULT_NEW_LIMIT
    review_limit: int = DEFAULT_REVIEW_LIMIT
    exam_limit: int = DEFAULT_EXAM_LIMIT

    def __post_init__(self):
        for name in ("new_limit", "review_limit", "exam_limit"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidArgument(f"{name} must be a non-negative integer, got {value!r}")


@dataclass
class QueueEntry:
    """
    One card in a study queue, with everything needed to present it.
    """
    card: CardMemoryState
    block: dict
    document: Optional[dict]          # {"document_id", "title"} or None
    retrievability: float
    interval_previews: dict[str, str]  # rating name -> formatted interval
    is_exam_card: bool = False
    bucket: QueueBucket = "regular_due"

    @property
    def card_id(self) -> str:
        return self.card.card_id
