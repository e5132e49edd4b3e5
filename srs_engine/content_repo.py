"""
MongoDB repository for flashcard content.

Read access to the blocks, documents and exams the scheduling engine needs.
The collections are owned by the note-taking app; this module only reads
them, except for archiving exams whose date has passed.

Collections:
    blocks          {block_id, user_id, document_id, is_card, card_direction, card_type, text}
    documents       {document_id, user_id, title}
    exams           {exam_id, user_id, title, exam_date, is_archived, updated_at}
    exam_documents  {exam_id, document_id, user_id}
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from pymongo import MongoClient
from pymongo.database import Database

from srs_engine.config import get_mongo_db_name, get_mongo_uri
from srs_engine.fsrs.constants import DIRECTIONS, DISABLED_DIRECTION

logger = logging.getLogger(__name__)

# Collection names
BLOCKS = "blocks"
DOCUMENTS = "documents"
EXAMS = "exams"
EXAM_DOCUMENTS = "exam_documents"

# Global connection pool (reused across requests)
_client: Optional[MongoClient] = None
_database: Optional[Database] = None


@dataclass(frozen=True)
class ExamInfo:
    """A non-archived future exam and the documents linked to it."""
    exam_id: str
    title: str
    exam_timestamp: int
    linked_document_ids: tuple[str, ...] = field(default_factory=tuple)


# ---- Connection Management ----

def get_database() -> Database:
    """
    Get the MongoDB content database.

    Uses a persistent connection pool that's reused across requests.

    Returns:
        MongoDB database object
    """
    global _client, _database

    if _database is not None:
        return _database

    _client = MongoClient(
        get_mongo_uri(),
        maxPoolSize=10,  # Connection pool size
        minPoolSize=1,   # Keep at least 1 connection alive
        maxIdleTimeMS=60000  # Keep connections alive for 60 seconds
    )
    _database = _client[get_mongo_db_name()]
    return _database


# ---- Block Helpers ----

def is_reviewable(block: Optional[dict]) -> bool:
    """A block can produce cards if it exists, is a card and is not disabled."""
    return (
        block is not None
        and bool(block.get("is_card"))
        and block.get("card_direction") != DISABLED_DIRECTION
    )


def card_directions(block: dict) -> tuple[str, ...]:
    """
    Directions a block needs card states for.

    Cloze cards only have a forward direction.
    """
    if not is_reviewable(block):
        return ()
    if block.get("card_type") == "cloze":
        return ("forward",)

    direction = block.get("card_direction")
    if direction == "bidirectional":
        return DIRECTIONS
    if direction in DIRECTIONS:
        return (direction,)
    return ()


# ---- Repository ----

class MongoContentRepository:
    """
    Block, document and exam lookups backed by MongoDB.

    Args:
        database: Database (or any mapping of collection name -> collection).
            Defaults to the shared connection from get_database().
    """

    def __init__(self, database=None):
        if database is None:
            database = get_database()
        self.blocks = database[BLOCKS]
        self.documents = database[DOCUMENTS]
        self.exams = database[EXAMS]
        self.exam_documents = database[EXAM_DOCUMENTS]

    def get_block(self, block_id: str) -> Optional[dict]:
        """
        Get a block by its block_id.

        Returns:
            Block dictionary, or None if not found
        """
        return self.blocks.find_one({"block_id": block_id}, {"_id": 0})

    def get_blocks(self, block_ids: Iterable[str]) -> dict[str, dict]:
        """
        Get many blocks in one query.

        Returns:
            Mapping of block_id -> block (missing blocks are absent)
        """
        block_ids = list(set(block_ids))
        if not block_ids:
            return {}
        cursor = self.blocks.find({"block_id": {"$in": block_ids}}, {"_id": 0})
        return {block["block_id"]: block for block in cursor}

    def get_documents(self, document_ids: Iterable[str]) -> dict[str, dict]:
        """
        Get many documents in one query.

        Returns:
            Mapping of document_id -> document (missing documents are absent)
        """
        document_ids = list(set(document_ids))
        if not document_ids:
            return {}
        cursor = self.documents.find({"document_id": {"$in": document_ids}}, {"_id": 0})
        return {doc["document_id"]: doc for doc in cursor}

    def list_reviewable_content_units(self, document_id: str) -> list[dict]:
        """
        Get all flashcard blocks of a document.

        Disabled blocks are included; callers decide how to treat them.

        Returns:
            List of block dictionaries with is_card = True
        """
        return list(self.blocks.find(
            {"document_id": document_id, "is_card": True},
            {"_id": 0}
        ))

    def list_active_exams(self, owner_id: str, now: int) -> list[ExamInfo]:
        """
        Get the user's non-archived exams that are still in the future.

        Args:
            owner_id: User identifier
            now: Current time (epoch ms)

        Returns:
            List of ExamInfo, soonest exam first
        """
        exams = list(self.exams.find(
            {"user_id": owner_id, "is_archived": False, "exam_date": {"$gt": now}},
            {"_id": 0}
        ))
        if not exams:
            return []

        exam_ids = [exam["exam_id"] for exam in exams]
        links = self.exam_documents.find(
            {"user_id": owner_id, "exam_id": {"$in": exam_ids}},
            {"_id": 0}
        )

        documents_by_exam = defaultdict(list)
        for link in links:
            if link["document_id"] not in documents_by_exam[link["exam_id"]]:
                documents_by_exam[link["exam_id"]].append(link["document_id"])

        result = [
            ExamInfo(
                exam_id=exam["exam_id"],
                title=exam.get("title", ""),
                exam_timestamp=exam["exam_date"],
                linked_document_ids=tuple(documents_by_exam.get(exam["exam_id"], ())),
            )
            for exam in exams
        ]
        return sorted(result, key=lambda exam: exam.exam_timestamp)

    def archive_past_exams_page(self, now: int, batch_size: int = 100) -> int:
        """
        Archive one page of exams whose date has passed.

        Returns:
            Number of exams archived in this page (0 when exhausted)
        """
        page = self.exams.find(
            {"is_archived": False, "exam_date": {"$lt": now}},
            {"_id": 0, "exam_id": 1}
        ).limit(batch_size)
        exam_ids = [exam["exam_id"] for exam in page]
        if not exam_ids:
            return 0

        self.exams.update_many(
            {"exam_id": {"$in": exam_ids}},
            {"$set": {"is_archived": True, "updated_at": now}}
        )
        return len(exam_ids)
