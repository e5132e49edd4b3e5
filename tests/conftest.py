from __future__ import annotations

import pytest

from srs_engine.content_repo import ExamInfo
from srs_engine.fsrs.constants import DAY_MS, CardStatus
from srs_engine.fsrs.database import CardRepository
from srs_engine.fsrs.memory_state import CardMemoryState
from srs_engine.review_processor import ReviewProcessor
from srs_engine.study_service import StudyService

# Fixed clock for deterministic tests (2023-11-14T22:13:20Z)
NOW = 1_700_000_000_000


class FakeContentRepository:
    """In-memory stand-in for MongoContentRepository."""

    def __init__(self):
        self.blocks: dict[str, dict] = {}
        self.documents: dict[str, dict] = {}
        self.exams: dict[str, dict] = {}
        self.exam_links: list[dict] = []

    # ---- Seeding ----

    def add_document(self, document_id, user_id="u1", title=None):
        self.documents[document_id] = {
            "document_id": document_id,
            "user_id": user_id,
            "title": title or f"Doc {document_id}",
        }

    def add_block(self, block_id, document_id="d1", user_id="u1",
                  card_direction="forward", card_type="basic", is_card=True):
        self.blocks[block_id] = {
            "block_id": block_id,
            "user_id": user_id,
            "document_id": document_id,
            "is_card": is_card,
            "card_direction": card_direction,
            "card_type": card_type,
            "text": f"front {block_id} >> back",
        }

    def add_exam(self, exam_id, exam_date, document_ids, user_id="u1", is_archived=False):
        self.exams[exam_id] = {
            "exam_id": exam_id,
            "user_id": user_id,
            "title": f"Exam {exam_id}",
            "exam_date": exam_date,
            "is_archived": is_archived,
        }
        for document_id in document_ids:
            self.exam_links.append({"exam_id": exam_id, "document_id": document_id, "user_id": user_id})

    # ---- Repository API ----

    def get_block(self, block_id):
        return self.blocks.get(block_id)

    def get_blocks(self, block_ids):
        return {bid: self.blocks[bid] for bid in set(block_ids) if bid in self.blocks}

    def get_documents(self, document_ids):
        return {did: self.documents[did] for did in set(document_ids) if did in self.documents}

    def list_reviewable_content_units(self, document_id):
        return [b for b in self.blocks.values() if b["document_id"] == document_id and b["is_card"]]

    def list_active_exams(self, owner_id, now):
        result = []
        for exam in self.exams.values():
            if exam["user_id"] != owner_id or exam["is_archived"] or exam["exam_date"] <= now:
                continue
            linked = tuple(
                link["document_id"] for link in self.exam_links
                if link["exam_id"] == exam["exam_id"]
            )
            result.append(ExamInfo(exam["exam_id"], exam["title"], exam["exam_date"], linked))
        return sorted(result, key=lambda e: e.exam_timestamp)

    def archive_past_exams_page(self, now, batch_size=100):
        page = [e for e in self.exams.values() if not e["is_archived"] and e["exam_date"] < now][:batch_size]
        for exam in page:
            exam["is_archived"] = True
            exam["updated_at"] = now
        return len(page)


def make_card(card_id, block_id=None, owner_id="u1", direction="forward", **fields) -> CardMemoryState:
    """Card state with sensible defaults (new, due at NOW)."""
    values = {
        "card_id": card_id,
        "owner_id": owner_id,
        "block_id": block_id or f"b-{card_id}",
        "direction": direction,
        "due": NOW,
    }
    values.update(fields)
    return CardMemoryState(**values)


def make_review_card(card_id, block_id=None, stability=10.0, days_since_review=5, **fields) -> CardMemoryState:
    """Review-state card last reviewed `days_since_review` days before NOW."""
    last_review = NOW - int(days_since_review * DAY_MS)
    values = {
        "state": CardStatus.REVIEW,
        "stability": stability,
        "difficulty": 5.0,
        "last_review": last_review,
        "due": last_review + int(round(stability)) * DAY_MS,
        "scheduled_days": int(round(stability)),
        "reps": 3,
    }
    values.update(fields)
    return make_card(card_id, block_id=block_id, **values)


@pytest.fixture(autouse=True)
def no_fuzz(monkeypatch):
    """Deterministic intervals unless a test turns fuzz back on."""
    monkeypatch.setenv("SRS_ENABLE_FUZZ", "false")


@pytest.fixture
def card_repo():
    repo = CardRepository.from_url("sqlite://")
    repo.init_db()
    yield repo
    repo.engine.dispose()


@pytest.fixture
def content_repo():
    content = FakeContentRepository()
    content.add_document("d1")
    return content


@pytest.fixture
def processor(card_repo):
    return ReviewProcessor(card_repo, enable_fuzz=False)


@pytest.fixture
def service(card_repo, content_repo, processor):
    return StudyService(card_repo, content_repo, processor)
