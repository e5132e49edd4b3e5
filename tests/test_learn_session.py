import pytest

from srs_engine.errors import InvalidArgument
from srs_engine.fsrs.constants import DAY_MS
from srs_engine.session_builders import (
    QueueConfig,
    SessionLimits,
    build_due_queue,
    build_learn_queue,
    build_new_queue,
)

from conftest import NOW, make_card, make_review_card


def seed(card_repo, content_repo, card, document_id="d1", **block_fields):
    """Store a card and (unless told otherwise) a matching flashcard block."""
    if block_fields.pop("with_block", True):
        content_repo.add_block(card.block_id, document_id, user_id=card.owner_id, **block_fields)
    card_repo.put_card(card)
    return card


def ids(queue):
    return [entry.card_id for entry in queue]


@pytest.fixture
def exam_setup(card_repo, content_repo):
    """Exam in two days on 'exam-doc' (4 cards -> 3-day period, so active)."""
    content_repo.add_document("exam-doc", title="Biology")
    content_repo.add_exam("x1", NOW + 2 * DAY_MS, ["exam-doc"])

    seed(card_repo, content_repo, make_review_card("e_due", days_since_review=1), "exam-doc")
    seed(card_repo, content_repo, make_review_card("e_overdue", days_since_review=20), "exam-doc")
    seed(card_repo, content_repo, make_card("e_new1"), "exam-doc")
    seed(card_repo, content_repo, make_card("e_new2"), "exam-doc")

    seed(card_repo, content_repo, make_review_card("r_due", stability=5.0, days_since_review=8))
    seed(card_repo, content_repo, make_review_card("r_future", days_since_review=1))
    seed(card_repo, content_repo, make_card("r_new"))


# ---- Global, exam-aware ----

def test_queue_order_with_active_exam(card_repo, content_repo, exam_setup):
    queue = build_learn_queue("u1", card_repo, content_repo, now=NOW)

    assert ids(queue) == ["e_overdue", "e_due", "r_due", "e_new1", "e_new2", "r_new"]
    assert [e.bucket for e in queue] == [
        "exam_due", "exam_due", "regular_due", "exam_new", "exam_new", "regular_new",
    ]
    assert [e.is_exam_card for e in queue] == [True, True, False, True, True, False]


def test_queue_entries_are_decorated(card_repo, content_repo, exam_setup):
    queue = build_learn_queue("u1", card_repo, content_repo, now=NOW)
    entry = queue[0]

    assert entry.document == {"document_id": "exam-doc", "title": "Biology"}
    assert entry.block["block_id"] == entry.card.block_id
    assert set(entry.interval_previews) == {"again", "hard", "good", "easy"}
    assert 0.0 < entry.retrievability < 1.0
    assert queue[-1].retrievability == 0.0


def test_queue_never_repeats_a_card(card_repo, content_repo, exam_setup):
    queue = build_learn_queue("u1", card_repo, content_repo, now=NOW)
    assert len(ids(queue)) == len(set(ids(queue)))


def test_exam_outside_period_is_not_prioritized(card_repo, content_repo, exam_setup):
    content_repo.exams["x1"]["exam_date"] = NOW + 20 * DAY_MS
    queue = build_learn_queue("u1", card_repo, content_repo, now=NOW)

    assert "e_due" not in ids(queue)
    assert ids(queue)[:2] == ["e_overdue", "r_due"]
    assert not any(e.is_exam_card for e in queue)


def test_exam_awareness_can_be_disabled(card_repo, content_repo, exam_setup):
    queue = build_learn_queue(
        "u1", card_repo, content_repo,
        config=QueueConfig.global_session(exam_aware=False),
        now=NOW,
    )
    assert not any(e.is_exam_card for e in queue)
    assert "e_due" not in ids(queue)


def test_exam_due_capped(card_repo, content_repo, exam_setup):
    queue = build_learn_queue("u1", card_repo, content_repo, limits=SessionLimits(exam_limit=1), now=NOW)
    assert [e.card_id for e in queue if e.bucket == "exam_due"] == ["e_overdue"]


# ---- New-card sizing ----

def test_exam_new_cards_use_up_new_limit(card_repo, content_repo):
    content_repo.add_document("exam-doc")
    content_repo.add_exam("x1", NOW + DAY_MS, ["exam-doc"])
    for i in range(5):
        seed(card_repo, content_repo, make_card(f"e{i}"), "exam-doc")
    for i in range(3):
        seed(card_repo, content_repo, make_card(f"r{i}"))

    queue = build_learn_queue("u1", card_repo, content_repo, limits=SessionLimits(new_limit=3), now=NOW)

    assert ids(queue) == ["e0", "e1", "e2"]


def test_regular_new_fills_remaining_slots(card_repo, content_repo):
    content_repo.add_document("exam-doc")
    content_repo.add_exam("x1", NOW + DAY_MS, ["exam-doc"])
    seed(card_repo, content_repo, make_card("e0"), "exam-doc")
    for i in range(5):
        seed(card_repo, content_repo, make_card(f"r{i}", due=NOW - i))

    queue = build_learn_queue("u1", card_repo, content_repo, limits=SessionLimits(new_limit=3), now=NOW)

    assert ids(queue) == ["e0", "r4", "r3"]


# ---- Exclusions ----

def test_suspended_cards_excluded(card_repo, content_repo):
    seed(card_repo, content_repo, make_review_card("due", days_since_review=20, suspended=True))
    seed(card_repo, content_repo, make_card("new", suspended=True))
    seed(card_repo, content_repo, make_card("ok"))

    assert ids(build_learn_queue("u1", card_repo, content_repo, now=NOW)) == ["ok"]


def test_cards_with_missing_or_disabled_content_dropped(card_repo, content_repo, caplog):
    seed(card_repo, content_repo, make_card("gone"), with_block=False)
    seed(card_repo, content_repo, make_card("disabled"), card_direction="disabled")
    seed(card_repo, content_repo, make_card("plain"), is_card=False)
    seed(card_repo, content_repo, make_card("ok"))

    with caplog.at_level("WARNING"):
        queue = build_learn_queue("u1", card_repo, content_repo, now=NOW)

    assert ids(queue) == ["ok"]
    assert "Dropped 3" in caplog.text


def test_other_users_cards_excluded(card_repo, content_repo):
    seed(card_repo, content_repo, make_card("mine"))
    seed(card_repo, content_repo, make_card("theirs", owner_id="u2"))

    assert ids(build_learn_queue("u1", card_repo, content_repo, now=NOW)) == ["mine"]


# ---- Ordering and scope ----

@pytest.fixture
def two_due_cards(card_repo, content_repo):
    """'steady' is due earlier but is better remembered than 'shaky'."""
    content_repo.add_document("d2")
    seed(card_repo, content_repo, make_review_card("steady", stability=100.0, days_since_review=120))
    seed(card_repo, content_repo, make_review_card("shaky", stability=2.0, days_since_review=5))
    seed(card_repo, content_repo, make_review_card("elsewhere", stability=2.0, days_since_review=9), "d2")


def test_global_due_sorted_by_retrievability(card_repo, content_repo, two_due_cards):
    queue = build_learn_queue("u1", card_repo, content_repo, now=NOW)
    assert ids(queue) == ["elsewhere", "shaky", "steady"]


def test_review_limit_keeps_earliest_due(card_repo, content_repo, two_due_cards):
    queue = build_learn_queue("u1", card_repo, content_repo, limits=SessionLimits(review_limit=1), now=NOW)
    assert ids(queue) == ["steady"]


def test_document_scope_sorted_by_due(card_repo, content_repo, two_due_cards):
    queue = build_learn_queue("u1", card_repo, content_repo, config=QueueConfig.for_document("d1"), now=NOW)
    assert ids(queue) == ["steady", "shaky"]


def test_document_scope_requires_document_id():
    with pytest.raises(InvalidArgument):
        QueueConfig(scope="document")


def test_document_scope_is_never_exam_aware():
    assert QueueConfig(scope="document", document_id="d1").exam_aware is False


@pytest.mark.parametrize("limits", [
    {"new_limit": -1},
    {"review_limit": 2.5},
    {"exam_limit": True},
])
def test_invalid_limits(limits):
    with pytest.raises(InvalidArgument):
        SessionLimits(**limits)


# ---- Single-bucket variants ----

def test_due_queue(card_repo, content_repo, two_due_cards):
    seed(card_repo, content_repo, make_card("new"))
    queue = build_due_queue("u1", card_repo, content_repo, limit=2, now=NOW)

    assert ids(queue) == ["elsewhere", "steady"]


def test_new_queue(card_repo, content_repo, two_due_cards):
    seed(card_repo, content_repo, make_card("n2", due=NOW - 1))
    seed(card_repo, content_repo, make_card("n1", due=NOW - 2))
    seed(card_repo, content_repo, make_card("n3", due=NOW))

    queue = build_new_queue("u1", card_repo, content_repo, limit=2, now=NOW)

    assert ids(queue) == ["n1", "n2"]
    assert all(e.retrievability == 0.0 for e in queue)
