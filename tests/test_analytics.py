import pandas as pd
import pytest

from srs_engine.analytics import (
    build_study_stats,
    cards_in_difficulty_bucket,
    difficulty_distribution,
)
from srs_engine.analytics.metrics import assign_difficulty_bucket
from srs_engine.analytics.service import start_of_day
from srs_engine.errors import InvalidArgument
from srs_engine.fsrs.constants import DAY_MS, CardStatus, Rating
from srs_engine.fsrs.memory_state import ReviewLogEntry

from conftest import NOW, make_card, make_review_card


def log_review(card_repo, card_id, rating, reviewed_at):
    card_repo.append_review_log(ReviewLogEntry(
        card_id=card_id,
        owner_id="u1",
        rating=rating,
        state=CardStatus.REVIEW,
        scheduled_days=1,
        elapsed_days=1,
        stability=1.0,
        difficulty=5.0,
        reviewed_at=reviewed_at,
    ))


def test_start_of_day_is_utc_midnight():
    assert start_of_day(NOW) == 1_699_920_000_000
    assert start_of_day(start_of_day(NOW)) == start_of_day(NOW)


# ---- Study stats ----

def test_stats_for_empty_deck(card_repo):
    stats = build_study_stats(card_repo, "u1", now=NOW)

    assert stats.total_cards == 0
    assert stats.due_now == 0
    assert stats.reviewed_today == 0
    assert stats.retention_rate is None


def test_stats_counts(card_repo):
    card_repo.put_card(make_card("new1"))
    card_repo.put_card(make_card("learn", state="learning", due=NOW - 1, last_review=NOW - 60_000))
    card_repo.put_card(make_card("relearn", state="relearning", due=NOW + 60_000, last_review=NOW))
    card_repo.put_card(make_review_card("overdue", days_since_review=20))
    card_repo.put_card(make_review_card("later", days_since_review=1))
    card_repo.put_card(make_card("theirs", owner_id="u2"))

    stats = build_study_stats(card_repo, "u1", now=NOW)

    assert stats.total_cards == 5
    assert (stats.new_cards, stats.learning_cards, stats.review_cards) == (1, 2, 2)
    assert stats.due_now == 2


def test_stats_retention_counts_only_today(card_repo):
    day_start = start_of_day(NOW)
    log_review(card_repo, "c1", Rating.AGAIN, day_start - 1)
    log_review(card_repo, "c1", Rating.GOOD, day_start)
    log_review(card_repo, "c2", Rating.EASY, NOW)
    log_review(card_repo, "c3", Rating.HARD, NOW)

    stats = build_study_stats(card_repo, "u1", now=NOW)

    assert stats.reviewed_today == 3
    assert stats.retention_rate == 67


def test_stats_custom_day_start(card_repo):
    log_review(card_repo, "c1", Rating.AGAIN, NOW - 2 * DAY_MS)
    log_review(card_repo, "c1", Rating.GOOD, NOW)

    stats = build_study_stats(card_repo, "u1", now=NOW, day_start=NOW - 3 * DAY_MS)

    assert stats.reviewed_today == 2
    assert stats.retention_rate == 50


# ---- Difficulty buckets ----

def test_assign_difficulty_bucket_rounds_half_up():
    df = pd.DataFrame({"difficulty": [0.0, 1.0, 2.49, 2.5, 6.5, 10.0]})
    assert list(assign_difficulty_bucket(df)) == [None, "1-2", "1-2", "3-4", "7-8", "9-10"]


def test_difficulty_distribution(card_repo):
    card_repo.put_card(make_card("new"))
    card_repo.put_card(make_review_card("easy", difficulty=1.2))
    card_repo.put_card(make_review_card("mid", difficulty=5.4))
    card_repo.put_card(make_review_card("mid2", difficulty=6.4))
    card_repo.put_card(make_review_card("hard", difficulty=9.6))
    card_repo.put_card(make_review_card("hidden", difficulty=9.6, suspended=True))

    assert difficulty_distribution(card_repo, "u1") == {
        "1-2": 1, "3-4": 0, "5-6": 2, "7-8": 0, "9-10": 1,
    }


def test_cards_in_bucket_sorted_by_lapses_then_due(card_repo):
    card_repo.put_card(make_review_card("a", difficulty=5.0, lapses=1, days_since_review=3))
    card_repo.put_card(make_review_card("b", difficulty=6.0, lapses=4))
    card_repo.put_card(make_review_card("c", difficulty=5.5, lapses=1, days_since_review=8))
    card_repo.put_card(make_review_card("other", difficulty=2.0, lapses=9))

    page = cards_in_difficulty_bucket(card_repo, "u1", "5-6")

    assert page.total == 3
    assert [c.card_id for c in page.cards] == ["b", "c", "a"]


def test_cards_in_bucket_limit(card_repo):
    for i in range(4):
        card_repo.put_card(make_review_card(f"c{i}", difficulty=9.0, lapses=i))

    page = cards_in_difficulty_bucket(card_repo, "u1", "9-10", limit=2)

    assert page.total == 4
    assert [c.card_id for c in page.cards] == ["c3", "c2"]


def test_cards_in_bucket_empty(card_repo):
    page = cards_in_difficulty_bucket(card_repo, "u1", "1-2")
    assert (page.total, page.cards) == (0, [])


def test_unknown_bucket(card_repo):
    with pytest.raises(InvalidArgument):
        cards_in_difficulty_bucket(card_repo, "u1", "11-12")
