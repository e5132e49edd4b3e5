from unittest.mock import MagicMock

from srs_engine.fsrs.constants import DAY_MS
from srs_engine.maintenance import archive_past_exams, is_orphaned, purge_orphaned_card_states

from conftest import NOW, make_card


# ---- Exam archiving ----

def test_archive_repeats_until_short_page():
    content = MagicMock()
    content.archive_past_exams_page.side_effect = [100, 100, 7]

    assert archive_past_exams(content, now=NOW) == 207
    assert content.archive_past_exams_page.call_count == 3
    content.archive_past_exams_page.assert_called_with(NOW, 100)


def test_archive_only_past_exams(content_repo):
    content_repo.add_exam("old1", NOW - DAY_MS, ["d1"])
    content_repo.add_exam("old2", NOW - 2 * DAY_MS, ["d1"])
    content_repo.add_exam("old3", NOW - 3 * DAY_MS, ["d1"])
    content_repo.add_exam("next", NOW + DAY_MS, ["d1"])

    assert archive_past_exams(content_repo, now=NOW, batch_size=2) == 3
    assert not content_repo.exams["next"]["is_archived"]
    assert all(content_repo.exams[x]["is_archived"] for x in ("old1", "old2", "old3"))
    assert archive_past_exams(content_repo, now=NOW, batch_size=2) == 0


# ---- Orphan purge ----

def test_is_orphaned():
    forward = make_card("c1")
    reverse = make_card("c2", direction="reverse")

    assert is_orphaned(forward, None)
    assert is_orphaned(forward, {"is_card": True, "card_direction": "disabled"})
    assert is_orphaned(reverse, {"is_card": True, "card_direction": "forward"})
    assert is_orphaned(reverse, {"is_card": True, "card_direction": "bidirectional", "card_type": "cloze"})
    assert not is_orphaned(reverse, {"is_card": True, "card_direction": "bidirectional"})


def seed_orphans(card_repo, content_repo):
    content_repo.add_block("b-keep")
    content_repo.add_block("b-off", card_direction="disabled")
    content_repo.add_block("b-fwd")
    card_repo.put_card(make_card("keep", block_id="b-keep"))
    card_repo.put_card(make_card("gone", block_id="b-missing"))
    card_repo.put_card(make_card("off", block_id="b-off"))
    card_repo.put_card(make_card("rev", block_id="b-fwd", direction="reverse"))


def test_purge_orphaned_card_states(card_repo, content_repo):
    seed_orphans(card_repo, content_repo)

    assert purge_orphaned_card_states(card_repo, content_repo, batch_size=2) == 3
    assert [c.card_id for c in card_repo.list_cards_page(None, 10)] == ["keep"]


def test_purge_dry_run_deletes_nothing(card_repo, content_repo):
    seed_orphans(card_repo, content_repo)

    assert purge_orphaned_card_states(card_repo, content_repo, batch_size=2, dry_run=True) == 3
    assert len(card_repo.list_cards_page(None, 10)) == 4
