import math

import pytest

from srs_engine.fsrs.constants import DAY_MS, CardStatus
from srs_engine.fsrs.intervals import (
    format_interval,
    fuzz_range,
    next_interval,
    order_review_intervals,
)
from srs_engine.fsrs.memory_state import (
    CardSnapshot,
    create_initial,
    forgetting_curve,
    is_due,
    retrievability,
)

from conftest import NOW, make_card, make_review_card


# ---- Retrievability ----

def test_new_card_has_zero_retrievability():
    card = create_initial(NOW, card_id="c1")
    for offset in (-DAY_MS, 0, DAY_MS, 1000 * DAY_MS):
        assert retrievability(card, NOW + offset) == 0.0


def test_retrievability_is_target_at_due():
    card = make_review_card("c1", stability=10.0, days_since_review=0)
    assert retrievability(card, card.due) == pytest.approx(0.9, abs=1e-9)


def test_retrievability_strictly_decreases_around_due():
    card = make_review_card("c1", stability=10.0, days_since_review=0)
    offsets = [-5, -2, -1, 0, 1, 2, 5]
    values = [retrievability(card, card.due + d * DAY_MS) for d in offsets]

    assert all(a > b for a, b in zip(values, values[1:]))


@pytest.mark.parametrize("stability", [0.0, 1e-9, 0.5, 36500.0])
@pytest.mark.parametrize("elapsed", [-10.0, 0.0, 1.0, 1e6])
def test_forgetting_curve_bounds(stability, elapsed):
    r = forgetting_curve(elapsed, stability)
    assert not math.isnan(r)
    assert 0.0 <= r <= 1.0


def test_retrievability_without_last_review_uses_schedule():
    card = make_review_card("c1", stability=10.0, days_since_review=0)
    card.last_review = None
    assert retrievability(card, card.due) == pytest.approx(0.9, abs=1e-9)


def test_is_due():
    card = make_card("c1", due=NOW)
    assert is_due(card, NOW)
    assert not is_due(card, NOW - 1)


def test_create_initial_defaults():
    card = create_initial(NOW, card_id="c1", owner_id="u1", block_id="b1", direction="reverse")
    assert card.state == CardStatus.NEW
    assert (card.stability, card.difficulty, card.reps, card.lapses) == (0.0, 0.0, 0, 0)
    assert card.due == NOW
    assert card.last_review is None
    assert card.direction == "reverse"


def test_snapshot_round_trip_through_dict():
    card = make_review_card("c1", step=None, lapses=2)
    snapshot = CardSnapshot.from_card(card)
    restored = CardSnapshot.from_dict(snapshot.to_dict())

    assert restored == snapshot
    assert restored.state == CardStatus.REVIEW


# ---- Intervals ----

@pytest.mark.parametrize("days, expected", [
    (59 / 1440, "59m"),
    (60 / 1440, "1h"),
    (23 / 24, "23h"),
    (1, "1d"),
    (6, "6d"),
    (7, "1w"),
    (29, "4w"),
    (30, "1mo"),
    (364, "12mo"),
    (365, "1y"),
    (547.5, "1.5y"),
])
def test_format_interval_boundaries(days, expected):
    assert format_interval(days) == expected


@pytest.mark.parametrize("days, expected", [
    (59.6 / 1440, "1h"),
    (0.9999, "1d"),
    (6.6, "1w"),
    (29.6, "1mo"),
    (364.7, "1y"),
])
def test_format_interval_rounds_into_next_unit(days, expected):
    assert format_interval(days) == expected


def test_next_interval_rounds_and_caps():
    assert next_interval(0.2) == 1
    assert next_interval(2.5) == 3
    assert next_interval(10.4) == 10
    assert next_interval(5000) == 730


def test_fuzz_range_grows_with_interval():
    low_min, low_max = fuzz_range(5, 0)
    high_min, high_max = fuzz_range(100, 0)

    assert low_min <= 5 <= low_max
    assert high_min <= 100 <= high_max
    assert (high_max - high_min) > (low_max - low_min)


def test_order_review_intervals():
    assert order_review_intervals(5, 5, 5) == (5, 6, 7)
    assert order_review_intervals(9, 4, 20) == (4, 5, 20)
    assert order_review_intervals(730, 730, 730) == (730, 730, 730)
