import math

import pytest

from srs_engine.errors import InvalidArgument
from srs_engine.exam_scheduling import (
    count_cards_from_blocks,
    days_until,
    exam_window,
    is_in_retrievability_period,
    retrievability_period_days,
    retrievability_period_start,
)
from srs_engine.fsrs.constants import DAY_MS

from conftest import NOW


@pytest.mark.parametrize("card_count, days", [
    (0, 3),
    (20, 4),
    (100, 8),
    (500, 28),
    (540, 30),
    (1000, 30),
    (-50, 3),
])
def test_retrievability_period_days(card_count, days):
    assert retrievability_period_days(card_count) == days


def test_period_never_exceeds_cap():
    assert all(retrievability_period_days(n) <= 30 for n in range(0, 5000, 7))


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_card_count_rejected(bad):
    with pytest.raises(InvalidArgument):
        retrievability_period_days(bad)


def test_window_is_half_open():
    exam_at = NOW + 10 * DAY_MS
    start = retrievability_period_start(exam_at, 100)

    assert start == exam_at - 8 * DAY_MS
    assert not is_in_retrievability_period(exam_at, 100, start - 1)
    assert is_in_retrievability_period(exam_at, 100, start)
    assert is_in_retrievability_period(exam_at, 100, exam_at - 1)
    assert not is_in_retrievability_period(exam_at, 100, exam_at)


def test_exam_window():
    window = exam_window(NOW, 20)
    assert window.period_days == 4
    assert window.contains(NOW - DAY_MS)
    assert not window.contains(NOW)


def test_days_until_rounds_up():
    assert days_until(NOW + DAY_MS, NOW) == 1
    assert days_until(NOW + DAY_MS + 1, NOW) == 2
    assert days_until(NOW - DAY_MS // 2, NOW) == 0
    assert days_until(NOW - 3 * DAY_MS, NOW) == -3


def test_count_cards_from_blocks():
    blocks = [
        {"card_direction": "forward"},
        {"card_direction": "reverse"},
        {"card_direction": "bidirectional"},
        {"card_direction": "disabled"},
        {"card_direction": None},
        {},
    ]
    assert count_cards_from_blocks(blocks) == 4
