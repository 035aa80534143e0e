from datetime import datetime, timedelta

import pytest

from mnemocards.cards.models import ReviewRecord
from mnemocards.study.scheduler import (
    MIN_EASE_FACTOR,
    Rating,
    ReviewState,
    initial_state,
    next_state,
)

NOW = datetime(2026, 3, 1, 9, 30)


def state(repetitions, ease_factor, interval_days):
    return ReviewState(repetitions=repetitions, ease_factor=ease_factor, interval_days=interval_days)


def test_good_after_two_successes_multiplies_interval_by_ease():
    result = next_state(state(2, 2.5, 6), Rating.GOOD, now=NOW)
    assert result.repetitions == 3
    assert result.interval_days == 15
    assert result.ease_factor == 2.5


def test_again_on_new_card_lowers_ease():
    result = next_state(state(0, 2.5, 1), Rating.AGAIN, now=NOW)
    assert result.repetitions == 0
    assert result.interval_days == 1
    assert result.ease_factor == pytest.approx(2.3)


@pytest.mark.parametrize("repetitions,interval", [(0, 1), (3, 40), (12, 365)])
def test_again_always_resets(repetitions, interval):
    result = next_state(state(repetitions, 2.1, interval), Rating.AGAIN, now=NOW)
    assert result.repetitions == 0
    assert result.interval_days == 1


def test_good_learning_steps():
    assert next_state(state(0, 2.5, 1), Rating.GOOD, now=NOW).interval_days == 1
    assert next_state(state(1, 2.5, 1), Rating.GOOD, now=NOW).interval_days == 6
    assert next_state(state(5, 1.8, 10), Rating.GOOD, now=NOW).interval_days == 18


def test_hard_keeps_repetitions_and_grows_interval_slowly():
    result = next_state(state(4, 2.5, 10), Rating.HARD, now=NOW)
    assert result.repetitions == 4
    assert result.interval_days == 12
    assert result.ease_factor == pytest.approx(2.35)


def test_hard_never_drops_interval_below_one_day():
    result = next_state(state(0, 2.5, 1), Rating.HARD, now=NOW)
    assert result.interval_days == 1


def test_easy_on_new_card_jumps_to_four_days():
    result = next_state(state(0, 2.5, 1), Rating.EASY, now=NOW)
    assert result.repetitions == 1
    assert result.interval_days == 4
    assert result.ease_factor == pytest.approx(2.65)


def test_easy_uses_bonus_multiplier_and_rounds_half_up():
    # 6 * 2.5 * 1.3 = 19.5
    result = next_state(state(2, 2.5, 6), Rating.EASY, now=NOW)
    assert result.interval_days == 20
    assert result.repetitions == 3


@pytest.mark.parametrize("ease", [1.3, 2.0, 2.5, 3.1])
@pytest.mark.parametrize("repetitions", [0, 1, 2, 7])
def test_easy_adds_exactly_point_one_five(ease, repetitions):
    result = next_state(state(repetitions, ease, 5), Rating.EASY, now=NOW)
    assert result.ease_factor == pytest.approx(ease + 0.15)
    assert result.repetitions >= repetitions


@pytest.mark.parametrize("rating", list(Rating))
@pytest.mark.parametrize("ease", [1.3, 1.35, 1.45, 2.5])
@pytest.mark.parametrize("repetitions,interval", [(0, 1), (1, 1), (2, 6), (9, 200)])
def test_floors_hold_for_every_rating(rating, ease, repetitions, interval):
    result = next_state(state(repetitions, ease, interval), rating, now=NOW)
    assert result.ease_factor >= MIN_EASE_FACTOR
    assert result.interval_days >= 1


def test_ease_floor_after_repeated_lapses():
    current = state(5, 2.5, 30)
    for _ in range(10):
        current = next_state(current, Rating.AGAIN, now=NOW)
    assert current.ease_factor == MIN_EASE_FACTOR


def test_due_date_is_whole_days_after_review():
    result = next_state(state(2, 2.5, 6), Rating.GOOD, now=NOW)
    assert result.next_review == NOW + timedelta(days=15)
    assert result.last_reviewed == NOW


def test_rating_accepts_plain_strings():
    result = next_state(state(1, 2.5, 1), "good", now=NOW)
    assert result.interval_days == 6


def test_unknown_rating_fails_fast():
    with pytest.raises(ValueError):
        next_state(state(1, 2.5, 1), "perfect", now=NOW)


def test_initial_state_is_due_immediately():
    fresh = initial_state(NOW)
    assert fresh == ReviewState(repetitions=0, ease_factor=2.5, interval_days=1, next_review=NOW)


def test_review_record_schedule_updates_in_place():
    review = ReviewRecord(repetitions=1, ease_factor=2.5, interval_days=1, next_review=NOW)

    result = review.schedule(Rating.GOOD, now=NOW)

    assert review.repetitions == 2
    assert review.interval_days == 6
    assert review.next_review == NOW + timedelta(days=6)
    assert review.last_reviewed == NOW
    assert result.interval_days == review.interval_days
