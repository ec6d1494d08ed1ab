from datetime import datetime, timezone

import pytest

from readmaster.services.srs_service import (
    MIN_EASE_FACTOR,
    RATING_LABELS,
    Rating,
    SrsCardState,
    calculate_next_due_date,
    calculate_next_review,
    calculate_retention_rate,
    create_default_state,
    days_until_due,
    format_interval,
    is_card_due,
    is_valid_rating,
    predict_next_intervals,
)

REVIEWED_AT = datetime(2026, 5, 1, 15, 30)


def review(state, rating):
    result = calculate_next_review(state, rating, REVIEWED_AT)
    return result, SrsCardState(result.new_ease_factor, result.new_interval, result.new_repetitions)


def test_good_progression_is_1_6_then_interval_times_ease():
    state = create_default_state()

    first, state = review(state, 3)
    second, state = review(state, 3)
    third, state = review(state, 3)

    assert [first.new_interval, second.new_interval, third.new_interval] == [1, 6, 15]
    assert third.new_repetitions == 3
    assert third.new_ease_factor == pytest.approx(2.5)


def test_again_resets_and_lowers_ease():
    result = calculate_next_review(SrsCardState(2.5, 15, 3), 1, REVIEWED_AT)

    assert result.new_interval == 1
    assert result.new_repetitions == 0
    assert result.new_ease_factor == pytest.approx(1.7)
    assert result.is_lapse


def test_ease_never_drops_below_minimum():
    state = create_default_state()
    for _ in range(10):
        _, state = review(state, 1)
    assert state.ease_factor == MIN_EASE_FACTOR


def test_easy_adds_bonus_and_stretches_interval():
    result = calculate_next_review(SrsCardState(2.5, 6, 2), 4, REVIEWED_AT)

    assert result.new_ease_factor == pytest.approx(2.75)
    # round(6 * 2.75) = 17 (16.5 rounds up), then * 1.3 = 22.1
    assert result.new_interval == 22


def test_easy_ease_is_capped():
    result = calculate_next_review(SrsCardState(2.95, 10, 4), 4, REVIEWED_AT)
    assert result.new_ease_factor == 3.0


def test_hard_on_mature_card_shrinks_interval():
    result = calculate_next_review(SrsCardState(2.5, 15, 3), 2, REVIEWED_AT)

    assert result.new_ease_factor == pytest.approx(2.18)
    # round(15 * 2.18) = 33, round(33 * 0.6) = 20
    assert result.new_interval == 20
    assert result.new_repetitions == 0


def test_hard_on_young_card_is_one_day():
    result = calculate_next_review(SrsCardState(2.5, 1, 1), 2, REVIEWED_AT)
    assert result.new_interval == 1
    assert not calculate_next_review(create_default_state(), 2, REVIEWED_AT).is_lapse


def test_due_date_is_midnight_utc():
    assert calculate_next_due_date(6, REVIEWED_AT) == datetime(2026, 5, 7)
    aware = datetime(2026, 5, 1, 23, 0, tzinfo=timezone.utc)
    assert calculate_next_due_date(1, aware) == datetime(2026, 5, 2)


@pytest.mark.parametrize("rating", [0, 5, -1, 2.5, "3", True, None])
def test_invalid_ratings_are_rejected(rating):
    assert not is_valid_rating(rating)
    with pytest.raises(ValueError):
        calculate_next_review(create_default_state(), rating)


def test_due_helpers():
    now = datetime(2026, 5, 10, 12, 0)
    assert is_card_due(datetime(2026, 5, 10), now)
    assert not is_card_due(datetime(2026, 5, 11), now)
    assert days_until_due(datetime(2026, 5, 13, 12, 0), now) == 3
    assert days_until_due(datetime(2026, 5, 9), now) == -2


def test_retention_rate():
    assert calculate_retention_rate([]) == 0
    assert calculate_retention_rate([3, 4, 1, 2]) == 50
    assert calculate_retention_rate([3, 3, 4]) == 100


def test_predict_next_intervals_for_new_card():
    assert predict_next_intervals(create_default_state()) == {1: 1, 2: 1, 3: 1, 4: 1}


@pytest.mark.parametrize("days,label", [
    (0, "< 1 day"),
    (1, "1 day"),
    (4, "4 days"),
    (10, "1 week"),
    (21, "3 weeks"),
    (45, "1 month"),
    (90, "3 months"),
    (400, "1 year"),
    (1095, "3 years"),
])
def test_format_interval(days, label):
    assert format_interval(days) == label


def test_every_rating_has_a_label():
    assert [RATING_LABELS[r] for r in Rating] == ["Again", "Hard", "Good", "Easy"]
