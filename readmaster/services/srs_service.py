# readmaster/services/srs_service.py
"""
SM-2 spaced repetition scheduling on a 1-4 rating scale.

    1 = Again  (complete blackout)
    2 = Hard   (correct with serious difficulty)
    3 = Good   (correct with some hesitation)
    4 = Easy   (perfect recall)

Pure functions, no I/O.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Dict, Iterable, Optional

from readmaster.utils.dates import start_of_day_utc, to_naive_utc, utcnow

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
MAX_EASE_FACTOR = 3.0
INITIAL_INTERVAL = 1
SECOND_INTERVAL = 6
HARD_INTERVAL_MODIFIER = 0.6
EASY_INTERVAL_MODIFIER = 1.3
EASY_BONUS = 0.15


class Rating(IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


RATING_LABELS = {
    Rating.AGAIN: "Again",
    Rating.HARD: "Hard",
    Rating.GOOD: "Good",
    Rating.EASY: "Easy",
}

# 1-4 scale onto the original SM-2 quality scale (0-5)
_QUALITY = {
    Rating.AGAIN: 0,
    Rating.HARD: 2,
    Rating.GOOD: 4,
    Rating.EASY: 5,
}


@dataclass(frozen=True)
class SrsCardState:
    ease_factor: float
    interval: int
    repetitions: int


@dataclass(frozen=True)
class SrsReviewResult:
    new_ease_factor: float
    new_interval: int
    new_repetitions: int
    next_due_date: datetime
    is_lapse: bool


def is_valid_rating(rating) -> bool:
    return isinstance(rating, int) and not isinstance(rating, bool) and 1 <= rating <= 4


def clamp_ease_factor(ease_factor: float) -> float:
    return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, ease_factor))


def calculate_new_ease_factor(current: float, rating: int) -> float:
    q = _QUALITY[Rating(rating)]
    new_ease = current + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    if rating == Rating.EASY:
        new_ease += EASY_BONUS
    return clamp_ease_factor(new_ease)


def _round_half_up(value: float) -> int:
    # round() in Python is banker's rounding; intervals round half up
    return int(value + 0.5)


def calculate_new_interval(current_interval: int, ease_factor: float, rating: int, repetitions: int) -> int:
    if rating == Rating.AGAIN:
        return INITIAL_INTERVAL

    if rating == Rating.HARD:
        if repetitions <= 1:
            return INITIAL_INTERVAL
        base = _round_half_up(current_interval * ease_factor)
        return max(1, _round_half_up(base * HARD_INTERVAL_MODIFIER))

    if repetitions == 0:
        interval = INITIAL_INTERVAL
    elif repetitions == 1:
        interval = SECOND_INTERVAL
    else:
        interval = _round_half_up(current_interval * ease_factor)

    if rating == Rating.EASY:
        interval = _round_half_up(interval * EASY_INTERVAL_MODIFIER)

    return max(1, interval)


def calculate_new_repetitions(current: int, rating: int) -> int:
    if rating <= Rating.HARD:
        return 0
    return current + 1


def calculate_next_due_date(interval: int, from_date: Optional[datetime] = None) -> datetime:
    """Due date at 00:00 UTC, ``interval`` days after ``from_date``."""
    from_date = to_naive_utc(from_date or utcnow())
    return start_of_day_utc(from_date + timedelta(days=interval))


def calculate_next_review(
    state: SrsCardState, rating: int, review_date: Optional[datetime] = None
) -> SrsReviewResult:
    if not is_valid_rating(rating):
        raise ValueError(f"Invalid rating: {rating}. Must be 1, 2, 3, or 4.")

    new_repetitions = calculate_new_repetitions(state.repetitions, rating)
    new_ease = calculate_new_ease_factor(state.ease_factor, rating)
    new_interval = calculate_new_interval(state.interval, new_ease, rating, state.repetitions)

    return SrsReviewResult(
        new_ease_factor=new_ease,
        new_interval=new_interval,
        new_repetitions=new_repetitions,
        next_due_date=calculate_next_due_date(new_interval, review_date),
        is_lapse=new_repetitions == 0 and state.repetitions > 0,
    )


def create_default_state() -> SrsCardState:
    return SrsCardState(ease_factor=DEFAULT_EASE_FACTOR, interval=0, repetitions=0)


def is_card_due(due_date: datetime, now: Optional[datetime] = None) -> bool:
    return to_naive_utc(due_date) <= to_naive_utc(now or utcnow())


def days_until_due(due_date: datetime, now: Optional[datetime] = None) -> int:
    """Negative when overdue, 0 when due within the next 24 hours."""
    delta = to_naive_utc(due_date) - to_naive_utc(now or utcnow())
    return delta.days


def calculate_retention_rate(ratings: Iterable[int]) -> int:
    """Share of successful (Good/Easy) reviews as a whole percentage."""
    ratings = list(ratings)
    if not ratings:
        return 0
    successful = sum(1 for r in ratings if r >= Rating.GOOD)
    return _round_half_up(successful / len(ratings) * 100)


def predict_next_intervals(state: SrsCardState) -> Dict[int, int]:
    return {int(r): calculate_next_review(state, int(r)).new_interval for r in Rating}


def format_interval(days: int) -> str:
    if days < 1:
        return "< 1 day"
    if days == 1:
        return "1 day"
    if days < 7:
        return f"{days} days"
    if days < 14:
        return "1 week"
    if days < 30:
        return f"{_round_half_up(days / 7)} weeks"
    if days < 60:
        return "1 month"
    if days < 365:
        return f"{_round_half_up(days / 30)} months"
    if days < 730:
        return "1 year"
    return f"{_round_half_up(days / 365)} years"
