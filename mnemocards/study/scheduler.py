"""
Spaced repetition scheduling (SM-2 variant with four answer buttons).

The scheduler is pure: it takes the current review state and a rating and
returns the next state. Persisting the result is the caller's job.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL_DAYS = 1


class Rating(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


@dataclass(frozen=True)
class ReviewState:
    repetitions: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = DEFAULT_INTERVAL_DAYS
    next_review: Optional[datetime] = None
    last_reviewed: Optional[datetime] = None


def initial_state(now: Optional[datetime] = None) -> ReviewState:
    """State of a freshly created card: due immediately."""
    return ReviewState(next_review=now or datetime.now())


def _round(value: float) -> int:
    # Half-up: 2.5 -> 3, 19.5 -> 20
    return int(math.floor(value + 0.5))


def next_state(current: ReviewState, rating: Rating, now: Optional[datetime] = None) -> ReviewState:
    """
    Compute the scheduling parameters after a review.

    Args:
        current: State before the review
        rating: How well the card was recalled
        now: Review time (defaults to the current local time)

    Returns:
        The new ReviewState. ``next_review`` is ``now`` plus the new interval
        in whole days and ``last_reviewed`` is ``now``.

    Raises:
        ValueError: if ``rating`` is not a known Rating.
    """
    rating = Rating(rating)
    now = now or datetime.now()

    repetitions = current.repetitions
    ease = current.ease_factor
    interval = current.interval_days

    if rating is Rating.AGAIN:
        repetitions = 0
        interval = 1
        ease = ease - 0.2
    elif rating is Rating.HARD:
        interval = _round(interval * 1.2)
        ease = ease - 0.15
    elif rating is Rating.GOOD:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = 6
        else:
            interval = _round(interval * ease)
        repetitions += 1
    elif rating is Rating.EASY:
        if repetitions == 0:
            interval = 4
        else:
            interval = _round(interval * ease * 1.3)
        repetitions += 1
        ease = ease + 0.15

    ease = max(MIN_EASE_FACTOR, ease)
    interval = max(1, interval)

    return ReviewState(
        repetitions=repetitions,
        ease_factor=ease,
        interval_days=interval,
        next_review=now + timedelta(days=interval),
        last_reviewed=now,
    )
