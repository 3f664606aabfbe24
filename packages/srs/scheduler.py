"""SM-2 spaced repetition scheduler.

This module implements the per-card update rule used by study sessions.
Given a card's scheduling fields and a recall rating from 1 to 5 it
computes the next interval, repetition count, ease factor and due time.
Every function here is pure: callers pass in the rating time and receive
new values, nothing is read from a clock or written anywhere.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from enum import IntEnum

from packages.common.exceptions import InvalidCardState, InvalidRating
from packages.srs.models import (
    MIN_EASE_FACTOR,
    Card,
    SchedulingFields,
    SchedulingUpdate,
    ensure_aware,
)

# Ratings at or above this count as remembered
PASSING_RATING = 3

# Fixed intervals (days) for the first two successful reviews
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1


class Rating(IntEnum):
    """Recall quality, from total lapse to trivially easy."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def is_lapse(self) -> bool:
        return self < PASSING_RATING


def parse_rating(rating: object) -> Rating:
    """Validate a rating value.

    Args:
        rating: Candidate rating; must be an integer from 1 to 5.

    Returns:
        The matching ``Rating``.

    Raises:
        InvalidRating: If the value is not an integer in range. Booleans and
            floats are rejected even when numerically equal to a rating.
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(
            f"Rating must be an integer from 1 to 5, got {rating!r}",
            context={"rating": repr(rating)},
        )
    if not Rating.AGAIN <= rating <= Rating.PERFECT:
        raise InvalidRating(
            f"Rating must be between 1 and 5, got {rating}",
            context={"rating": rating},
        )
    return Rating(rating)


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _context_value(value: object) -> object:
    # NaN and infinities are not valid JSON
    if isinstance(value, float) and not math.isfinite(value):
        return repr(value)
    return value


def validate_state(state: SchedulingFields) -> None:
    """Check scheduler inputs against the card invariants.

    Raises:
        InvalidCardState: If the ease factor is not a finite number at or
            above the floor, or the interval or repetition count is not a
            non-negative integer.
    """
    problems: list[str] = []
    ease = state.ease_factor
    if isinstance(ease, bool) or not isinstance(ease, int | float) or not math.isfinite(ease):
        problems.append(f"ease_factor {ease!r} is not a finite number")
    elif ease < MIN_EASE_FACTOR:
        problems.append(f"ease_factor {ease} < {MIN_EASE_FACTOR}")
    for name in ("interval", "repetition"):
        value = getattr(state, name)
        if not _is_count(value):
            problems.append(f"{name} {value!r} is not an integer")
        elif value < 0:
            problems.append(f"{name} {value} < 0")
    if problems:
        raise InvalidCardState(
            "Invalid scheduling state: " + "; ".join(problems),
            context={
                "interval": _context_value(state.interval),
                "repetition": _context_value(state.repetition),
                "ease_factor": _context_value(state.ease_factor),
            },
        )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (12.5 -> 13)."""
    return math.floor(value + 0.5)


def next_ease_factor(ease_factor: float, rating: int) -> float:
    """Adjust the ease factor for a rating, floored at ``MIN_EASE_FACTOR``.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    """
    distance = Rating.PERFECT - rating
    adjusted = ease_factor + (0.1 - distance * (0.08 + distance * 0.02))
    return max(MIN_EASE_FACTOR, adjusted)


def schedule_next(state: SchedulingFields, rating: int, now: datetime) -> SchedulingUpdate:
    """Compute the next scheduling state after a review.

    Algorithm:
    - Rating < 3 (lapse): repetition resets to 0, interval becomes 1 day
    - Rating >= 3 with no prior streak: interval 1 day
    - Rating >= 3 after one success: interval 6 days
    - Otherwise: interval = round(prior interval * prior ease factor)
    - Ease factor is adjusted for every rating, never below 1.3

    Args:
        state: Prior interval, repetition and ease factor (a ``Card`` works).
        rating: Recall quality, 1 (again) to 5 (perfect).
        now: Time the rating was submitted; the next review is due
            ``interval`` days after it.

    Returns:
        SchedulingUpdate with the new interval, repetition, ease factor
        and next review time.

    Raises:
        InvalidRating: If rating is outside 1-5.
        InvalidCardState: If the prior state violates the card invariants.
    """
    quality = parse_rating(rating)
    validate_state(state)

    if quality.is_lapse:
        interval = LAPSE_INTERVAL_DAYS
        repetition = 0
    else:
        if state.repetition == 0:
            interval = FIRST_INTERVAL_DAYS
        elif state.repetition == 1:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = round_half_up(state.interval * state.ease_factor)
        repetition = state.repetition + 1

    return SchedulingUpdate(
        interval=interval,
        repetition=repetition,
        ease_factor=next_ease_factor(state.ease_factor, quality),
        next_review_at=ensure_aware(now) + timedelta(days=interval),
    )


def preview_intervals(state: SchedulingFields, now: datetime) -> dict[Rating, SchedulingUpdate]:
    """Return the update each rating would produce, keyed by rating."""
    return {rating: schedule_next(state, rating, now) for rating in Rating}


def apply_update(card: Card, update: SchedulingUpdate) -> Card:
    """Return a copy of ``card`` carrying the new scheduling fields."""
    return card.model_copy(
        update={
            "interval": update.interval,
            "repetition": update.repetition,
            "ease_factor": update.ease_factor,
            "next_review_at": update.next_review_at,
        }
    )


def review_card(card: Card, rating: int, now: datetime) -> Card:
    """Schedule ``card`` for ``rating`` at ``now`` and return the updated card."""
    return apply_update(card, schedule_next(card, rating, now))
