"""Tests for the SM-2 scheduler."""

from datetime import UTC, datetime, timedelta

import pytest

from packages.common.exceptions import InvalidCardState, InvalidRating
from packages.srs import (
    MIN_EASE_FACTOR,
    Card,
    Rating,
    SchedulingState,
    apply_update,
    parse_rating,
    preview_intervals,
    review_card,
    schedule_next,
)
from packages.srs.scheduler import next_ease_factor, round_half_up

T = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

PRIOR_STATES = [
    SchedulingState(interval=0, repetition=0, ease_factor=2.5),
    SchedulingState(interval=1, repetition=1, ease_factor=2.5),
    SchedulingState(interval=6, repetition=2, ease_factor=2.5),
    SchedulingState(interval=15, repetition=3, ease_factor=1.3),
    SchedulingState(interval=40, repetition=7, ease_factor=3.1),
    SchedulingState(interval=4, repetition=3, ease_factor=1.36),
]


class TestScenarios:
    """Worked examples."""

    def test_third_success_compounds(self) -> None:
        """6 days at ease 2.5 rated 4 grows to 15 days, ease unchanged."""
        state = SchedulingState(interval=6, repetition=2, ease_factor=2.5)
        update = schedule_next(state, 4, T)

        assert update.interval == 15
        assert update.repetition == 3
        assert update.ease_factor == pytest.approx(2.5)
        assert update.next_review_at == T + timedelta(days=15)

    def test_lapse_at_floor_stays_clamped(self) -> None:
        """Rating 1 at ease 1.3 resets progress and keeps ease at the floor."""
        state = SchedulingState(interval=4, repetition=3, ease_factor=1.3)
        update = schedule_next(state, 1, T)

        assert update.interval == 1
        assert update.repetition == 0
        assert update.ease_factor == MIN_EASE_FACTOR
        assert update.next_review_at == T + timedelta(days=1)


class TestProgression:
    """Tests for interval and repetition progression."""

    @pytest.mark.parametrize("state", PRIOR_STATES)
    @pytest.mark.parametrize("rating", [1, 2])
    def test_lapse_resets(self, state: SchedulingState, rating: int) -> None:
        """Ratings below 3 reset repetition to 0 and interval to 1."""
        update = schedule_next(state, rating, T)
        assert update.repetition == 0
        assert update.interval == 1

    @pytest.mark.parametrize("rating", [3, 4, 5])
    def test_first_success(self, rating: int) -> None:
        """First success after a lapse or on a new card gives 1 day."""
        update = schedule_next(SchedulingState(interval=17, repetition=0, ease_factor=2.0), rating, T)
        assert update.interval == 1
        assert update.repetition == 1

    @pytest.mark.parametrize("rating", [3, 4, 5])
    def test_second_success(self, rating: int) -> None:
        """Second consecutive success gives 6 days regardless of prior interval."""
        update = schedule_next(SchedulingState(interval=1, repetition=1, ease_factor=1.3), rating, T)
        assert update.interval == 6
        assert update.repetition == 2

    @pytest.mark.parametrize(
        "state",
        [s for s in PRIOR_STATES if s.repetition >= 2],
    )
    @pytest.mark.parametrize("rating", [3, 4, 5])
    def test_compounding_growth(self, state: SchedulingState, rating: int) -> None:
        """Later successes multiply the prior interval by the prior ease factor."""
        update = schedule_next(state, rating, T)
        assert update.interval == round_half_up(state.interval * state.ease_factor)
        assert update.interval >= state.interval
        assert update.repetition == state.repetition + 1

    def test_growth_uses_prior_ease_factor(self) -> None:
        """Interval uses the ease factor before this review's adjustment."""
        # Rating 3 lowers ease to 2.36, but 10 * 2.5 = 25 is expected
        update = schedule_next(SchedulingState(interval=10, repetition=4, ease_factor=2.5), 3, T)
        assert update.interval == 25
        assert update.ease_factor == pytest.approx(2.36)

    def test_half_interval_rounds_up(self) -> None:
        """A product ending in .5 rounds up, not to even."""
        update = schedule_next(SchedulingState(interval=5, repetition=2, ease_factor=2.5), 3, T)
        assert update.interval == 13

    def test_zero_interval_stays_zero(self) -> None:
        """A zero interval cannot grow by multiplication."""
        update = schedule_next(SchedulingState(interval=0, repetition=2, ease_factor=2.5), 5, T)
        assert update.interval == 0
        assert update.next_review_at == T


class TestEaseFactor:
    """Tests for ease-factor adjustment."""

    @pytest.mark.parametrize(
        ("rating", "delta"),
        [(5, 0.1), (4, 0.0), (3, -0.14), (2, -0.32), (1, -0.54)],
    )
    def test_adjustment_per_rating(self, rating: int, delta: float) -> None:
        """Each rating shifts the ease factor by the SM-2 amount."""
        assert next_ease_factor(2.5, rating) == pytest.approx(2.5 + delta)

    @pytest.mark.parametrize("state", PRIOR_STATES)
    @pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
    def test_floor_holds(self, state: SchedulingState, rating: int) -> None:
        """Ease factor never drops below 1.3."""
        assert schedule_next(state, rating, T).ease_factor >= MIN_EASE_FACTOR

    def test_lapse_still_adjusts_ease(self) -> None:
        """The ease factor changes on lapses as well as successes."""
        update = schedule_next(SchedulingState(interval=6, repetition=2, ease_factor=2.5), 2, T)
        assert update.ease_factor == pytest.approx(2.18)

    def test_penalty_accelerates(self) -> None:
        """Going from 3 to 1 costs more than going from 5 to 3."""
        top = next_ease_factor(2.5, 5) - next_ease_factor(2.5, 3)
        bottom = next_ease_factor(2.5, 3) - next_ease_factor(2.5, 1)
        assert bottom > top


class TestValidation:
    """Tests for input rejection."""

    @pytest.mark.parametrize("rating", [0, 6, -1, 100])
    def test_out_of_range_rating(self, rating: int) -> None:
        """Ratings outside 1-5 raise InvalidRating."""
        with pytest.raises(InvalidRating):
            schedule_next(SchedulingState(), rating, T)

    @pytest.mark.parametrize("rating", [3.0, "3", None, True])
    def test_non_integer_rating(self, rating: object) -> None:
        """Non-integers (and booleans) are not ratings."""
        with pytest.raises(InvalidRating):
            schedule_next(SchedulingState(), rating, T)  # type: ignore[arg-type]

    def test_rating_checked_before_state(self) -> None:
        """An invalid rating is reported even when the state is also corrupt."""
        with pytest.raises(InvalidRating):
            schedule_next(SchedulingState(ease_factor=1.0), 9, T)

    @pytest.mark.parametrize(
        "state",
        [
            SchedulingState(ease_factor=1.29),
            SchedulingState(interval=-1),
            SchedulingState(repetition=-3),
            SchedulingState(interval=2.5, repetition=2),  # type: ignore[arg-type]
            SchedulingState(repetition=True),  # type: ignore[arg-type]
        ],
    )
    def test_corrupt_state_rejected(self, state: SchedulingState) -> None:
        """Corrupt input raises InvalidCardState instead of being repaired."""
        with pytest.raises(InvalidCardState) as exc_info:
            schedule_next(state, 4, T)
        assert exc_info.value.context["ease_factor"] == state.ease_factor

    @pytest.mark.parametrize("ease", [float("nan"), float("inf"), float("-inf")])
    @pytest.mark.parametrize("repetition", [0, 2])
    def test_non_finite_ease_rejected(self, ease: float, repetition: int) -> None:
        """NaN and infinite ease factors are rejected, not clamped or overflowed."""
        state = SchedulingState(interval=6, repetition=repetition, ease_factor=ease)
        with pytest.raises(InvalidCardState, match="not a finite number") as exc_info:
            schedule_next(state, 4, T)
        assert exc_info.value.context["ease_factor"] == repr(ease)

    def test_parse_rating_returns_enum(self) -> None:
        """Valid ratings map onto the Rating enum."""
        assert parse_rating(1) is Rating.AGAIN
        assert parse_rating(Rating.PERFECT) is Rating.PERFECT


class TestRating:
    """Tests for the Rating enum."""

    def test_labels(self) -> None:
        """Labels match the rating buttons."""
        assert [r.label for r in Rating] == ["Again", "Hard", "Good", "Easy", "Perfect"]

    def test_lapse_flag(self) -> None:
        """Only ratings 1 and 2 are lapses."""
        assert [r.is_lapse for r in Rating] == [True, True, False, False, False]


class TestCardUpdates:
    """Tests for applying scheduler output to cards."""

    @pytest.fixture
    def card(self) -> Card:
        """A card two successes in."""
        return Card(
            id="chain-rule",
            front="What is the chain rule?",
            back="d/dx[f(g(x))] = f'(g(x)) * g'(x)",
            interval=6,
            repetition=2,
            ease_factor=2.5,
            next_review_at=T - timedelta(days=1),
            deck_id="calculus",
        )

    def test_identity_fields_unchanged(self, card: Card) -> None:
        """Only the four scheduling fields change."""
        updated = review_card(card, 5, T)
        assert (updated.id, updated.front, updated.back, updated.deck_id) == (
            card.id,
            card.front,
            card.back,
            card.deck_id,
        )
        assert updated.interval == 15
        assert updated.repetition == 3
        assert updated.ease_factor == pytest.approx(2.6)
        assert updated.next_review_at == T + timedelta(days=15)

    def test_input_card_not_mutated(self, card: Card) -> None:
        """Scheduling returns a new card and leaves the input alone."""
        before = card.model_dump()
        apply_update(card, schedule_next(card, 1, T))
        assert card.model_dump() == before

    def test_deterministic(self, card: Card) -> None:
        """Same inputs give the same output."""
        assert schedule_next(card, 3, T) == schedule_next(card, 3, T)

    def test_naive_now_treated_as_utc(self, card: Card) -> None:
        """A naive rating time is interpreted as UTC."""
        update = schedule_next(card, 4, T.replace(tzinfo=None))
        assert update.next_review_at == T + timedelta(days=15)


class TestPreview:
    """Tests for preview_intervals."""

    def test_covers_every_rating(self) -> None:
        """One update per rating, matching schedule_next."""
        state = SchedulingState(interval=6, repetition=2, ease_factor=2.5)
        previews = preview_intervals(state, T)

        assert list(previews) == list(Rating)
        assert [p.interval for p in previews.values()] == [1, 1, 15, 15, 15]
        for rating, update in previews.items():
            assert update == schedule_next(state, rating, T)

    def test_rejects_corrupt_state(self) -> None:
        """Preview validates state like schedule_next."""
        with pytest.raises(InvalidCardState):
            preview_intervals(SchedulingState(interval=-2), T)
