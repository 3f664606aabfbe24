"""Study session engine.

A session is built from a snapshot of a deck's cards at study-start time.
It holds the due queue, a cursor, the reveal state of the current card and
one review record per rated card. Nothing is persisted here: the caller
reads ``updated_cards`` (after each rating or at the end) and stores them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from packages.common.exceptions import EmptySession
from packages.common.logging import get_logger
from packages.srs.models import Card, ensure_aware, parse_cards
from packages.srs.ordering import OrderingStrategy, get_ordering, select_due
from packages.srs.scheduler import Rating, apply_update, parse_rating, schedule_next

logger = get_logger(module=__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class RevealState(str, Enum):
    """Which side of the current card is visible."""

    QUESTION = "question"
    ANSWER = "answer"


class SessionStatus(str, Enum):
    """Session lifecycle state."""

    ACTIVE = "active"
    COMPLETE = "complete"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class ReviewRecord:
    """One rated card within a session."""

    card_id: str
    rating: Rating
    reviewed_at: datetime
    before: Card
    after: Card


@dataclass(frozen=True)
class RateResult:
    """Outcome of rating the current card."""

    done: bool
    updated_cards: list[Card]
    review: ReviewRecord


@dataclass
class StudySession:
    """One in-memory pass over a deck's due cards.

    Use ``start_session`` to build one; the constructor takes an already
    filtered and ordered queue.
    """

    queue: list[Card]
    started_at: datetime
    clock: Clock = utc_now
    session_id: str = field(default_factory=lambda: uuid4().hex)
    cursor: int = 0
    reveal: RevealState = RevealState.QUESTION
    status: SessionStatus = SessionStatus.ACTIVE
    _reviews: list[ReviewRecord] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self.queue:
            self.status = SessionStatus.COMPLETE
        self._log = logger.bind(session_id=self.session_id)

    # -- State ------------------------------------------------------------

    @property
    def done(self) -> bool:
        """True once no further transitions are possible."""
        return self.status is not SessionStatus.ACTIVE

    @property
    def is_empty(self) -> bool:
        """True when nothing was due at study-start time."""
        return not self.queue

    @property
    def current_card(self) -> Card | None:
        if self.done:
            return None
        return self.queue[self.cursor]

    @property
    def visible_text(self) -> str | None:
        """Front of the current card, or its back once revealed."""
        card = self.current_card
        if card is None:
            return None
        return card.back if self.reveal is RevealState.ANSWER else card.front

    @property
    def total(self) -> int:
        return len(self.queue)

    @property
    def position(self) -> int:
        """1-based index of the current card ("card 2 of 5")."""
        return min(self.cursor + 1, self.total)

    @property
    def remaining(self) -> int:
        if self.done:
            return 0
        return self.total - self.cursor

    @property
    def progress(self) -> float:
        """Fraction of the queue already rated."""
        if not self.queue:
            return 1.0
        return len(self._reviews) / self.total

    @property
    def reviews(self) -> list[ReviewRecord]:
        return list(self._reviews)

    @property
    def updated_cards(self) -> list[Card]:
        """Updated cards for every review so far, in review order."""
        return [review.after for review in self._reviews]

    # -- Reveal transitions -----------------------------------------------

    def show_answer(self) -> None:
        if self.current_card is not None:
            self.reveal = RevealState.ANSWER

    def hide_answer(self) -> None:
        if self.current_card is not None:
            self.reveal = RevealState.QUESTION

    def toggle_answer(self) -> RevealState:
        if self.reveal is RevealState.ANSWER:
            self.hide_answer()
        else:
            self.show_answer()
        return self.reveal

    # -- Rating -------------------------------------------------------------

    def rate(self, rating: int, now: datetime | None = None) -> RateResult:
        """Rate the current card and advance.

        Args:
            rating: Recall quality, 1 (again) to 5 (perfect).
            now: Time of the rating; defaults to the session clock. The
                card's next review is scheduled relative to this time, not
                to the session start.

        Returns:
            RateResult with ``done`` and all cards updated so far.

        Raises:
            InvalidRating: If rating is outside 1-5.
            EmptySession: If no card is left to rate.
        """
        quality = parse_rating(rating)
        card = self.current_card
        if card is None:
            raise EmptySession(
                "No card to rate: session is empty" if self.is_empty else "No card to rate: session has ended",
                context={"session_id": self.session_id, "status": self.status.value},
            )

        reviewed_at = ensure_aware(now) if now is not None else self.clock()
        updated = apply_update(card, schedule_next(card, quality, reviewed_at))
        review = ReviewRecord(
            card_id=card.id,
            rating=quality,
            reviewed_at=reviewed_at,
            before=card,
            after=updated,
        )
        self._reviews.append(review)

        self._log.debug(
            "card_rated",
            card_id=card.id,
            rating=int(quality),
            interval=updated.interval,
            repetition=updated.repetition,
            ease_factor=updated.ease_factor,
        )

        self.cursor += 1
        self.reveal = RevealState.QUESTION
        if self.cursor >= len(self.queue):
            self.status = SessionStatus.COMPLETE
            self._log.info("session_complete", reviewed=len(self._reviews))

        return RateResult(done=self.done, updated_cards=self.updated_cards, review=review)

    def abandon(self) -> list[Card]:
        """Stop the session early; cards not yet rated keep their old state.

        Returns:
            The cards rated before abandoning.
        """
        if not self.done:
            self.status = SessionStatus.ABANDONED
            self._log.info(
                "session_abandoned",
                reviewed=len(self._reviews),
                skipped=len(self.queue) - self.cursor,
            )
        return self.updated_cards


def start_session(
    cards: Iterable[Card | Mapping[str, Any]],
    now: datetime,
    *,
    order: str | OrderingStrategy | None = None,
    clock: Clock | None = None,
) -> StudySession:
    """Build a session over the cards due at ``now``.

    Args:
        cards: A deck's full card set, as ``Card`` objects or raw records.
        now: Reference time for due selection.
        order: Ordering strategy name or instance; None uses the configured
            ``session_order`` setting.
        clock: Source of rating times when ``rate`` is called without one.

    Returns:
        A new session. When nothing is due it is already complete.

    Raises:
        InvalidCardState: If a record is invalid or ids repeat.
        ConfigurationError: If the ordering strategy is unknown.
    """
    now = ensure_aware(now)
    parsed = parse_cards(cards)
    strategy = order if isinstance(order, OrderingStrategy) else get_ordering(order)
    queue = strategy.order(select_due(parsed, now), now)

    session = StudySession(queue=queue, started_at=now, clock=clock or utc_now)
    session._log.info(
        "session_started",
        cards=len(parsed),
        due=len(queue),
        order=strategy.name,
    )
    return session
