"""Flashcard and deck data models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from packages.common.exceptions import InvalidCardState

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5


def ensure_aware(value: datetime) -> datetime:
    """Interpret naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SchedulingFields(Protocol):
    """Anything carrying the three scheduler inputs (a Card or a SchedulingState)."""

    interval: int
    repetition: int
    ease_factor: float


@dataclass(frozen=True)
class SchedulingState:
    """Scheduler inputs detached from a card.

    Deliberately unvalidated: the scheduler checks these fields itself and
    rejects corrupt values instead of repairing them.
    """

    interval: int = 0
    repetition: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR


@dataclass(frozen=True)
class SchedulingUpdate:
    """Scheduler output for one review."""

    interval: int
    repetition: int
    ease_factor: float
    next_review_at: datetime


class Card(BaseModel):
    """A unit of recall owned by exactly one deck."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    front: str
    back: str
    interval: int = Field(default=0, ge=0)  # Days until next review once due
    repetition: int = Field(default=0, ge=0)  # Consecutive reviews rated >= 3
    ease_factor: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR, alias="easeFactor")
    next_review_at: datetime = Field(alias="nextReviewAt")
    deck_id: str = Field(min_length=1, alias="deckId")

    @field_validator("front", "back")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Reject blank prompt or answer text."""
        if not v.strip():
            raise ValueError("card text must not be empty")
        return v

    @field_validator("next_review_at")
    @classmethod
    def validate_next_review_at(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @classmethod
    def new(
        cls,
        front: str,
        back: str,
        deck_id: str,
        now: datetime,
        card_id: str | None = None,
    ) -> Card:
        """Create a fresh card that is due immediately."""
        return cls(
            id=card_id or uuid4().hex,
            front=front,
            back=back,
            interval=0,
            repetition=0,
            ease_factor=DEFAULT_EASE_FACTOR,
            next_review_at=now,
            deck_id=deck_id,
        )

    def is_due(self, now: datetime) -> bool:
        """Return True when the card's review time has been reached."""
        return self.next_review_at <= ensure_aware(now)

    def overdue_by(self, now: datetime) -> timedelta:
        """Time elapsed since the card became due (negative if not yet due)."""
        return ensure_aware(now) - self.next_review_at

    @property
    def scheduling_state(self) -> SchedulingState:
        return SchedulingState(
            interval=self.interval,
            repetition=self.repetition,
            ease_factor=self.ease_factor,
        )


class Deck(BaseModel):
    """A named collection of cards."""

    id: str = Field(min_length=1)
    title: str
    description: str | None = None
    cards: list[Card] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("deck title must not be empty")
        return v

    @model_validator(mode="after")
    def validate_cards(self) -> Deck:
        """Card ids are unique within the deck and cards belong to it."""
        seen: set[str] = set()
        for card in self.cards:
            if card.deck_id != self.id:
                raise ValueError(f"card {card.id} belongs to deck {card.deck_id}, not {self.id}")
            if card.id in seen:
                raise ValueError(f"duplicate card id in deck: {card.id}")
            seen.add(card.id)
        return self

    def due_cards(self, now: datetime) -> list[Card]:
        """Cards due at ``now``, in deck order."""
        return [card for card in self.cards if card.is_due(now)]

    def due_count(self, now: datetime) -> int:
        """Number of cards due at ``now``; recomputed on every call."""
        return sum(1 for card in self.cards if card.is_due(now))

    def get_card(self, card_id: str) -> Card | None:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None


def parse_card(record: Card | Mapping[str, Any]) -> Card:
    """Validate a raw card record.

    Args:
        record: A ``Card`` or a mapping using either snake_case or the
            camelCase field names of the web client.

    Returns:
        The validated card.

    Raises:
        InvalidCardState: If any field violates the card invariants.
    """
    if isinstance(record, Card):
        return record
    try:
        return Card.model_validate(record)
    except ValidationError as exc:
        card_id = record.get("id") if isinstance(record, Mapping) else None
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise InvalidCardState(
            f"Invalid card record {card_id!r}: {', '.join(fields)}",
            context={"card_id": card_id, "fields": fields},
        ) from exc


def parse_cards(records: Iterable[Card | Mapping[str, Any]]) -> list[Card]:
    """Validate a sequence of card records, rejecting duplicate ids.

    Raises:
        InvalidCardState: On the first invalid record or repeated id.
    """
    cards: list[Card] = []
    seen: set[str] = set()
    for record in records:
        card = parse_card(record)
        if card.id in seen:
            raise InvalidCardState(
                f"Duplicate card id: {card.id}",
                context={"card_id": card.id},
            )
        seen.add(card.id)
        cards.append(card)
    return cards
