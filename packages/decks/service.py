"""Deck editing and persistence of study results."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from uuid import uuid4

from packages.common.exceptions import NotFoundError
from packages.common.logging import get_logger
from packages.srs.models import Card, Deck

logger = get_logger(module=__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ``text`` and join its alphanumeric runs with hyphens."""
    return _SLUG_RE.sub("-", text.lower()).strip("-")


def create_deck(title: str, description: str | None = None, deck_id: str | None = None) -> Deck:
    """Create an empty deck; the id defaults to a slug of the title."""
    deck = Deck(
        id=deck_id or slugify(title) or uuid4().hex,
        title=title,
        description=description or None,
    )
    logger.info("deck_created", deck_id=deck.id, title=deck.title)
    return deck


def add_card(deck: Deck, front: str, back: str, now: datetime) -> tuple[Deck, Card]:
    """Append a fresh, immediately due card.

    Returns:
        Tuple of (updated deck, new card).
    """
    card = Card.new(front=front, back=back, deck_id=deck.id, now=now)
    updated = deck.model_copy(update={"cards": [*deck.cards, card]})
    logger.info("card_added", deck_id=deck.id, card_id=card.id)
    return updated, card


def merge_updates(deck: Deck, updated_cards: Iterable[Card]) -> Deck:
    """Replace deck cards with their reviewed versions, matched by id.

    Cards the session never reached are left untouched.

    Raises:
        NotFoundError: If an updated card is not part of the deck.
    """
    replacements = {card.id: card for card in updated_cards}
    known = {card.id for card in deck.cards}
    unknown = sorted(set(replacements) - known)
    if unknown:
        raise NotFoundError(
            f"Cards not in deck {deck.id}: {', '.join(unknown)}",
            context={"deck_id": deck.id, "card_ids": unknown},
        )

    cards = [replacements.get(card.id, card) for card in deck.cards]
    return deck.model_copy(update={"cards": cards})
