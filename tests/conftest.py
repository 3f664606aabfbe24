"""Pytest configuration and fixtures."""

from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from packages.common.config import get_settings
from packages.decks import save_deck
from packages.srs import Card, Deck

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)

CardFactory = Callable[..., Card]


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Drop cached settings so env patches in one test don't leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for due selection and ratings."""
    return NOW


@pytest.fixture
def make_card() -> CardFactory:
    """Build cards relative to ``NOW``.

    ``due_in_days`` < 0 means overdue, 0 means due exactly now,
    > 0 means not yet due.
    """

    def factory(
        card_id: str,
        *,
        due_in_days: float = 0,
        interval: int = 0,
        repetition: int = 0,
        ease_factor: float = 2.5,
        deck_id: str = "calculus",
    ) -> Card:
        return Card(
            id=card_id,
            front=f"Question {card_id}",
            back=f"Answer {card_id}",
            interval=interval,
            repetition=repetition,
            ease_factor=ease_factor,
            next_review_at=NOW + timedelta(days=due_in_days),
            deck_id=deck_id,
        )

    return factory


@pytest.fixture
def sample_deck(make_card: CardFactory) -> Deck:
    """Calculus deck with two due cards and one scheduled for later."""
    return Deck(
        id="calculus",
        title="Mathematics - Calculus",
        description="Derivatives, integrals, and limits",
        cards=[
            make_card("derivative-sin", due_in_days=-2, interval=6, repetition=2),
            make_card("integral-x2", due_in_days=3, interval=4, repetition=1),
            make_card("limit-sinx-x", due_in_days=0),
        ],
    )


@pytest.fixture
def deck_file(tmp_path: Path, sample_deck: Deck) -> Path:
    """Sample deck written to a YAML file."""
    path = tmp_path / "calculus.yaml"
    save_deck(sample_deck, path)
    return path
