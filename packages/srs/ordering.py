"""Due-card selection and review ordering strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from packages.common.config import Settings, get_settings
from packages.common.exceptions import ConfigurationError
from packages.srs.models import Card


def select_due(cards: Sequence[Card], now: datetime) -> list[Card]:
    """Return the cards due at ``now``, preserving input order."""
    return [card for card in cards if card.is_due(now)]


class OrderingStrategy(ABC):
    """Arranges a session's due cards into review order."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name as used in settings and on the CLI."""
        ...

    @abstractmethod
    def order(self, due: Sequence[Card], now: datetime) -> list[Card]:
        """Return the due cards in the order they should be reviewed.

        Implementations must be deterministic for identical inputs.
        """
        ...


class InputOrder(OrderingStrategy):
    """Keep cards in the order they were supplied."""

    @property
    def name(self) -> str:
        return "input"

    def order(self, due: Sequence[Card], now: datetime) -> list[Card]:
        return list(due)


class MostOverdueFirst(OrderingStrategy):
    """Review the longest-overdue cards first.

    ``sorted`` is stable, so cards that became due at the same moment keep
    their input order.
    """

    @property
    def name(self) -> str:
        return "overdue"

    def order(self, due: Sequence[Card], now: datetime) -> list[Card]:
        return sorted(due, key=lambda card: card.next_review_at)


ORDERING_STRATEGIES: dict[str, type[OrderingStrategy]] = {
    "input": InputOrder,
    "overdue": MostOverdueFirst,
}


def get_ordering(name: str | None = None, settings: Settings | None = None) -> OrderingStrategy:
    """Factory function to create an ordering strategy.

    Args:
        name: Strategy name. If None, uses ``settings.session_order``.
        settings: Application settings. If None, uses default settings.

    Returns:
        Configured ordering strategy.

    Raises:
        ConfigurationError: If the strategy name is unknown.
    """
    if name is None:
        if settings is None:
            settings = get_settings()
        name = settings.session_order

    strategy_cls = ORDERING_STRATEGIES.get(name.lower())
    if strategy_cls is None:
        raise ConfigurationError(
            f"Unknown session order: {name}",
            context={"order": name, "available": sorted(ORDERING_STRATEGIES)},
        )
    return strategy_cls()
