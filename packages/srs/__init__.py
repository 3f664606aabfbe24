# Spaced repetition scheduling and study sessions

from packages.srs.models import (
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    Card,
    Deck,
    SchedulingState,
    SchedulingUpdate,
    parse_card,
    parse_cards,
)
from packages.srs.ordering import (
    InputOrder,
    MostOverdueFirst,
    OrderingStrategy,
    get_ordering,
    select_due,
)
from packages.srs.scheduler import (
    Rating,
    apply_update,
    parse_rating,
    preview_intervals,
    review_card,
    schedule_next,
)
from packages.srs.session import (
    RateResult,
    RevealState,
    ReviewRecord,
    SessionStatus,
    StudySession,
    start_session,
)

__all__ = [
    "DEFAULT_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "Card",
    "Deck",
    "InputOrder",
    "MostOverdueFirst",
    "OrderingStrategy",
    "RateResult",
    "Rating",
    "RevealState",
    "ReviewRecord",
    "SchedulingState",
    "SchedulingUpdate",
    "SessionStatus",
    "StudySession",
    "apply_update",
    "get_ordering",
    "parse_card",
    "parse_cards",
    "parse_rating",
    "preview_intervals",
    "review_card",
    "schedule_next",
    "select_due",
    "start_session",
]
