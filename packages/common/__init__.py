# Common utilities

from packages.common.exceptions import (
    ConfigurationError,
    DeckError,
    DeckFileError,
    DeckNotFoundError,
    EmptySession,
    InvalidCardState,
    InvalidRating,
    NotFoundError,
    SchedulingError,
    SessionError,
    StudydeckError,
)
from packages.common.logging import (
    clear_correlation_id,
    configure_logging,
    correlation_scope,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)

__all__ = [
    "ConfigurationError",
    "DeckError",
    "DeckFileError",
    "DeckNotFoundError",
    "EmptySession",
    "InvalidCardState",
    "InvalidRating",
    "NotFoundError",
    "SchedulingError",
    "SessionError",
    "StudydeckError",
    "clear_correlation_id",
    "configure_logging",
    "correlation_scope",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
]
