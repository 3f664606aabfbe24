"""Custom exception hierarchy for Studydeck.

This module defines application-specific exceptions that provide:
- Clear error categorization for callers of the scheduler and session engine
- Consistent HTTP status code mapping in API
- Structured logging context
"""

from __future__ import annotations


class StudydeckError(Exception):
    """Base exception for all application errors.

    All custom exceptions inherit from this to enable:
    - Centralized exception handling in API middleware
    - Consistent error logging patterns
    - Type-safe error catching
    """

    def __init__(self, message: str, *, context: dict[str, object] | None = None) -> None:
        """Initialize error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Additional key-value pairs for structured logging.
        """
        super().__init__(message)
        self.context = context or {}


class SchedulingError(StudydeckError):
    """Base class for scheduler input errors."""


class InvalidRating(SchedulingError, ValueError):
    """Rating is not an integer in the range 1-5."""


class InvalidCardState(SchedulingError, ValueError):
    """Card scheduling fields violate the card invariants."""


class SessionError(StudydeckError):
    """Base class for study session errors."""


class EmptySession(SessionError):
    """Rating was submitted to a session with no card left to rate."""


class DeckError(StudydeckError):
    """Base class for deck file errors."""


class DeckNotFoundError(DeckError):
    """Deck file does not exist."""


class DeckFileError(DeckError):
    """Deck file could not be parsed or written."""


class ConfigurationError(StudydeckError):
    """Invalid or missing configuration."""


class NotFoundError(StudydeckError):
    """Requested resource not found."""
