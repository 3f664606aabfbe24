"""Structured logging for Studydeck.

Both entry points (the ``studydeck`` CLI and the HTTP API) call
``configure_logging`` once at startup. Library modules only ever call
``get_logger(module=__name__)`` and emit snake_case events such as
``session_started`` or ``deck_saved`` with key/value context.

A correlation id ties together the events of one study run or one HTTP
request. The API takes it from ``X-Request-ID``; the CLI opens a
``correlation_scope`` around each study session.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TextIO
from uuid import uuid4

import structlog

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the correlation id of the current run or request, if any."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context.

    Args:
        correlation_id: Id to bind, e.g. an incoming ``X-Request-ID``.
            A random UUID is used when omitted.

    Returns:
        The bound id.
    """
    active = correlation_id or str(uuid4())
    correlation_id_var.set(active)
    return active


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation id for one block, restoring the previous id after.

    Yields:
        The id bound inside the block.
    """
    active = correlation_id or str(uuid4())
    token = correlation_id_var.set(active)
    try:
        yield active
    finally:
        correlation_id_var.reset(token)


def _add_correlation_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    corr_id = correlation_id_var.get()
    if corr_id is not None:
        event_dict.setdefault("correlation_id", corr_id)
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    # Applied to structlog events and to stdlib records (uvicorn, fastapi) alike
    return [
        structlog.contextvars.merge_contextvars,
        _add_correlation_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    *,
    debug: bool = False,
    json_output: bool = False,
    log_stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging through one formatted handler.

    Args:
        debug: Log at DEBUG (per-card ``card_rated`` events) instead of INFO.
        json_output: Emit one JSON object per line instead of the console format.
        log_stream: Destination stream. Defaults to stderr, leaving stdout to
            the interactive study prompt.
    """
    shared = _shared_processors()
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(log_stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)


def get_logger(**initial_context: object) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger with ``initial_context`` bound to every event."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(**initial_context)
    return logger
