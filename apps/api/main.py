"""Studydeck API - FastAPI application."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from packages.common.config import get_settings
from packages.common.exceptions import (
    ConfigurationError,
    EmptySession,
    InvalidCardState,
    InvalidRating,
    NotFoundError,
    StudydeckError,
)
from packages.common.logging import (
    clear_correlation_id,
    configure_logging,
    get_logger,
    set_correlation_id,
)

logger = get_logger(module=__name__)

VERSION = "0.1.0"

ERROR_STATUS: dict[type[StudydeckError], int] = {
    InvalidRating: 422,
    InvalidCardState: 422,
    EmptySession: 409,
    ConfigurationError: 400,
    NotFoundError: 404,
}


class StateFields(BaseModel):
    """Scheduling fields of a card.

    Left unconstrained so that corrupt values reach the scheduler and are
    reported as InvalidCardState rather than as a generic request error.
    """

    model_config = ConfigDict(populate_by_name=True)

    interval: int = 0
    repetition: int = 0
    ease_factor: float = Field(default=2.5, alias="easeFactor")


class ScheduleRequest(StateFields):
    """Request body for schedule endpoint."""

    rating: int
    now: datetime | None = None


class ScheduleResponse(BaseModel):
    """Next scheduling state for one review."""

    interval: int
    repetition: int
    ease_factor: float
    next_review_at: datetime


class PreviewRequest(StateFields):
    """Request body for preview endpoint."""

    now: datetime | None = None


class PreviewOption(ScheduleResponse):
    """Outcome of one rating."""

    rating: int
    label: str


class PreviewResponse(BaseModel):
    """Outcome of every rating for one state."""

    options: list[PreviewOption]


class DueRequest(BaseModel):
    """Request body for due endpoint."""

    cards: list[dict[str, Any]]
    now: datetime | None = None
    order: str | None = None


class DueResponse(BaseModel):
    """Due cards of a card set."""

    due_ids: list[str]
    due_count: int
    total: int


class ReplayRequest(BaseModel):
    """Request body for session replay endpoint."""

    cards: list[dict[str, Any]]
    ratings: list[int]
    now: datetime | None = None
    order: str | None = None


class ReplayResponse(BaseModel):
    """Result of applying ratings to a session."""

    session_id: str
    done: bool
    total: int
    reviewed: int
    remaining: int
    updated_cards: list[dict[str, Any]]


def _now(value: datetime | None) -> datetime:
    return value if value is not None else datetime.now(UTC)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    configure_logging(debug=settings.debug, json_output=settings.log_json or not settings.debug)
    app.state.settings = settings
    logger.info("api_started", version=VERSION)
    yield
    logger.info("api_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Studydeck",
        description="Spaced-repetition scheduling and study sessions for flashcard decks",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.debug,
    )

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Bind X-Request-ID (given or generated) as the log correlation id."""
        request_id = set_correlation_id(request.headers.get("X-Request-ID"))
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(StudydeckError)
    async def studydeck_error_handler(request: Request, exc: StudydeckError) -> JSONResponse:
        """Map application errors to JSON responses."""
        status_code = next(
            (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
            400,
        )
        logger.warning(
            "request_rejected",
            path=request.url.path,
            error=type(exc).__name__,
            detail=str(exc),
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "error": type(exc).__name__,
                "detail": str(exc),
                "context": jsonable_encoder(exc.context),
            },
        )

    @app.get("/health", response_class=JSONResponse)
    async def health() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": VERSION,
            "session_order": settings.session_order,
        }

    @app.post("/schedule", response_model=ScheduleResponse)
    async def schedule(request: ScheduleRequest) -> ScheduleResponse:
        """Compute the next scheduling state for one review.

        Args:
            request: Prior scheduling fields, rating and optional rating time.

        Returns:
            New interval, repetition, ease factor and next review time.
        """
        from packages.srs import SchedulingState, schedule_next

        state = SchedulingState(
            interval=request.interval,
            repetition=request.repetition,
            ease_factor=request.ease_factor,
        )
        update = schedule_next(state, request.rating, _now(request.now))
        return ScheduleResponse(
            interval=update.interval,
            repetition=update.repetition,
            ease_factor=update.ease_factor,
            next_review_at=update.next_review_at,
        )

    @app.post("/preview", response_model=PreviewResponse)
    async def preview(request: PreviewRequest) -> PreviewResponse:
        """Show the outcome of every rating for a scheduling state."""
        from packages.srs import SchedulingState, preview_intervals

        state = SchedulingState(
            interval=request.interval,
            repetition=request.repetition,
            ease_factor=request.ease_factor,
        )
        previews = preview_intervals(state, _now(request.now))
        return PreviewResponse(
            options=[
                PreviewOption(
                    rating=int(rating),
                    label=rating.label,
                    interval=update.interval,
                    repetition=update.repetition,
                    ease_factor=update.ease_factor,
                    next_review_at=update.next_review_at,
                )
                for rating, update in previews.items()
            ]
        )

    @app.post("/due", response_model=DueResponse)
    async def due(request: DueRequest) -> DueResponse:
        """List the cards due at a reference time, in review order."""
        from packages.srs import get_ordering, parse_cards, select_due

        now = _now(request.now)
        cards = parse_cards(request.cards)
        queue = get_ordering(request.order, settings).order(select_due(cards, now), now)
        return DueResponse(
            due_ids=[card.id for card in queue],
            due_count=len(queue),
            total=len(cards),
        )

    @app.post("/sessions/replay", response_model=ReplayResponse)
    async def replay_session(request: ReplayRequest) -> ReplayResponse:
        """Run a session and apply ratings to its queue in order.

        Suited to clients that collect all ratings and persist once at the
        end. Fewer ratings than due cards leaves the session unfinished; the
        unrated cards are not returned.
        """
        from packages.srs import get_ordering, start_session

        now = _now(request.now)
        session = start_session(
            request.cards,
            now,
            order=get_ordering(request.order, settings),
            clock=lambda: now,
        )
        for rating in request.ratings:
            session.rate(rating)

        return ReplayResponse(
            session_id=session.session_id,
            done=session.done,
            total=session.total,
            reviewed=len(session.reviews),
            remaining=session.remaining,
            updated_cards=[card.model_dump(mode="json") for card in session.updated_cards],
        )

    return app


# Application instance for uvicorn
app = create_app()


def run() -> None:
    """Serve the API with uvicorn using configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("apps.api.main:app", host=settings.api_host, port=settings.api_port)
