"""Studydeck CLI application."""

from datetime import UTC, datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from packages.common.config import get_settings
from packages.common.exceptions import StudydeckError
from packages.common.logging import configure_logging, correlation_scope

app = typer.Typer(
    name="studydeck",
    help="Spaced-repetition flashcard scheduler and study sessions",
    no_args_is_help=True,
)

console = Console()

VERSION = "0.1.0"


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    settings = get_settings()
    configure_logging(debug=debug or settings.debug, json_output=settings.log_json)


def _parse_now(value: str | None) -> datetime:
    """Parse an ISO timestamp option; naive values are UTC, None means now."""
    if value is None:
        return datetime.now(UTC)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid timestamp: {value}")
        raise typer.Exit(1) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _format_days(days: int) -> str:
    return f"{days} day{'s' if days != 1 else ''}"


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"studydeck {VERSION}")


@app.command()
def init(
    path: Path = typer.Argument(..., help="Deck file to create (.yaml, .yml or .json)"),
    title: str = typer.Option(..., "--title", "-t", help="Deck title"),
    description: str | None = typer.Option(None, "--description", "-d", help="Optional description"),
    deck_id: str | None = typer.Option(None, "--id", help="Deck id (defaults to a slug of the title)"),
) -> None:
    """Create a new, empty deck file."""
    from packages.decks import create_deck, save_deck

    path = path.expanduser()
    if path.exists():
        console.print(f"[red]Error:[/red] File already exists: {path}")
        raise typer.Exit(1)

    try:
        deck = create_deck(title, description, deck_id=deck_id)
        save_deck(deck, path)
    except (StudydeckError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(f"[green]Created deck[/green] {deck.title} ({deck.id}) at {path}")


@app.command()
def add(
    path: Path = typer.Argument(..., help="Deck file"),
    front: str = typer.Option(..., "--front", "-f", help="Prompt text"),
    back: str = typer.Option(..., "--back", "-b", help="Answer text"),
) -> None:
    """Add a card to a deck; new cards are due immediately."""
    from packages.decks import add_card, load_deck, save_deck

    path = path.expanduser()
    try:
        deck = load_deck(path)
        deck, card = add_card(deck, front, back, datetime.now(UTC))
        save_deck(deck, path)
    except (StudydeckError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(f"[green]Added card[/green] {card.id} to {deck.title} ({len(deck.cards)} cards)")


@app.command()
def status(
    paths: list[Path] = typer.Argument(..., help="Deck files"),
    now: str | None = typer.Option(None, "--now", help="Reference time (ISO 8601), default current time"),
) -> None:
    """Show card and due counts for decks."""
    from packages.decks import load_deck

    reference = _parse_now(now)

    table = Table(title="Decks")
    table.add_column("Deck", style="cyan")
    table.add_column("Title")
    table.add_column("Cards", justify="right")
    table.add_column("Due", justify="right", style="green")

    failed = False
    for path in paths:
        try:
            deck = load_deck(path.expanduser())
        except StudydeckError as e:
            console.print(f"[red]Error:[/red] {e}")
            failed = True
            continue
        due = deck.due_count(reference)
        table.add_row(deck.id, deck.title, str(len(deck.cards)), f"{due} due" if due else "-")

    console.print(table)
    if failed:
        raise typer.Exit(1)


@app.command()
def study(
    path: Path = typer.Argument(..., help="Deck file"),
    order: str | None = typer.Option(
        None,
        "--order",
        "-o",
        help="Review order: 'input' or 'overdue' (default from settings)",
    ),
    save_each: bool | None = typer.Option(
        None,
        "--save-each/--save-at-end",
        help="Write each rating to the deck file immediately, or once at the end",
    ),
    now: str | None = typer.Option(None, "--now", help="Reference time (ISO 8601), default current time"),
) -> None:
    """Study the due cards of a deck."""
    from packages.decks import load_deck, merge_updates, save_deck
    from packages.srs import preview_intervals, start_session

    settings = get_settings()
    if save_each is None:
        save_each = settings.save_each_rating
    path = path.expanduser()
    fixed_now = _parse_now(now) if now is not None else None
    reference = fixed_now or datetime.now(UTC)

    with correlation_scope():
        try:
            deck = load_deck(path)
            session = start_session(
                deck.cards,
                reference,
                order=order,
                clock=(lambda: fixed_now) if fixed_now else None,
            )
        except StudydeckError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None

        if session.is_empty:
            console.print("[green]All caught up![/green] No cards are due for review in this deck right now.")
            return

        while not session.done:
            card = session.current_card
            if card is None:
                break
            console.print(
                Panel(
                    session.visible_text or "",
                    title=f"Card {session.position} of {session.total}",
                    subtitle=deck.title,
                )
            )
            answer = Prompt.ask("Press Enter to show the answer, q to stop", default="", show_default=False)
            if answer.strip().lower() == "q":
                session.abandon()
                break

            session.show_answer()
            console.print(Panel(session.visible_text or "", title="Answer", border_style="green"))

            previews = preview_intervals(card, fixed_now or datetime.now(UTC))
            console.print(
                "  ".join(
                    f"[bold]{rating.value}[/bold] {rating.label} ({_format_days(update.interval)})"
                    for rating, update in previews.items()
                )
            )
            choice = Prompt.ask(
                "How well did you know this?",
                choices=["1", "2", "3", "4", "5", "q"],
            )
            if choice == "q":
                session.abandon()
                break

            result = session.rate(int(choice))
            if save_each:
                try:
                    deck = merge_updates(deck, [result.review.after])
                    save_deck(deck, path)
                except StudydeckError as e:
                    console.print(f"[red]Save error:[/red] {e}")
                    raise typer.Exit(1) from None

        if not save_each and session.updated_cards:
            try:
                deck = merge_updates(deck, session.updated_cards)
                save_deck(deck, path)
            except StudydeckError as e:
                console.print(f"[red]Save error:[/red] {e}")
                raise typer.Exit(1) from None

    table = Table(title=f"Session: {deck.title}")
    table.add_column("Card", style="cyan", max_width=40)
    table.add_column("Rating")
    table.add_column("Interval", justify="right", style="green")
    table.add_column("Ease", justify="right")
    table.add_column("Next review")

    for review in session.reviews:
        table.add_row(
            review.before.front,
            review.rating.label,
            _format_days(review.after.interval),
            f"{review.after.ease_factor:.2f}",
            review.after.next_review_at.isoformat(timespec="minutes"),
        )

    console.print(table)
    skipped = session.total - len(session.reviews)
    if skipped:
        console.print(f"[yellow]Stopped early:[/yellow] {skipped} card(s) left for next time")
    else:
        console.print(f"[green]Session complete:[/green] {len(session.reviews)} card(s) reviewed")


@app.command()
def schedule(
    rating: int = typer.Option(..., "--rating", "-r", help="Recall rating 1 (again) to 5 (perfect)"),
    interval: int = typer.Option(0, "--interval", "-i", help="Current interval in days"),
    repetition: int = typer.Option(0, "--repetition", "-n", help="Current repetition count"),
    ease: float = typer.Option(2.5, "--ease", "-e", help="Current ease factor"),
    now: str | None = typer.Option(None, "--now", help="Rating time (ISO 8601), default current time"),
) -> None:
    """Compute the next scheduling state for one review."""
    from packages.srs import SchedulingState, schedule_next

    state = SchedulingState(interval=interval, repetition=repetition, ease_factor=ease)
    try:
        update = schedule_next(state, rating, _parse_now(now))
    except StudydeckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    table = Table(title="Next State")
    table.add_column("Field", style="cyan")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right", style="green")

    table.add_row("Interval", _format_days(interval), _format_days(update.interval))
    table.add_row("Repetition", str(repetition), str(update.repetition))
    table.add_row("Ease factor", f"{ease:.2f}", f"{update.ease_factor:.2f}")
    table.add_row("Next review", "", update.next_review_at.isoformat(timespec="minutes"))

    console.print(table)


@app.command()
def preview(
    interval: int = typer.Option(0, "--interval", "-i", help="Current interval in days"),
    repetition: int = typer.Option(0, "--repetition", "-n", help="Current repetition count"),
    ease: float = typer.Option(2.5, "--ease", "-e", help="Current ease factor"),
) -> None:
    """Show the outcome of every rating for a scheduling state."""
    from packages.srs import SchedulingState, preview_intervals

    state = SchedulingState(interval=interval, repetition=repetition, ease_factor=ease)
    try:
        previews = preview_intervals(state, datetime.now(UTC))
    except StudydeckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    table = Table(title="Rating Preview")
    table.add_column("Rating", style="cyan")
    table.add_column("Interval", justify="right", style="green")
    table.add_column("Repetition", justify="right")
    table.add_column("Ease factor", justify="right")

    for rating, update in previews.items():
        table.add_row(
            f"{rating.value} {rating.label}",
            _format_days(update.interval),
            str(update.repetition),
            f"{update.ease_factor:.2f}",
        )

    console.print(table)


if __name__ == "__main__":
    app()
