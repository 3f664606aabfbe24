"""Deck files: YAML or JSON documents holding one deck and its cards."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from packages.common.exceptions import DeckFileError, DeckNotFoundError
from packages.common.logging import get_logger
from packages.srs.models import Deck

logger = get_logger(module=__name__)

YAML_SUFFIXES = {".yaml", ".yml"}
JSON_SUFFIXES = {".json"}


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in YAML_SUFFIXES:
        return "yaml"
    if suffix in JSON_SUFFIXES:
        return "json"
    raise DeckFileError(
        f"Unsupported deck file type: {path.name} (use .yaml, .yml or .json)",
        context={"path": str(path)},
    )


def load_deck(path: str | Path) -> Deck:
    """Load a deck from a YAML or JSON file.

    Expected format:
    ```yaml
    id: calculus
    title: Mathematics - Calculus
    description: Derivatives, integrals, and limits
    cards:
      - id: derivative-sin
        front: What is the derivative of sin(x)?
        back: cos(x)
        interval: 0
        repetition: 0
        ease_factor: 2.5
        next_review_at: 2024-01-01T00:00:00+00:00
        deck_id: calculus
    ```

    Args:
        path: Path to the deck file.

    Returns:
        The validated deck.

    Raises:
        DeckNotFoundError: If the file does not exist.
        DeckFileError: If the file cannot be parsed or fails validation.
    """
    deck_path = Path(path)
    if not deck_path.exists():
        raise DeckNotFoundError(f"Deck file not found: {deck_path}", context={"path": str(deck_path)})

    file_format = _check_suffix(deck_path)
    try:
        with deck_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) if file_format == "yaml" else json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise DeckFileError(
            f"Cannot parse deck file {deck_path}: {exc}",
            context={"path": str(deck_path)},
        ) from exc

    if not isinstance(data, dict):
        raise DeckFileError(
            f"Deck file {deck_path} must contain a mapping",
            context={"path": str(deck_path)},
        )

    try:
        deck = Deck.model_validate(data)
    except ValidationError as exc:
        raise DeckFileError(
            f"Invalid deck in {deck_path}: {exc.error_count()} validation error(s)",
            context={"path": str(deck_path), "errors": exc.errors(include_url=False)},
        ) from exc

    logger.debug("deck_loaded", path=str(deck_path), deck_id=deck.id, cards=len(deck.cards))
    return deck


def dump_deck(deck: Deck) -> dict[str, Any]:
    """Serialize a deck to plain JSON-compatible data."""
    return deck.model_dump(mode="json")


def save_deck(deck: Deck, path: str | Path) -> Path:
    """Write a deck to a YAML or JSON file, replacing it atomically.

    Args:
        deck: Deck to write.
        path: Destination; the suffix selects the format.

    Returns:
        The path written.
    """
    deck_path = Path(path)
    file_format = _check_suffix(deck_path)
    data = dump_deck(deck)

    if file_format == "yaml":
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    tmp_path = deck_path.with_name(deck_path.name + ".tmp")
    try:
        deck_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(deck_path)
    except OSError as exc:
        raise DeckFileError(
            f"Cannot write deck file {deck_path}: {exc}",
            context={"path": str(deck_path)},
        ) from exc

    logger.debug("deck_saved", path=str(deck_path), deck_id=deck.id, cards=len(deck.cards))
    return deck_path
