# Deck files and editing

from packages.decks.files import dump_deck, load_deck, save_deck
from packages.decks.service import add_card, create_deck, merge_updates, slugify

__all__ = [
    "add_card",
    "create_deck",
    "dump_deck",
    "load_deck",
    "merge_updates",
    "save_deck",
    "slugify",
]
