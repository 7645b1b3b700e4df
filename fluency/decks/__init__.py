"""Deck registry and deck loading with user overrides.

The process-wide `registry` starts empty. The entry point fills it once with
`register_decks()` before any scheduling call; after that it is only read.
"""

import importlib
import importlib.util
import pathlib
import sys

from fluency.errors import UnknownDeckError
from fluency.models import Item

_BUILTIN_DECKS = {
    "multiplication": "fluency.decks.multiplication",
    "katakana": "fluency.decks.katakana",
    "subtraction": "fluency.decks.subtraction",
}


class DeckRegistry:
    def __init__(self):
        self._decks: dict[str, object] = {}

    def register(self, deck) -> None:
        if deck.id in self._decks:
            print(f"Warning: deck {deck.id} is already registered", file=sys.stderr)
            return
        self._decks[deck.id] = deck

    def resolve(self, deck_id: str):
        try:
            return self._decks[deck_id]
        except KeyError:
            raise UnknownDeckError(deck_id) from None

    def resolve_for_item(self, item: Item):
        return self.resolve(item.deck_id)

    def has(self, deck_id: str) -> bool:
        return deck_id in self._decks

    def all(self) -> list:
        return list(self._decks.values())

    def generate_items(self, deck_ids: list[str], rng=None) -> list[Item]:
        """Generate the item universe of every registered deck in `deck_ids`.

        Unregistered ids are skipped with a warning; the rest still generate.
        """
        items: list[Item] = []
        for deck_id in deck_ids:
            if not self.has(deck_id):
                print(f"Warning: cannot generate items for unregistered deck: {deck_id}",
                      file=sys.stderr)
                continue
            items.extend(self._decks[deck_id].generate_items(rng))
        return items

    def filter_by_enabled(self, items: list[Item], deck_ids: list[str]) -> list[Item]:
        enabled = set(deck_ids)
        return [item for item in items if item.deck_id in enabled]


registry = DeckRegistry()


def load_deck(name: str, data_dir: pathlib.Path | None = None):
    # Check user override first
    if data_dir is not None:
        deck_path = pathlib.Path(data_dir) / "decks" / f"{name}.py"
        if deck_path.exists():
            spec = importlib.util.spec_from_file_location(f"fluency_deck_{name}", str(deck_path))
            mod = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(mod)
            return mod.Deck()

    # Check built-in decks
    if name in _BUILTIN_DECKS:
        mod = importlib.import_module(_BUILTIN_DECKS[name])
        return mod.Deck()

    raise UnknownDeckError(name)


def register_decks(reg: DeckRegistry | None = None,
                   data_dir: pathlib.Path | None = None) -> DeckRegistry:
    """Register the built-in decks, then any user decks found in data_dir/decks/."""
    if reg is None:
        reg = registry
    for name in _BUILTIN_DECKS:
        reg.register(load_deck(name, data_dir))

    if data_dir is not None:
        deck_dir = pathlib.Path(data_dir) / "decks"
        if deck_dir.is_dir():
            for path in sorted(deck_dir.glob("*.py")):
                if path.stem in _BUILTIN_DECKS:
                    continue
                try:
                    reg.register(load_deck(path.stem, data_dir))
                except Exception as e:
                    print(f"Warning: cannot load deck '{path.stem}': {e}", file=sys.stderr)
    return reg
