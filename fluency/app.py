"""App: central object that wires together data_dir, store, decks, and engine."""

import pathlib
import sys

from fluency import storage
from fluency.config import get_data_dir, load_config
from fluency.db import Store, init_db
from fluency.decks import DeckRegistry, register_decks, registry
from fluency.errors import StorageUnavailable
from fluency.review_session import ReviewSession


class App:
    """Holds all shared state for a fluency process.

    Usage:
        app = App(data_dir="/path/to/data")
        app.init_db()                    # uses data_dir/fluency.db
        app.register_decks()             # built-ins + data_dir/decks/*.py
        app.load_engine()                # FSRS, config["desired_retention"]
        session = app.review_session()
        app.close()

    For testing:
        app = App(data_dir=tmp_path, deck_registry=DeckRegistry())
        app.init_db(":memory:")
    """

    def __init__(self, data_dir: pathlib.Path | str | None = None,
                 deck_registry: DeckRegistry | None = None):
        if data_dir is None:
            data_dir = get_data_dir()
        self.data_dir = pathlib.Path(data_dir)
        self.config = load_config(self.data_dir)
        self.registry = deck_registry if deck_registry is not None else registry
        self.store = Store(None)
        self.engine = None

    def init_db(self, db_path: pathlib.Path | str | None = None) -> Store:
        """Open the document store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:" for
                     in-memory databases (useful for testing). Defaults to
                     data_dir/<db_name>.

        If the database cannot be opened the app keeps running on defaults
        and nothing is saved.
        """
        if db_path is None:
            db_path = self.data_dir / self.config["db_name"]
        try:
            self.store = Store(init_db(db_path))
        except StorageUnavailable as e:
            print(f"Warning: {e}; progress will not be saved", file=sys.stderr)
            self.store = Store(None)
        return self.store

    def register_decks(self) -> DeckRegistry:
        """Register built-in and user decks. Call once before scheduling."""
        if not self.registry.all():
            register_decks(self.registry, self.data_dir)
        return self.registry

    def load_engine(self):
        """Create the FSRS memory engine with the configured retention."""
        from fluency.memory import MemoryEngine
        self.engine = MemoryEngine(desired_retention=float(self.config["desired_retention"]))
        return self.engine

    def review_session(self, rng=None) -> ReviewSession:
        """Load persisted state and return a ReviewSession over it.

        Call load_engine() first if answers will be submitted.
        """
        settings = storage.load_settings(self.store)
        session = storage.load_session(self.store)
        items = storage.load_items(self.store, self.registry, settings, rng)
        review = ReviewSession(items, session, settings, self.registry, self.engine,
                               store=self.store, rng=rng,
                               new_window=int(self.config["new_item_window"]))
        review.begin()
        return review

    def close(self):
        """Close the database connection."""
        self.store.close()
