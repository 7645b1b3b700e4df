"""Shared test fixtures."""

import dataclasses
import pathlib
import shutil
from datetime import datetime, timedelta, timezone

import pytest

from fluency.app import App
from fluency.db import Store, init_db
from fluency.decks import DeckRegistry, register_decks
from fluency.models import State

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeEngine:
    """Memory engine stand-in: every review schedules the item one day out."""

    def __init__(self):
        self.calls = []

    def advance(self, state, rating, now):
        self.calls.append((state, rating, now))
        return dataclasses.replace(state, due=now + timedelta(days=1), state=State.REVIEW,
                                   reps=state.reps + 1, last_review=now)


@pytest.fixture
def tmp_data_dir(tmp_path):
    """Create a temporary data directory with a decks/ subdir."""
    data_dir = tmp_path / "data_dir"
    (data_dir / "decks").mkdir(parents=True)

    # Copy the example user deck
    example_deck = pathlib.Path(__file__).parent.parent / "example_data_dir" / "decks" / "addition.py"
    if example_deck.exists():
        shutil.copy(example_deck, data_dir / "decks" / "addition.py")

    return data_dir


@pytest.fixture
def store():
    """In-memory document store."""
    s = Store(init_db(":memory:"))
    yield s
    s.close()


@pytest.fixture
def registry():
    """Registry with the built-in decks only."""
    return register_decks(DeckRegistry())


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def app(tmp_data_dir):
    """App instance with tmp data_dir, its own registry, and in-memory DB."""
    a = App(data_dir=tmp_data_dir, deck_registry=DeckRegistry())
    a.init_db(":memory:")
    yield a
    a.close()
