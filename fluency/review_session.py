"""ReviewSession: drives the answer pipeline independent of any front end."""

import dataclasses
import sys
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from fluency import speed_stats, storage
from fluency.grading import create_response_record, grade
from fluency.models import (SESSION_GAP, AnswerCheck, Item, Rating, SessionState,
                            Settings, SpeedStats)
from fluency.scheduler import (NEW_ITEM_WINDOW, compute_response_stats, compute_stats,
                               select_next, upcoming_review_counts)
from fluency.sync import sync_items


@dataclass
class ReviewOutcome:
    item: Item
    check: AnswerCheck
    rating: Rating
    response_time_ms: float
    speed_stats: SpeedStats


def _now() -> datetime:
    return datetime.now(timezone.utc)


def roll_session(session: SessionState, now: datetime) -> SessionState:
    """Start a new session if the last review is more than SESSION_GAP ago."""
    if now - session.last_review_date > SESSION_GAP:
        return dataclasses.replace(session, session_start_time=now,
                                   total_session_time_ms=0)
    return session


class ReviewSession:
    def __init__(self, items: list[Item], session: SessionState, settings: Settings,
                 registry, engine, store=None, rng=None,
                 new_window: int = NEW_ITEM_WINDOW, clock=time.monotonic):
        self.items = items
        self.session = session
        self.settings = settings
        self.registry = registry
        self.engine = engine
        self.store = store
        self.rng = rng
        self.new_window = new_window
        self._clock = clock
        self._lock = threading.Lock()
        self.current_item: Item | None = None
        self.serve_time: float | None = None
        self.reviewed = 0
        self._skipped_decks: set[str] = set()

    def begin(self, now: datetime | None = None) -> bool:
        """Apply the session boundary. Returns True if a new session started."""
        now = now or _now()
        with self._lock:
            rolled = roll_session(self.session, now)
            started = rolled is not self.session
            self.session = rolled
        if started and self.store is not None:
            storage.save_session(self.store, rolled)
        return started

    def active_items(self) -> list[Item]:
        """Items of enabled decks. Items whose deck is not registered are left out."""
        items = self.registry.filter_by_enabled(self.items, self.settings.enabled_decks)
        missing = {item.deck_id for item in items if not self.registry.has(item.deck_id)}
        if not missing:
            return items
        for deck_id in sorted(missing - self._skipped_decks):
            print(f"Warning: skipping items of unregistered deck: {deck_id}", file=sys.stderr)
        self._skipped_decks |= missing
        return [item for item in items if item.deck_id not in missing]

    def next_item(self, now: datetime | None = None) -> Item | None:
        now = now or _now()
        with self._lock:
            item = select_next(self.active_items(), now, self.rng, self.new_window)
            self.current_item = item
            self.serve_time = self._clock() if item else None
        return item

    def submit_answer(self, answer: str, now: datetime | None = None,
                      response_time_ms: float | None = None) -> ReviewOutcome:
        """Check, grade, and record an answer to the current item.

        Every new value is computed before any is stored, so an error (for
        instance an unregistered deck) leaves items and session untouched.
        """
        now = now or _now()
        with self._lock:
            item = self.current_item
            if item is None:
                raise ValueError("No current item")
            if response_time_ms is None:
                response_time_ms = (self._clock() - self.serve_time) * 1000

            deck = self.registry.resolve_for_item(item)
            check = deck.check_answer(item, answer)

            session = roll_session(self.session, now)
            deck_stats = session.speed_stats.get(item.deck_id) or speed_stats.create_default()
            new_stats = speed_stats.update(deck_stats, response_time_ms,
                                           self.settings.warmup_target)
            rating = grade(check.correct, response_time_ms, new_stats)
            updated = dataclasses.replace(item, memory=self.engine.advance(item.memory, rating, now))

            record = create_response_record(item.id, check.user_answer, check.correct,
                                             response_time_ms, now)
            items = [updated if i.id == item.id else i for i in self.items]
            session = dataclasses.replace(
                session,
                responses=[*session.responses, record],
                speed_stats={**session.speed_stats, item.deck_id: new_stats},
                last_review_date=now,
                total_session_time_ms=session.total_session_time_ms + response_time_ms,
            )

            self.items = items
            self.session = session
            self.current_item = None
            self.serve_time = None
            self.reviewed += 1

        if self.store is not None:
            storage.save_items(self.store, items)
            storage.save_session(self.store, session)
        return ReviewOutcome(item=updated, check=check, rating=rating,
                             response_time_ms=response_time_ms, speed_stats=new_stats)

    def set_deck_enabled(self, deck_id: str, enabled: bool) -> dict:
        """Enable or disable a deck. Disabling hides items but keeps them."""
        stats = {"new": 0, "unchanged": 0}
        with self._lock:
            decks = list(self.settings.enabled_decks)
            items = self.items
            if enabled:
                deck = self.registry.resolve(deck_id)
                items, stats = sync_items(items, deck.generate_items(self.rng))
                if deck_id not in decks:
                    decks.append(deck_id)
            else:
                decks = [d for d in decks if d != deck_id]
                if self.current_item is not None and self.current_item.deck_id == deck_id:
                    self.current_item = None
            settings = dataclasses.replace(self.settings, enabled_decks=decks)
            self.settings = settings
            self.items = items

        if self.store is not None:
            storage.save_settings(self.store, settings)
            if stats["new"]:
                storage.save_items(self.store, items)
        return stats

    def stats(self, now: datetime | None = None) -> dict:
        return compute_stats(self.active_items(), now or _now())

    def response_stats(self) -> dict:
        return compute_response_stats(self.session.responses)

    def upcoming(self, now: datetime | None = None, days: int = 7) -> list[int]:
        return upcoming_review_counts(self.active_items(), now or _now(), days)
