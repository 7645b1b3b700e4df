"""Tests for ReviewSession logic."""

import dataclasses
import random
from datetime import datetime, timedelta, timezone

import pytest

from fluency import storage
from fluency.errors import UnknownDeckError
from fluency.models import (Item, MemoryState, Percentiles, Rating, SessionState,
                            Settings, SpeedStats, State)
from fluency.review_session import ReviewSession, roll_session

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _mult(a, b, due_offset=timedelta(0), state=State.NEW):
    return Item(id=f"mult-{a}x{b}", deck_id="multiplication",
                content={"multiplicand": a, "multiplier": b},
                memory=MemoryState(due=NOW + due_offset, state=state))


def _session(items, registry, engine, settings=None, session=None, **kwargs):
    return ReviewSession(items, session or SessionState.new(NOW - timedelta(minutes=5)),
                         settings or Settings(), registry, engine, **kwargs)


def _clock(*readings):
    it = iter(readings)
    return lambda: next(it)


# ─── Answer pipeline ─────────────────────────────────────────────────────────

def test_next_item(registry, engine):
    review = _session([_mult(7, 8)], registry, engine)
    item = review.next_item(NOW)
    assert item.id == "mult-7x8"
    assert review.current_item is item


def test_next_item_none(registry, engine):
    review = _session([], registry, engine)
    assert review.next_item(NOW) is None
    assert review.serve_time is None


def test_correct_answer_before_warmup_is_good(registry, engine):
    review = _session([_mult(7, 8)], registry, engine)
    review.next_item(NOW)
    outcome = review.submit_answer("56", NOW, response_time_ms=2500)
    assert outcome.check.correct
    assert outcome.rating == Rating.GOOD
    assert engine.calls[0][1] == Rating.GOOD
    assert review.items[0].memory.state == State.REVIEW
    assert review.items[0].memory.due == NOW + timedelta(days=1)


def test_incorrect_answer_is_again(registry, engine):
    review = _session([_mult(7, 8)], registry, engine)
    review.next_item(NOW)
    outcome = review.submit_answer("54", NOW, response_time_ms=900)
    assert not outcome.check.correct
    assert outcome.check.canonical_answer == "56"
    assert outcome.rating == Rating.AGAIN
    record = review.session.responses[-1]
    assert record.correct is False
    assert record.answer == "54"


def test_slow_correct_answer_after_warmup_is_again(registry, engine):
    warm = SpeedStats(samples=[100, 200, 300, 400],
                      percentiles=Percentiles(200, 300, 400, 400), warmed_up=True)
    session = dataclasses.replace(SessionState.new(NOW),
                                  speed_stats={"multiplication": warm})
    review = _session([_mult(7, 8)], registry, engine,
                      settings=Settings(warmup_target=4), session=session)
    review.next_item(NOW)
    outcome = review.submit_answer("56", NOW, response_time_ms=1000)
    # samples become 100..400 + 1000, so p75 is 400
    assert outcome.rating == Rating.AGAIN
    assert outcome.speed_stats.samples == [100, 200, 300, 400, 1000]


def test_fast_correct_answer_after_warmup_is_easy(registry, engine):
    warm = SpeedStats(samples=[100, 200, 300, 400],
                      percentiles=Percentiles(200, 300, 400, 400), warmed_up=True)
    session = dataclasses.replace(SessionState.new(NOW),
                                  speed_stats={"multiplication": warm})
    review = _session([_mult(7, 8)], registry, engine,
                      settings=Settings(warmup_target=4), session=session)
    review.next_item(NOW)
    assert review.submit_answer("56", NOW, response_time_ms=150).rating == Rating.EASY


def test_speed_stats_kept_per_deck(registry, engine):
    katakana = registry.resolve("katakana").new_item(
        "katakana-ア", {"character": "ア", "romaji": ["a"]}, NOW)
    review = _session([_mult(7, 8, -timedelta(hours=1)), katakana], registry, engine,
                      settings=Settings(enabled_decks=["multiplication", "katakana"]))
    assert review.next_item(NOW).deck_id == "multiplication"
    review.submit_answer("56", NOW, response_time_ms=700)
    assert review.next_item(NOW).deck_id == "katakana"
    review.submit_answer("a", NOW, response_time_ms=1300)
    assert review.session.speed_stats["multiplication"].samples == [700.0]
    assert review.session.speed_stats["katakana"].samples == [1300.0]


def test_response_time_from_clock(registry, engine):
    review = _session([_mult(7, 8)], registry, engine, clock=_clock(10.0, 11.5))
    review.next_item(NOW)
    outcome = review.submit_answer("56", NOW)
    assert outcome.response_time_ms == pytest.approx(1500)


def test_submit_without_current_item(registry, engine):
    review = _session([_mult(7, 8)], registry, engine)
    with pytest.raises(ValueError):
        review.submit_answer("56", NOW, response_time_ms=100)


def test_unknown_deck_leaves_state_unchanged(registry, engine):
    ghost = Item(id="ghost-1", deck_id="ghost", content={}, memory=MemoryState.new(NOW))
    session = SessionState.new(NOW)
    review = _session([ghost], registry, engine, session=session,
                      settings=Settings(enabled_decks=["ghost"]))
    # Served before its deck went away
    review.current_item = ghost
    review.serve_time = 0.0
    with pytest.raises(UnknownDeckError):
        review.submit_answer("x", NOW, response_time_ms=100)
    assert review.items == [ghost]
    assert review.session is session
    assert review.session.responses == []
    assert engine.calls == []
    assert review.reviewed == 0


def test_unregistered_deck_items_not_served(registry, engine, capsys):
    ghost = Item(id="ghost-1", deck_id="ghost", content={},
                 memory=MemoryState(due=NOW - timedelta(days=1)))
    review = _session([ghost, _mult(7, 8)], registry, engine,
                      settings=Settings(enabled_decks=["ghost", "multiplication"]))
    assert review.next_item(NOW).id == "mult-7x8"
    assert review.submit_answer("56", NOW, response_time_ms=500).check.correct
    assert review.next_item(NOW).id == "mult-7x8"
    assert review.stats(NOW)["total"] == 1
    assert ghost in review.items
    err = capsys.readouterr().err
    assert err.count("unregistered deck: ghost") == 1


def test_item_replaced_not_mutated(registry, engine):
    original = _mult(7, 8)
    review = _session([original], registry, engine)
    review.next_item(NOW)
    review.submit_answer("56", NOW, response_time_ms=100)
    assert original.memory.state == State.NEW
    assert review.items[0] is not original
    assert review.reviewed == 1
    assert review.current_item is None


# ─── Session boundary ────────────────────────────────────────────────────────

def test_roll_session_within_gap():
    session = SessionState.new(NOW - timedelta(hours=4))
    assert roll_session(session, NOW) is session


def test_roll_session_after_gap():
    session = dataclasses.replace(SessionState.new(NOW - timedelta(hours=5)),
                                  total_session_time_ms=9000)
    rolled = roll_session(session, NOW)
    assert rolled.session_start_time == NOW
    assert rolled.total_session_time_ms == 0
    assert rolled.last_review_date == session.last_review_date


def test_begin_starts_new_session(registry, engine, store):
    stale = SessionState.new(NOW - timedelta(hours=6))
    review = _session([], registry, engine, session=stale, store=store)
    assert review.begin(NOW)
    assert review.session.session_start_time == NOW
    assert store.get(storage.SESSION)["sessionStartTime"] == "2025-01-01T12:00:00Z"


def test_begin_keeps_recent_session(registry, engine):
    recent = SessionState.new(NOW - timedelta(hours=1))
    review = _session([], registry, engine, session=recent)
    assert not review.begin(NOW)
    assert review.session is recent


def test_total_session_time_accumulates(registry, engine):
    review = _session([_mult(7, 8), _mult(6, 9)], registry, engine,
                      rng=random.Random(0))
    for latency in (1000, 2000):
        item = review.next_item(NOW)
        review.submit_answer(registry.resolve("multiplication").canonical_answer(item),
                             NOW, response_time_ms=latency)
    assert review.session.total_session_time_ms == 3000
    assert len(review.session.responses) == 2


def test_gap_during_review_resets_total(registry, engine):
    session = dataclasses.replace(SessionState.new(NOW - timedelta(hours=5)),
                                  total_session_time_ms=9000)
    review = _session([_mult(7, 8)], registry, engine, session=session)
    review.next_item(NOW)
    review.submit_answer("56", NOW, response_time_ms=1200)
    assert review.session.session_start_time == NOW
    assert review.session.total_session_time_ms == 1200
    assert review.session.last_review_date == NOW


# ─── Deck enable / disable ───────────────────────────────────────────────────

def _katakana_review(registry, engine, **kwargs):
    items = registry.resolve("katakana").generate_items(random.Random(0))
    reviewed = dataclasses.replace(
        items[0], memory=MemoryState(due=NOW + timedelta(days=3), stability=4.0,
                                     state=State.REVIEW, reps=2))
    items = [reviewed, *items[1:]]
    settings = Settings(enabled_decks=["multiplication", "katakana"])
    return _session(items, registry, engine, settings=settings, **kwargs), reviewed


def test_disable_hides_items(registry, engine):
    review, _ = _katakana_review(registry, engine)
    review.set_deck_enabled("katakana", False)
    assert review.active_items() == []
    assert len(review.items) == 46
    assert review.settings.enabled_decks == ["multiplication"]


def test_disable_clears_current_item(registry, engine):
    review, _ = _katakana_review(registry, engine)
    review.next_item(NOW)
    assert review.current_item.deck_id == "katakana"
    review.set_deck_enabled("katakana", False)
    assert review.current_item is None


def test_reenable_preserves_memory(registry, engine):
    review, reviewed = _katakana_review(registry, engine)
    review.set_deck_enabled("katakana", False)
    stats = review.set_deck_enabled("katakana", True)
    assert stats == {"new": 0, "unchanged": 46}
    kept = next(i for i in review.items if i.id == reviewed.id)
    assert kept.memory == reviewed.memory
    assert review.settings.enabled_decks == ["multiplication", "katakana"]


def test_enable_generates_missing_items(registry, engine, store):
    review, _ = _katakana_review(registry, engine, store=store)
    stats = review.set_deck_enabled("subtraction", True)
    assert stats["new"] == 4851
    assert review.stats(NOW)["total"] == 46 + 4851
    assert store.get(storage.SETTINGS)["enabledDecks"] == \
        ["multiplication", "katakana", "subtraction"]
    assert len(store.get(storage.ITEMS)) == 46 + 4851


def test_enable_unknown_deck(registry, engine):
    review, _ = _katakana_review(registry, engine)
    with pytest.raises(UnknownDeckError):
        review.set_deck_enabled("klingon", True)
    assert review.settings.enabled_decks == ["multiplication", "katakana"]


# ─── Persistence and stats ───────────────────────────────────────────────────

def test_answers_saved_to_store(registry, engine, store):
    settings = Settings()
    review = _session([_mult(7, 8)], registry, engine, settings=settings, store=store)
    review.next_item(NOW)
    review.submit_answer("56", NOW, response_time_ms=800)
    assert storage.load_items(store, registry, settings) == review.items
    assert storage.load_session(store, NOW) == review.session


def test_stats_and_upcoming(registry, engine):
    items = [_mult(7, 8, -timedelta(minutes=1)), _mult(6, 9, timedelta(days=2), State.REVIEW)]
    review = _session(items, registry, engine)
    stats = review.stats(NOW)
    assert stats["total"] == 2
    assert stats["due"] == 1
    assert review.upcoming(NOW) == [0, 0, 1, 0, 0, 0, 0]


def test_response_stats_follow_answers(registry, engine):
    review = _session([_mult(7, 8), _mult(6, 9, timedelta(minutes=1))], registry, engine)
    review.next_item(NOW)
    review.submit_answer("56", NOW, response_time_ms=1200)
    review.next_item(NOW + timedelta(minutes=2))
    review.submit_answer("55", NOW + timedelta(minutes=2), response_time_ms=3000)
    stats = review.response_stats()
    assert stats["responses"] == 2
    assert stats["accuracy"] == 0.5
    assert stats["average_correct_time_ms"] == 1200
