"""Persisted document shapes, schema migration, and export bundles.

Three documents cross the storage boundary: items, session, and settings.
Each has one normalizer that accepts every historical shape and returns the
current in-memory form plus a flag telling the caller whether anything was
upcast (so it can write the current shape back). Old shapes are recognized
by which keys are present; the stored version tag is not trusted.

Historical shapes handled:

- items before decks existed: ``{id, multiplicand, multiplier, fsrsCard}``
- items whose memory state is stored under ``fsrsCard``
- one flat speed-stats object for the whole app instead of one per deck
- speed stats as ``{responses, percentiles, isWarmedUp}``
- response records as ``{cardId, answer, correct, responseTime, timestamp}``
- settings without ``enabledDecks``
"""

import json
from datetime import datetime, timezone

from fluency.errors import MalformedSnapshotError
from fluency.models import (Item, MemoryState, ResponseRecord, SessionState,
                            Settings, SpeedStats, State)
from fluency.speed_stats import calculate_percentiles

DATA_VERSION = "2.0.0"
EXPORT_VERSION = "1.0.0"
LEGACY_DECK = "multiplication"


# ─── Timestamps ──────────────────────────────────────────────────────────────

def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 timestamp. `Z` and naive values are read as UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise MalformedSnapshotError(f"Invalid timestamp: {value!r}") from None
    else:
        raise MalformedSnapshotError(f"Invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# ─── Items ───────────────────────────────────────────────────────────────────

def _to_number(value, what: str, cast=float):
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise MalformedSnapshotError(f"Invalid {what}: {value!r}") from None


def _load_memory(raw) -> MemoryState:
    if not isinstance(raw, dict) or "due" not in raw:
        raise MalformedSnapshotError("Memory state must be an object with a 'due' timestamp")
    try:
        state = State(int(raw.get("state", State.NEW)))
    except (TypeError, ValueError):
        raise MalformedSnapshotError(f"Unknown memory state: {raw.get('state')!r}") from None
    last_review = raw.get("last_review")
    return MemoryState(
        due=parse_timestamp(raw["due"]),
        stability=_to_number(raw.get("stability", 0), "stability"),
        difficulty=_to_number(raw.get("difficulty", 0), "difficulty"),
        elapsed_days=_to_number(raw.get("elapsed_days", 0), "elapsed_days"),
        scheduled_days=_to_number(raw.get("scheduled_days", 0), "scheduled_days"),
        reps=_to_number(raw.get("reps", 0), "reps", int),
        lapses=_to_number(raw.get("lapses", 0), "lapses", int),
        state=state,
        last_review=parse_timestamp(last_review) if last_review else None,
    )


def dump_memory(memory: MemoryState) -> dict:
    return {
        "due": format_timestamp(memory.due),
        "stability": memory.stability,
        "difficulty": memory.difficulty,
        "elapsed_days": memory.elapsed_days,
        "scheduled_days": memory.scheduled_days,
        "reps": memory.reps,
        "lapses": memory.lapses,
        "state": int(memory.state),
        "last_review": format_timestamp(memory.last_review),
    }


def is_legacy_item(raw: dict) -> bool:
    return "multiplicand" in raw and "multiplier" in raw and "deckId" not in raw


def is_current_item(raw: dict) -> bool:
    return "deckId" in raw and "content" in raw


def _upcast_legacy_item(raw: dict) -> dict:
    return {
        "id": raw.get("id"),
        "deckId": LEGACY_DECK,
        "content": {"multiplicand": raw["multiplicand"], "multiplier": raw["multiplier"]},
        "memoryState": raw.get("fsrsCard"),
    }


def normalize_items(raw) -> tuple[list[Item], bool]:
    if not isinstance(raw, list):
        raise MalformedSnapshotError("Items must be a list")
    items = []
    migrated = False
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise MalformedSnapshotError(f"Item {index} is not an object")
        if is_legacy_item(entry):
            entry = _upcast_legacy_item(entry)
            migrated = True
        elif "fsrsCard" in entry and "memoryState" not in entry:
            entry = {**entry, "memoryState": entry["fsrsCard"]}
            migrated = True
        if not entry.get("id"):
            raise MalformedSnapshotError(f"Item {index} has no id")
        if not is_current_item(entry):
            raise MalformedSnapshotError(f"Item {entry['id']} has neither deckId/content "
                                         "nor multiplicand/multiplier")
        if not isinstance(entry["content"], dict):
            raise MalformedSnapshotError(f"Item {entry['id']} content must be an object")
        items.append(Item(id=str(entry["id"]), deck_id=entry["deckId"],
                          content=entry["content"],
                          memory=_load_memory(entry.get("memoryState"))))
    return items, migrated


def dump_items(items: list[Item]) -> list[dict]:
    return [{"id": item.id, "deckId": item.deck_id, "content": item.content,
             "memoryState": dump_memory(item.memory)} for item in items]


# ─── Session ─────────────────────────────────────────────────────────────────

def _is_flat_speed_stats(raw: dict) -> bool:
    return "percentiles" in raw and ("samples" in raw or "responses" in raw)


def _load_speed_stats(raw) -> tuple[SpeedStats, bool]:
    if not isinstance(raw, dict):
        raise MalformedSnapshotError("Speed stats must be an object")
    legacy = "responses" in raw or "isWarmedUp" in raw
    samples = raw.get("samples", raw.get("responses", []))
    if not isinstance(samples, list):
        raise MalformedSnapshotError("Speed stats samples must be a list")
    samples = [_to_number(s, "speed sample") for s in samples]
    warmed_up = bool(raw.get("warmedUp", raw.get("isWarmedUp", False)))
    return SpeedStats(samples=samples, percentiles=calculate_percentiles(samples),
                      warmed_up=warmed_up), legacy


def dump_speed_stats(stats: SpeedStats) -> dict:
    p = stats.percentiles
    return {"samples": list(stats.samples),
            "percentiles": {"p25": p.p25, "p50": p.p50, "p75": p.p75, "p90": p.p90},
            "warmedUp": stats.warmed_up}


def _load_response(raw) -> tuple[ResponseRecord, bool]:
    if not isinstance(raw, dict):
        raise MalformedSnapshotError("Response record must be an object")
    legacy = "cardId" in raw or "responseTime" in raw
    item_id = raw.get("itemId", raw.get("cardId"))
    if item_id is None or "timestamp" not in raw:
        raise MalformedSnapshotError("Response record needs an item id and a timestamp")
    return ResponseRecord(
        item_id=str(item_id),
        answer=str(raw.get("answer", "")),
        correct=bool(raw.get("correct", False)),
        response_time_ms=_to_number(raw.get("responseTimeMs", raw.get("responseTime", 0)),
                                    "response time"),
        timestamp=parse_timestamp(raw["timestamp"]),
    ), legacy


def normalize_session(raw) -> tuple[SessionState, bool]:
    if not isinstance(raw, dict):
        raise MalformedSnapshotError("Session must be an object")
    if not raw.get("lastReviewDate"):
        raise MalformedSnapshotError("Session has no lastReviewDate")
    migrated = False

    last_review = parse_timestamp(raw["lastReviewDate"])
    if raw.get("sessionStartTime"):
        start = parse_timestamp(raw["sessionStartTime"])
    else:
        start = last_review
        migrated = True
    if "totalSessionTime" not in raw:
        migrated = True

    raw_responses = raw.get("responses") or []
    if not isinstance(raw_responses, list):
        raise MalformedSnapshotError("Session responses must be a list")
    responses = []
    for entry in raw_responses:
        record, legacy = _load_response(entry)
        migrated = migrated or legacy
        responses.append(record)

    speed_raw = raw.get("speedStats")
    if not speed_raw:
        speed_raw = {}
        migrated = migrated or "speedStats" not in raw
    elif not isinstance(speed_raw, dict):
        raise MalformedSnapshotError("speedStats must be an object")
    elif _is_flat_speed_stats(speed_raw):
        speed_raw = {LEGACY_DECK: speed_raw}
        migrated = True
    speed_stats = {}
    for deck_id, entry in speed_raw.items():
        stats, legacy = _load_speed_stats(entry)
        migrated = migrated or legacy
        speed_stats[deck_id] = stats

    total = _to_number(raw.get("totalSessionTime") or 0, "totalSessionTime")
    session = SessionState(last_review_date=last_review, session_start_time=start,
                           total_session_time_ms=total,
                           responses=responses, speed_stats=speed_stats)
    return session, migrated


def dump_session(session: SessionState) -> dict:
    return {
        "responses": [{"itemId": r.item_id, "answer": r.answer, "correct": r.correct,
                       "responseTimeMs": r.response_time_ms,
                       "timestamp": format_timestamp(r.timestamp)}
                      for r in session.responses],
        "speedStats": {deck_id: dump_speed_stats(stats)
                       for deck_id, stats in session.speed_stats.items()},
        "lastReviewDate": format_timestamp(session.last_review_date),
        "sessionStartTime": format_timestamp(session.session_start_time),
        "totalSessionTime": session.total_session_time_ms,
    }


# ─── Settings ────────────────────────────────────────────────────────────────

_SETTINGS_KEYS = ("warmupTarget", "soundEnabled", "showUpcomingReviews", "enabledDecks")


def normalize_settings(raw) -> tuple[Settings, bool]:
    if not isinstance(raw, dict):
        raise MalformedSnapshotError("Settings must be an object")
    defaults = Settings()
    migrated = any(key not in raw for key in _SETTINGS_KEYS)
    warmup_target = max(1, _to_number(raw.get("warmupTarget", defaults.warmup_target),
                                      "warmupTarget", int))
    enabled = raw.get("enabledDecks")
    if enabled is None:
        enabled = list(defaults.enabled_decks)
    elif not isinstance(enabled, list):
        raise MalformedSnapshotError("enabledDecks must be a list")
    settings = Settings(
        warmup_target=warmup_target,
        sound_enabled=bool(raw.get("soundEnabled", defaults.sound_enabled)),
        show_upcoming_reviews=bool(raw.get("showUpcomingReviews",
                                           defaults.show_upcoming_reviews)),
        enabled_decks=list(dict.fromkeys(str(d) for d in enabled)),
    )
    return settings, migrated


def dump_settings(settings: Settings) -> dict:
    return {"warmupTarget": settings.warmup_target,
            "soundEnabled": settings.sound_enabled,
            "showUpcomingReviews": settings.show_upcoming_reviews,
            "enabledDecks": list(settings.enabled_decks)}


# ─── Export / import ─────────────────────────────────────────────────────────

def export_bundle(items: list[Item], session: SessionState, settings: Settings,
                  now: datetime | None = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    bundle = {
        "version": EXPORT_VERSION,
        "exportDate": format_timestamp(now),
        "items": dump_items(items),
        "session": dump_session(session),
        "settings": dump_settings(settings),
    }
    return json.dumps(bundle, indent=2, ensure_ascii=False)


def validate_bundle(data) -> None:
    """Raise MalformedSnapshotError describing the first structural problem."""
    if not isinstance(data, dict):
        raise MalformedSnapshotError("Backup must be a JSON object")
    for key in ("version", "exportDate"):
        if not isinstance(data.get(key), str) or not data[key]:
            raise MalformedSnapshotError(f"Backup is missing '{key}'")

    items = data.get("items", data.get("cards"))
    if not isinstance(items, list):
        raise MalformedSnapshotError("Backup is missing the item list")
    if not items:
        raise MalformedSnapshotError("Backup contains no items")
    for index, item in enumerate(items):
        if not isinstance(item, dict) or not item.get("id"):
            raise MalformedSnapshotError(f"Item {index} has no id")
        if not (item.get("memoryState") or item.get("fsrsCard")):
            raise MalformedSnapshotError(f"Item {item['id']} has no memory state")
        if not (is_current_item(item) or is_legacy_item(item)):
            raise MalformedSnapshotError(f"Item {item['id']} has neither deckId/content "
                                         "nor multiplicand/multiplier")

    session = data.get("session", data.get("sessionData"))
    if not isinstance(session, dict):
        raise MalformedSnapshotError("Backup is missing session data")
    if not isinstance(session.get("responses"), list):
        raise MalformedSnapshotError("Session data has no response list")
    if session.get("speedStats") is None:
        raise MalformedSnapshotError("Session data has no speedStats")
    if not session.get("lastReviewDate"):
        raise MalformedSnapshotError("Session data has no lastReviewDate")

    if not isinstance(data.get("settings"), dict):
        raise MalformedSnapshotError("Backup is missing settings")


def parse_bundle(text: str) -> tuple[list[Item], SessionState, Settings]:
    """Parse and fully validate an export bundle. Nothing is returned partially."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedSnapshotError(f"Backup is not valid JSON: {e}") from None
    validate_bundle(data)
    items, _ = normalize_items(data.get("items", data.get("cards")))
    session, _ = normalize_session(data.get("session", data.get("sessionData")))
    settings, _ = normalize_settings(data["settings"])
    return items, session, settings
