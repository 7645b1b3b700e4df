"""Loading and saving items, session, and settings.

Loads never fail: unreadable or corrupt documents fall back to fresh
defaults. Saves are best effort and only print a warning on failure.
"""

import sys
from dataclasses import dataclass
from datetime import datetime, timezone

from fluency import snapshot
from fluency.db import Store
from fluency.errors import MalformedSnapshotError, StorageUnavailable
from fluency.models import Item, SessionState, Settings
from fluency.sync import sync_items

ITEMS = "items"
SESSION = "session"
SETTINGS = "settings"
DATA_VERSION = "data_version"


@dataclass
class ImportResult:
    success: bool
    error: str | None = None


def _save(store: Store, key: str, value) -> bool:
    try:
        store.put_many({key: value, DATA_VERSION: snapshot.DATA_VERSION})
    except StorageUnavailable as e:
        print(f"Warning: failed to save {key}: {e}", file=sys.stderr)
        return False
    return True


def _read(store: Store, key: str):
    try:
        return store.get(key)
    except (StorageUnavailable, MalformedSnapshotError) as e:
        print(f"Warning: failed to load {key}: {e}", file=sys.stderr)
        return None


def load_settings(store: Store) -> Settings:
    raw = _read(store, SETTINGS)
    if raw is not None:
        try:
            settings, migrated = snapshot.normalize_settings(raw)
        except MalformedSnapshotError as e:
            print(f"Warning: discarding stored settings: {e}", file=sys.stderr)
        else:
            if migrated:
                print("Migrating settings to current format", file=sys.stderr)
                save_settings(store, settings)
            return settings

    settings = Settings()
    save_settings(store, settings)
    return settings


def save_settings(store: Store, settings: Settings) -> bool:
    return _save(store, SETTINGS, snapshot.dump_settings(settings))


def load_session(store: Store, now: datetime | None = None) -> SessionState:
    raw = _read(store, SESSION)
    if raw is not None:
        try:
            session, migrated = snapshot.normalize_session(raw)
        except MalformedSnapshotError as e:
            print(f"Warning: discarding stored session: {e}", file=sys.stderr)
        else:
            if migrated:
                print("Migrating session data to per-deck format", file=sys.stderr)
                save_session(store, session)
            return session

    session = SessionState.new(now or datetime.now(timezone.utc))
    save_session(store, session)
    return session


def save_session(store: Store, session: SessionState) -> bool:
    return _save(store, SESSION, snapshot.dump_session(session))


def load_items(store: Store, registry, settings: Settings, rng=None) -> list[Item]:
    """Load the item pool, generating items for enabled decks that have none."""
    raw = _read(store, ITEMS)
    items: list[Item] = []
    changed = True
    if raw is not None:
        try:
            items, changed = snapshot.normalize_items(raw)
        except MalformedSnapshotError as e:
            print(f"Warning: discarding stored items: {e}", file=sys.stderr)
            items, changed = [], True
        else:
            if changed:
                print(f"Migrated {len(items)} items to deck format", file=sys.stderr)

    present = {item.deck_id for item in items}
    missing = [d for d in settings.enabled_decks if d not in present]
    if missing:
        items, stats = sync_items(items, registry.generate_items(missing, rng))
        changed = changed or stats["new"] > 0

    if changed:
        save_items(store, items)
    return items


def save_items(store: Store, items: list[Item]) -> bool:
    return _save(store, ITEMS, snapshot.dump_items(items))


def clear_all(store: Store) -> None:
    try:
        store.clear()
    except StorageUnavailable as e:
        print(f"Warning: failed to clear data: {e}", file=sys.stderr)


def export_data(items: list[Item], session: SessionState, settings: Settings,
                now: datetime | None = None) -> str:
    return snapshot.export_bundle(items, session, settings, now)


def import_data(store: Store, text: str) -> ImportResult:
    """Validate a backup and replace all stored documents with it.

    Nothing is written unless the whole bundle is valid.
    """
    try:
        items, session, settings = snapshot.parse_bundle(text)
    except MalformedSnapshotError as e:
        return ImportResult(success=False, error=str(e))
    try:
        store.put_many({
            ITEMS: snapshot.dump_items(items),
            SESSION: snapshot.dump_session(session),
            SETTINGS: snapshot.dump_settings(settings),
            DATA_VERSION: snapshot.DATA_VERSION,
        })
    except StorageUnavailable as e:
        return ImportResult(success=False, error=str(e))
    return ImportResult(success=True)
