"""Database schema, initialization, and the JSON document store."""

import json
import pathlib
import sqlite3

from fluency.errors import MalformedSnapshotError, StorageUnavailable

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    key TEXT PRIMARY KEY,
    body JSON NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def init_db(db_path: pathlib.Path | str) -> sqlite3.Connection:
    db_path = pathlib.Path(db_path)
    try:
        if str(db_path) != ":memory:":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), timeout=5, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if str(db_path) != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(SCHEMA)
        conn.commit()
    except (sqlite3.Error, OSError) as e:
        raise StorageUnavailable(f"Cannot open database {db_path}: {e}") from e
    return conn


class Store:
    """Key/value store of JSON documents.

    A Store without a connection behaves as an unavailable medium: every
    operation raises StorageUnavailable.
    """

    def __init__(self, conn: sqlite3.Connection | None):
        self.conn = conn

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageUnavailable("No database connection")
        return self.conn

    def get(self, key: str):
        conn = self._require_conn()
        try:
            row = conn.execute("SELECT body FROM documents WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot read '{key}': {e}") from e
        if row is None:
            return None
        try:
            return json.loads(row["body"])
        except json.JSONDecodeError as e:
            raise MalformedSnapshotError(f"Stored '{key}' is not valid JSON: {e}") from e

    def put(self, key: str, value):
        conn = self._require_conn()
        try:
            conn.execute("""
                INSERT OR REPLACE INTO documents (key, body, updated_at)
                VALUES (?, ?, datetime('now'))
            """, (key, json.dumps(value, ensure_ascii=False)))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot write '{key}': {e}") from e

    def put_many(self, documents: dict):
        """Write several documents in one transaction."""
        conn = self._require_conn()
        try:
            with conn:
                for key, value in documents.items():
                    conn.execute("""
                        INSERT OR REPLACE INTO documents (key, body, updated_at)
                        VALUES (?, ?, datetime('now'))
                    """, (key, json.dumps(value, ensure_ascii=False)))
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot write documents: {e}") from e

    def clear(self):
        conn = self._require_conn()
        try:
            conn.execute("DELETE FROM documents")
            conn.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot clear documents: {e}") from e

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None
