"""Key-value record store holding the portal's JSON-serialized collections."""
from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional, Sequence

logger = logging.getLogger("mentorportal.store")

USERS = "mockUsers"
CREDENTIALS = "userCredentials"
ASSIGNMENTS = "mentorAssignments"
MEETINGS = "meetings"
MEETING_LOGS = "meetingLogs"
NOTIFICATIONS = "notifications"
SESSION_KEY = "user"

COLLECTIONS = (USERS, CREDENTIALS, ASSIGNMENTS, MEETINGS, MEETING_LOGS, NOTIFICATIONS)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the SQLite-backed record store."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "portal.sqlite3").resolve(strict=False)


def _counter_key(collection: str) -> str:
    return f"{collection}:nextId"


class RecordStore:
    """Collections and single values layered over a string key-value backend.

    Subclasses provide ``get_item``/``set_item``/``remove_item``. Nothing here is
    atomic across keys; concurrent writers simply overwrite each other.
    """

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------
    def load(self, collection: str) -> List[Dict[str, Any]]:
        """Return the stored records, or an empty list if absent or malformed."""

        raw = self.get_item(collection)
        if raw is None:
            return []
        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("Discarding malformed JSON stored under %r", collection)
            return []
        if not isinstance(payload, list):
            logger.warning("Expected a JSON array under %r, found %s", collection, type(payload).__name__)
            return []
        records = [item for item in payload if isinstance(item, dict)]
        if len(records) != len(payload):
            logger.warning("Ignoring %d non-object entries in %r", len(payload) - len(records), collection)
        return records

    def save(self, collection: str, records: Sequence[Dict[str, Any]]) -> None:
        self.set_item(collection, json.dumps(list(records)))

    # ------------------------------------------------------------------
    # Single values
    # ------------------------------------------------------------------
    def load_value(self, key: str) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding malformed JSON stored under %r", key)
            return None

    def save_value(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value))

    def remove(self, key: str) -> None:
        self.remove_item(key)

    def next_id(self, collection: str) -> str:
        """Allocate an identifier that has never been handed out for ``collection``."""

        counter = self.load_value(_counter_key(collection))
        if not isinstance(counter, int) or isinstance(counter, bool):
            counter = 1
        for record in self.load(collection):
            try:
                existing = int(record.get("id"))
            except (TypeError, ValueError):
                continue
            if existing >= counter:
                counter = existing + 1
        self.save_value(_counter_key(collection), counter + 1)
        return str(counter)


class MemoryStore(RecordStore):
    """Store backed by a mutable mapping; a fresh dict unless one is supplied."""

    def __init__(self, mapping: Optional[MutableMapping[str, Any]] = None) -> None:
        self._items: MutableMapping[str, Any] = {} if mapping is None else mapping

    def get_item(self, key: str) -> Optional[str]:
        value = self._items.get(key)
        if value is None:
            return None
        return str(value)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SQLiteStore(RecordStore):
    """Persist the key-value pairs in a single SQLite table."""

    def __init__(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the backing table if it does not already exist."""

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def get_item(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM records WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set_item(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO records (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )

    def remove_item(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM records WHERE key = ?", (key,))


__all__ = [
    "ASSIGNMENTS",
    "COLLECTIONS",
    "CREDENTIALS",
    "MEETINGS",
    "MEETING_LOGS",
    "MemoryStore",
    "NOTIFICATIONS",
    "RecordStore",
    "SESSION_KEY",
    "SQLiteStore",
    "USERS",
    "resolve_database_path",
]
