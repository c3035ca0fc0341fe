"""
Persisted slot storage for OHS.

Each logical dataset (users, license, workers, last sync time,
organizations) lives in its own named slot holding one opaque string.
Writes replace the whole slot; there are no partial updates.
"""

import logging
import os
import sqlite3
from datetime import datetime
from typing import Dict, List, Optional, Protocol, runtime_checkable

from . import config

logger = logging.getLogger(__name__)

STORAGE_KEY_ENV = "OHS_STORAGE_KEY"


@runtime_checkable
class SlotStore(Protocol):
    """Key-addressed storage of whole-document string values."""

    def get(self, slot: str) -> Optional[str]:
        ...

    def put(self, slot: str, value: str) -> None:
        ...

    def delete(self, slot: str) -> None:
        ...


class MemorySlotStore:
    """Dictionary-backed slot store, used for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._slots: Dict[str, str] = dict(initial or {})

    def get(self, slot: str) -> Optional[str]:
        return self._slots.get(slot)

    def put(self, slot: str, value: str) -> None:
        self._slots[slot] = value

    def delete(self, slot: str) -> None:
        self._slots.pop(slot, None)

    def keys(self) -> List[str]:
        return sorted(self._slots)


class SQLiteSlotStore:
    """Slot store persisted in a single SQLite table.

    Args:
        db_file: Database path. Defaults to ``config.DB_FILE`` at call time.
    """

    def __init__(self, db_file: Optional[str] = None):
        self.db_file = db_file or config.DB_FILE
        self.init_database()

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with WAL mode enabled."""
        conn = sqlite3.connect(self.db_file)
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    def init_database(self) -> None:
        """Create the slots table if needed."""
        with sqlite3.connect(self.db_file) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT
                )
            ''')

    def get(self, slot: str) -> Optional[str]:
        conn = self.get_connection()
        try:
            row = conn.execute("SELECT value FROM slots WHERE key = ?", (slot,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def put(self, slot: str, value: str) -> None:
        conn = self.get_connection()
        try:
            with conn:
                conn.execute("""
                    INSERT INTO slots (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                   updated_at = excluded.updated_at
                """, (slot, value, datetime.now().isoformat()))
        finally:
            conn.close()
        logger.debug(f"Slot {slot} written ({len(value)} chars)")

    def delete(self, slot: str) -> None:
        conn = self.get_connection()
        try:
            with conn:
                conn.execute("DELETE FROM slots WHERE key = ?", (slot,))
        finally:
            conn.close()

    def keys(self) -> List[str]:
        conn = self.get_connection()
        try:
            rows = conn.execute("SELECT key FROM slots ORDER BY key").fetchall()
        finally:
            conn.close()
        return [r[0] for r in rows]

    def verify_integrity(self) -> tuple:
        """Run SQLite integrity check. Returns (is_ok, message)."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_file)
            result = conn.execute("PRAGMA integrity_check").fetchone()[0]
            if result == "ok":
                return True, "Database integrity verified"
            logger.warning(f"Database integrity issues: {result}")
            return False, f"Integrity issues found: {result}"
        except sqlite3.DatabaseError as e:
            logger.error(f"Database error during integrity check: {e}")
            return False, f"Database is corrupted or invalid: {e}"
        finally:
            if conn:
                conn.close()


class EncodedSlots:
    """Reads and writes structured values through a codec.

    Args:
        store: Underlying slot store.
        codec: Storage codec (see ``ohs.encryption``).
    """

    def __init__(self, store: SlotStore, codec):
        self.store = store
        self.codec = codec

    def read(self, slot: str):
        """Return the decoded value, or None if absent or undecodable."""
        raw = self.store.get(slot)
        if raw is None:
            return None
        value = self.codec.decode(raw)
        if value is None:
            logger.warning(f"Slot {slot} could not be decoded")
        return value

    def write(self, slot: str, value) -> None:
        encoded = self.codec.encode(value)
        if not encoded:
            raise ValueError(f"Value for slot {slot} is not serializable")
        self.store.put(slot, encoded)

    def read_plain(self, slot: str) -> Optional[str]:
        return self.store.get(slot)

    def write_plain(self, slot: str, value: str) -> None:
        self.store.put(slot, value)

    def delete(self, slot: str) -> None:
        self.store.delete(slot)


def open_slots(db_file: Optional[str] = None, codec=None) -> EncodedSlots:
    """Open the SQLite slot store with the configured codec."""
    from .encryption import get_codec

    if codec is None:
        name = config.load_config().get('STORAGE_CODEC', 'obfuscation')
        kwargs = {}
        if name == 'fernet':
            kwargs['key'] = os.environ.get(STORAGE_KEY_ENV)
        codec = get_codec(name, **kwargs)
    return EncodedSlots(SQLiteSlotStore(db_file), codec)
