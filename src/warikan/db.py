"""SQLite snapshot store for Warikan."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from .exceptions import StorageError
from .export import dump_state, parse_state
from .models import LedgerState, default_state

logger = logging.getLogger(__name__)

STORAGE_KEY = "warikan_app_v1"


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Whole-document snapshots
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS snapshots (
                key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    # ========================================================================
    # Snapshot operations
    # ========================================================================

    def load_state(self, key: str = STORAGE_KEY) -> LedgerState:
        """
        Load the ledger state.

        A missing document, or one without projects, yields the sample state.
        A corrupt document is logged and also replaced by the sample state.
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT payload FROM snapshots WHERE key = ?", (key,))
        row = cursor.fetchone()
        if not row:
            logger.debug(f"No stored ledger under '{key}', using sample data")
            return default_state()

        try:
            state = parse_state(row["payload"])
        except StorageError as e:
            logger.warning(f"Stored ledger under '{key}' is unreadable: {e}")
            return default_state()

        if not state.projects:
            return default_state()
        return state

    def save_state(self, state: LedgerState, key: str = STORAGE_KEY):
        """Persist the whole ledger state."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO snapshots (key, payload, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                payload = excluded.payload,
                updated_at = excluded.updated_at
            """,
            (key, dump_state(state), datetime.now().isoformat()),
        )
        self.conn.commit()

    def delete_state(self, key: str = STORAGE_KEY):
        """Remove the stored ledger state."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM snapshots WHERE key = ?", (key,))
        self.conn.commit()
