# =============================================================================
# caretrack_core/offline/local_database.py
# Local SQLite Storage for the Pending-Write Queue
# =============================================================================
"""
LocalDatabase - SQLite file that keeps queued sessions across restarts.

Features:
- Automatic schema creation
- Whole-queue save inside one transaction
- Rows that can no longer be decoded are moved to quarantined_sessions on
  load, so a later save cannot delete them
- Thread-local connections
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

from caretrack_core.config import DEFAULT_QUEUE_DB_PATH
from caretrack_core.data.session_model import from_record, to_record
from caretrack_core.errors import CareTrackError, QueueStorageError
from caretrack_core.logging import get_logger
from caretrack_core.offline.pending_queue import PendingQueueEntry

logger = get_logger(__name__)


class LocalDatabase:
    """
    SQLite-backed QueueStorage.

    Row order (position) is the enqueue order.
    """

    SCHEMA = {
        "pending_sessions": """
            CREATE TABLE IF NOT EXISTS pending_sessions (
                position INTEGER PRIMARY KEY,
                temp_id TEXT NOT NULL UNIQUE,
                queued_at REAL NOT NULL,
                session_json TEXT NOT NULL
            )
        """,
        "quarantined_sessions": """
            CREATE TABLE IF NOT EXISTS quarantined_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                temp_id TEXT NOT NULL,
                queued_at REAL,
                session_json TEXT,
                error TEXT NOT NULL,
                quarantined_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
        """,
    }

    def __init__(self, db_path: Optional[Path] = None):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_QUEUE_DB_PATH
        self._local = threading.local()
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._local.connection = sqlite3.connect(str(self.db_path))
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return
        try:
            with self.transaction() as conn:
                for table_name, schema in self.SCHEMA.items():
                    conn.execute(schema)
                    logger.debug(f"Created/verified table: {table_name}")
        except (sqlite3.Error, OSError) as e:
            raise QueueStorageError(
                f"Cannot open local queue database: {e}",
                path=str(self.db_path),
            ) from e

        self._initialized = True
        logger.info(f"Local queue database initialized at: {self.db_path}")

    def load(self) -> List[PendingQueueEntry]:
        """Read every queued entry in enqueue order."""
        self.initialize()
        try:
            rows = self._get_connection().execute(
                "SELECT temp_id, queued_at, session_json FROM pending_sessions ORDER BY position"
            ).fetchall()
        except sqlite3.Error as e:
            raise QueueStorageError(f"Cannot read pending sessions: {e}", path=str(self.db_path)) from e

        entries = []
        unreadable = []
        for row in rows:
            try:
                session = from_record(json.loads(row["session_json"]))
            except (json.JSONDecodeError, TypeError, AttributeError, CareTrackError) as e:
                logger.error(f"Quarantining unreadable pending session {row['temp_id']}: {e}")
                unreadable.append((row["temp_id"], row["queued_at"], row["session_json"], str(e)))
                continue
            entries.append(PendingQueueEntry(
                temp_id=row["temp_id"],
                queued_at=row["queued_at"],
                session=session,
            ))

        if unreadable:
            self._quarantine(unreadable)
        return entries

    def _quarantine(self, rows: List[tuple]) -> None:
        """Move undecodable rows out of the queue table, keeping them verbatim."""
        try:
            with self.transaction() as conn:
                conn.executemany(
                    """
                    INSERT INTO quarantined_sessions (temp_id, queued_at, session_json, error)
                    VALUES (?, ?, ?, ?)
                    """,
                    rows,
                )
                conn.executemany(
                    "DELETE FROM pending_sessions WHERE temp_id = ?",
                    [(row[0],) for row in rows],
                )
        except sqlite3.Error as e:
            raise QueueStorageError(
                f"Cannot quarantine unreadable pending sessions: {e}",
                path=str(self.db_path),
            ) from e
        logger.warning(f"{len(rows)} unreadable pending session(s) moved to quarantined_sessions in {self.db_path}")

    def save(self, entries: List[PendingQueueEntry]) -> None:
        """Replace the stored queue with `entries` in a single transaction."""
        self.initialize()
        rows = [
            (position, entry.temp_id, entry.queued_at, json.dumps(to_record(entry.session, include_meta=True)))
            for position, entry in enumerate(entries)
        ]
        try:
            with self.transaction() as conn:
                conn.execute("DELETE FROM pending_sessions")
                conn.executemany(
                    """
                    INSERT INTO pending_sessions (position, temp_id, queued_at, session_json)
                    VALUES (?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            raise QueueStorageError(f"Cannot write pending sessions: {e}", path=str(self.db_path)) from e

    def close(self) -> None:
        """Close database connection."""
        connection = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            self._local.connection = None
