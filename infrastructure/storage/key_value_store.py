"""
Durable key-value storage for client state.
Each browser gets its own namespace, so values written by one client are
never visible to another.
"""

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple

from infrastructure.monitoring.logging_service import get_logger


class KeyValueStorage:
    """Read/write contract shared by the storage backends"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStorage(KeyValueStorage):
    """Process-local storage, used in tests and when no database is configured"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SQLiteKeyValueStorage(KeyValueStorage):
    """
    SQLite-backed storage.
    A single connection is shared across Streamlit script threads and
    guarded by a lock.
    """

    def __init__(self, db_path: str, namespace: str = "default"):
        self.logger = get_logger(__name__)
        self.db_path = db_path
        self.namespace = namespace
        self._lock = threading.Lock()

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._init_database()

    def _init_database(self):
        with self._lock:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS client_state (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
            """)
            self._conn.commit()
        self.logger.debug(f"Client state database ready at {self.db_path}")

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            row: Optional[Tuple[str]] = self._conn.execute(
                "SELECT value FROM client_state WHERE namespace = ? AND key = ?",
                (self.namespace, key)
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO client_state (namespace, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (self.namespace, key, value, datetime.now().isoformat())
            )
            self._conn.commit()

    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM client_state WHERE namespace = ? AND key = ?",
                (self.namespace, key)
            )
            self._conn.commit()

    def close(self):
        with self._lock:
            self._conn.close()
