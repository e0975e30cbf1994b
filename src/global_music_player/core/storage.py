"""
Durable key-value storage for player session state.

SQLite-backed store for real sessions plus an in-memory store for tests and
for running with persistence disabled.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol


class StorageError(Exception):
    """Raised when the underlying store cannot be read or written."""

    pass


class KeyValueStore(Protocol):
    """Minimal string key-value contract used by the persistence layer."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dictionary-backed store; contents vanish with the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteKeyValueStore:
    """Key-value store in a single SQLite table.

    Every call opens its own short-lived connection, so the store holds no
    handles between writes and tolerates the file being removed.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._initialized = False

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with proper cleanup."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=30.0)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            if not self._initialized:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
                self._initialized = True
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"SQLite error on {self.db_path}: {e}") from e
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (key, value),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
