"""
Collection store for persisted reconciliation state.

The core never touches persistence directly. The session layer loads whole
collections as snapshots and saves whole collections back; there are no
partial updates.

Keys:
- tm-bank-transactions
- tm-receipts
- tm-matches

Thread Safety Notes:
- SqliteStore uses check_same_thread=False and serializes access with a lock
- Each save() is a single atomic upsert
"""

import copy
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from txmatch.core.exceptions import StoreError

logger = logging.getLogger(__name__)

BANK_TRANSACTIONS_KEY = "tm-bank-transactions"
RECEIPTS_KEY = "tm-receipts"
MATCHES_KEY = "tm-matches"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS collections (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class CollectionStore(ABC):
    """Get/set of whole JSON-serializable collections by key."""

    @abstractmethod
    def load(self, key: str, default: Any = None) -> Any:
        """
        Load a collection.

        Args:
            key: Collection key
            default: Returned when nothing has been saved under the key

        Returns:
            The stored value, or default (an empty list when default is None)
        """

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """Replace the collection stored under key."""

    def close(self) -> None:
        """Release any underlying resources."""


class InMemoryStore(CollectionStore):
    """Dictionary-backed store, mainly for tests and one-shot runs."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def load(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return [] if default is None else default
        return copy.deepcopy(self._data[key])

    def save(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class SqliteStore(CollectionStore):
    """
    SQLite-backed store keeping one JSON document per collection key.

    Usage:
        store = SqliteStore(Path("~/.txmatch/txmatch.db"))
        store.save("tm-receipts", [r.to_dict() for r in receipts])
        rows = store.load("tm-receipts")
        store.close()
    """

    def __init__(self, db_path: str | Path = ":memory:"):
        """
        Open (and create if needed) the store database.

        Args:
            db_path: Path to database file or ":memory:"

        Raises:
            StoreError: If the database cannot be opened
        """
        self._lock = threading.Lock()
        self.db_path = str(db_path)
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(
                self.db_path, check_same_thread=False, isolation_level=None
            )
            self._connection.row_factory = sqlite3.Row

            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")

            self._connection.executescript(SCHEMA_SQL)
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to open store at {self.db_path}: {e}") from e

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StoreError("Store is closed")
        return self._connection

    @contextmanager
    def transaction(self):
        """
        Context manager for atomic writes.

        Raises:
            StoreError: If the transaction fails
        """
        with self._lock:
            try:
                self.connection.execute("BEGIN IMMEDIATE")
                yield self.connection
                self.connection.execute("COMMIT")
            except Exception as e:
                if self.connection.in_transaction:
                    self.connection.execute("ROLLBACK")
                raise StoreError(f"Transaction failed: {e}") from e

    def load(self, key: str, default: Any = None) -> Any:
        with self._lock:
            row = self.connection.execute(
                "SELECT value FROM collections WHERE key = ?", (key,)
            ).fetchone()

        if row is None:
            return [] if default is None else default

        try:
            return json.loads(row["value"])
        except ValueError as e:
            raise StoreError(f"Corrupt collection '{key}': {e}") from e

    def save(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO collections (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, payload),
            )
        logger.debug(f"Saved collection '{key}' ({len(payload)} bytes)")

    def keys(self) -> list[str]:
        """List the keys that have been saved."""
        with self._lock:
            rows = self.connection.execute("SELECT key FROM collections ORDER BY key").fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
