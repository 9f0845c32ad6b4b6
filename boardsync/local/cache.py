"""
Local durable cache for the boardsync state document.

The cache holds exactly one value per workspace: the full serialized state
document. It is the fast path for startup and the source of truth while the
remote store is unreachable.

Invariants:
    - Whole-document replace only; a write never leaves a partial document
    - read() returns None rather than raising on a missing or unreadable value
    - write() never raises; failures are logged and reported as False

How to change safely:
    - Keep read/write synchronous (they run inside mutation callbacks)
    - The stored value is JSON text; do not switch to a binary encoding
      without a migration in schema.migrate

Table schema:
    documents:
        - key TEXT PRIMARY KEY
        - value_json TEXT
        - updated_at INTEGER (Unix ms)
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
import time
from abc import abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_KEY = "state"


@runtime_checkable
class LocalCache(Protocol):
    """Protocol for the local document cache."""

    @abstractmethod
    def read(self) -> Optional[Dict[str, Any]]:
        """Return the cached document, or None if absent or unreadable."""
        ...

    @abstractmethod
    def write(self, doc: Dict[str, Any]) -> bool:
        """Replace the cached document. Returns False if the write failed."""
        ...


class SqliteLocalCache:
    """SQLite-backed LocalCache.

    One small table keyed by document key; each write is a single
    INSERT OR REPLACE inside a transaction.

    Example:
        >>> cache = SqliteLocalCache("/tmp/board.db", key="workspace_1")
        >>> cache.write(state.to_dict())
        >>> doc = cache.read()
    """

    def __init__(
        self,
        path: str | Path,
        key: str = DEFAULT_KEY,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the cache.

        Args:
            path: SQLite database file
            key: Document key (one per workspace)
            wal_mode: Enable SQLite WAL journal mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.path = Path(path)
        self.key = key
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._schema_ready = False

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(self.path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            if not self._schema_ready:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS documents (
                        key TEXT PRIMARY KEY,
                        value_json TEXT NOT NULL,
                        updated_at INTEGER NOT NULL
                    )
                    """
                )
                self._schema_ready = True
            yield conn
        finally:
            conn.close()

    def read(self) -> Optional[Dict[str, Any]]:
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT value_json FROM documents WHERE key = ?", (self.key,)
                ).fetchone()
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Local cache read failed: {e}", extra={"path": str(self.path)})
            return None

        if row is None:
            return None
        try:
            doc = json.loads(row[0])
        except ValueError as e:
            logger.warning(f"Local cache holds invalid JSON: {e}", extra={"path": str(self.path)})
            return None
        return doc if isinstance(doc, dict) else None

    def write(self, doc: Dict[str, Any]) -> bool:
        try:
            value = json.dumps(doc, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(f"State document is not serializable: {e}")
            return False

        try:
            with self._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.execute(
                        "INSERT OR REPLACE INTO documents (key, value_json, updated_at) "
                        "VALUES (?, ?, ?)",
                        (self.key, value, int(time.time() * 1000)),
                    )
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    conn.execute("ROLLBACK")
                    raise
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Local cache write failed: {e}", extra={"path": str(self.path)})
            return False

        logger.debug("Local cache written", extra={"key": self.key, "bytes": len(value)})
        return True


class MemoryLocalCache:
    """In-memory LocalCache for tests and ephemeral sessions."""

    def __init__(self, doc: Optional[Dict[str, Any]] = None) -> None:
        self._doc = copy.deepcopy(doc) if doc is not None else None
        self.write_count = 0

    def read(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._doc) if self._doc is not None else None

    def write(self, doc: Dict[str, Any]) -> bool:
        self._doc = copy.deepcopy(doc)
        self.write_count += 1
        return True
