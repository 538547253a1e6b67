import os
import sqlite3
from pathlib import Path
from typing import Iterator, Optional, Tuple

from txledger.core.errors import StoreUnavailableError
from . import LedgerBackend, StateIterator, check_key


class SQLiteStorage(LedgerBackend):
    """
    SQLite world state. Keys are scoped by namespace so several contracts can
    share one database file without seeing each other's entries.
    """

    def __init__(self, db_path: str | Path | None = None, namespace: str = "txledger"):
        if db_path is None:
            env_path = os.environ.get("TXLEDGER_DB_PATH")
            db_path = env_path if env_path else Path.cwd() / "world-state.db"

        if not namespace:
            raise ValueError("namespace must be a non-empty string")
        self.namespace = namespace

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        try:
            self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_schema()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to open world state at {self.db_path}: {e}") from e

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS world_state (
                namespace   TEXT    NOT NULL,
                key         TEXT    NOT NULL,
                value       BLOB    NOT NULL,
                PRIMARY KEY (namespace, key)
            )
        """)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailableError("Storage connection is closed")
        return self._conn

    def get(self, key: str) -> Optional[bytes]:
        check_key(key)
        try:
            row = self.conn.execute(
                "SELECT value FROM world_state WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to read from world state: {e}", key) from e
        return _as_bytes(row[0]) if row else None

    def put(self, key: str, value: bytes) -> None:
        check_key(key)
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"world-state value must be bytes, got {type(value).__name__}")
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO world_state (namespace, key, value) VALUES (?, ?, ?)",
                (self.namespace, key, bytes(value)),
            )
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to put to world state: {e}", key) from e

    def delete(self, key: str) -> None:
        check_key(key)
        try:
            self.conn.execute(
                "DELETE FROM world_state WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            )
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to delete from world state: {e}", key) from e

    def range_scan(self, start_key: str, end_key: str) -> StateIterator:
        query = "SELECT key, value FROM world_state WHERE namespace = ?"
        params: list = [self.namespace]
        if start_key:
            query += " AND key >= ?"
            params.append(start_key)
        if end_key:
            query += " AND key < ?"
            params.append(end_key)
        # BINARY collation compares UTF-8 bytes, which orders like Python str
        query += " ORDER BY key ASC"

        try:
            cursor = self.conn.execute(query, params)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to read from world state: {e}") from e
        return StateIterator(self._rows(cursor), on_close=cursor.close)

    @staticmethod
    def _rows(cursor: sqlite3.Cursor) -> Iterator[Tuple[str, bytes]]:
        try:
            for key, value in cursor:
                yield key, _as_bytes(value)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to read from world state: {e}") from e

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def count(self, namespace: Optional[str] = None) -> int:
        try:
            cursor = self.conn.execute(
                "SELECT COUNT(*) FROM world_state WHERE namespace = ?",
                (namespace or self.namespace,)
            )
            return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to read from world state: {e}") from e

    def list_namespaces(self) -> list[str]:
        try:
            cursor = self.conn.execute("SELECT DISTINCT namespace FROM world_state ORDER BY namespace")
            return [row[0] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"failed to read from world state: {e}") from e


def _as_bytes(value) -> bytes:
    # rows written by other tools may come back as TEXT
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)
