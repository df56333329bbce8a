"""
SQLite connection management for the server-side session store.
"""
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional


class Database:
    """Thin SQLite wrapper. One connection per call, except for in-memory databases."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._shared: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        if db_path == ':memory:':
            self._shared = sqlite3.connect(db_path, check_same_thread=False)
            self._shared.row_factory = sqlite3.Row
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    def get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        return conn

    def _run(self, fn):
        if self._shared is not None:
            with self._lock:
                try:
                    result = fn(self._shared)
                    self._shared.commit()
                    return result
                except sqlite3.Error:
                    self._shared.rollback()
                    raise
        conn = self.get_connection()
        try:
            result = fn(conn)
            conn.commit()
            return result
        finally:
            conn.close()

    def execute(self, query: str, params: tuple = ()) -> int:
        """Execute a statement, commit, and return the number of affected rows."""
        return self._run(lambda conn: conn.execute(query, params).rowcount)

    def executescript(self, script: str) -> None:
        self._run(lambda conn: conn.executescript(script))

    def fetchone(self, query: str, params: tuple = ()) -> Optional[dict]:
        """Fetch a single row."""
        row = self._run(lambda conn: conn.execute(query, params).fetchone())
        return dict(row) if row else None

    def fetchall(self, query: str, params: tuple = ()) -> List[dict]:
        """Fetch all rows."""
        rows = self._run(lambda conn: conn.execute(query, params).fetchall())
        return [dict(row) for row in rows]

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None
