"""SQLite connection, schema, and transaction handling for the auth store."""

from __future__ import annotations

import contextlib
import os
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = structlog.get_logger()

IN_MEMORY = ":memory:"

_OWNER_ONLY = 0o600
# The main file plus the WAL and shared-memory files next to it.
_FILE_SUFFIXES = ("", "-wal", "-shm")
_PRAGMAS = ("journal_mode=WAL", "foreign_keys=ON", "busy_timeout=5000")

# sessions.username is copied from users when the session is created, so
# token lookups read a single row.
_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    created_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS sessions (
    token TEXT PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    username TEXT NOT NULL,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_username ON users (username);
CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions (user_id);
"""


class Database:
    """Owns one sqlite3 connection to the auth database file.

    The connection is shared by the event loop thread only; callers
    serialize writes themselves.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the file (creating parent directories), apply pragmas and schema, restrict permissions."""
        if self._path != IN_MEMORY:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self._path, check_same_thread=False)
        try:
            for pragma in _PRAGMAS:
                conn.execute(f"PRAGMA {pragma}")
            conn.executescript(_SCHEMA_SQL)
        except sqlite3.Error:
            conn.close()
            raise
        self._conn = conn
        self._restrict_permissions()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection, commit if the block succeeds, roll back if it raises."""
        conn = self.connection
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        conn.commit()

    def _restrict_permissions(self) -> None:
        """chmod 0600 on every database file that exists (POSIX only, failures logged).

        They hold password hashes and live session tokens.
        """
        if os.name != "posix" or self._path == IN_MEMORY:  # pragma: no cover
            return
        for suffix in _FILE_SUFFIXES:
            file_path = Path(self._path + suffix)
            if not file_path.exists():
                continue
            try:
                file_path.chmod(_OWNER_ONLY)
            except OSError:
                logger.warning("could not restrict database file permissions", path=str(file_path))
