"""SQLite-backed auth repository."""

from __future__ import annotations

import asyncio
import sqlite3
import time
from typing import TYPE_CHECKING

import structlog

from geekcraft.auth.models import Session, User
from geekcraft.dal.exceptions import BackendError, ConflictError, NotFoundError
from geekcraft.dal.repository import AuthRepository

if TYPE_CHECKING:
    from geekcraft.db.connection import Database

logger = structlog.get_logger()

# sqlite3.IntegrityError.sqlite_errorname values
_UNIQUE_VIOLATION = "SQLITE_CONSTRAINT_UNIQUE"
_FOREIGN_KEY_VIOLATION = "SQLITE_CONSTRAINT_FOREIGNKEY"

_SESSION_COLUMNS = "token, user_id, username, created_at, expires_at"


class SqliteAuthRepository(AuthRepository):
    """SQLite implementation of AuthRepository.

    Every write runs inside Database.transaction() under an asyncio lock, so
    a statement and its commit or rollback are never interleaved with
    another write. Constraint failures are told apart by the extended
    result code on the IntegrityError, not by its message text.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_user(self, username: str, password_hash: str) -> User:
        created_at = time.time()
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    cursor = conn.execute(
                        "INSERT INTO users (username, password_hash, created_at) VALUES (?, ?, ?)",
                        (username, password_hash, created_at),
                    )
            except sqlite3.IntegrityError as exc:
                if exc.sqlite_errorname == _UNIQUE_VIOLATION:
                    raise ConflictError("Username already exists") from exc
                raise BackendError("Failed to create user") from exc
            except sqlite3.Error as exc:
                raise BackendError("Failed to create user") from exc

        return User(id=cursor.lastrowid, username=username, password_hash=password_hash, created_at=created_at)

    async def get_user_by_username(self, username: str) -> User | None:
        row = self._fetch_one(
            "SELECT id, username, password_hash, created_at FROM users WHERE username = ?",
            (username,),
            "Failed to look up user",
        )
        if row is None:
            return None
        return User(id=row[0], username=row[1], password_hash=row[2], created_at=row[3])

    async def create_session(self, token: str, user_id: int, expires_at: float) -> None:
        """Insert the session with the username read from users in the same statement.

        No row inserted means the user id does not exist.
        """
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    cursor = conn.execute(
                        f"INSERT INTO sessions ({_SESSION_COLUMNS}) SELECT ?, id, username, ?, ? FROM users WHERE id = ?",
                        (token, time.time(), expires_at, user_id),
                    )
            except sqlite3.IntegrityError as exc:
                if exc.sqlite_errorname == _FOREIGN_KEY_VIOLATION:
                    raise NotFoundError("User not found") from exc
                raise BackendError("Failed to create session") from exc
            except sqlite3.Error as exc:
                raise BackendError("Failed to create session") from exc

        if cursor.rowcount == 0:
            raise NotFoundError("User not found")

    async def get_session(self, token: str) -> Session | None:
        row = self._fetch_one(
            f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE token = ?",
            (token,),
            "Failed to look up session",
        )
        if row is None:
            return None

        session = Session(token=row[0], user_id=row[1], username=row[2], created_at=row[3], expires_at=row[4])
        if session.is_live(time.time()):
            return session

        # Match on expires_at too, so a row rewritten since the read survives.
        await self._delete("DELETE FROM sessions WHERE token = ? AND expires_at = ?", (token, session.expires_at))
        return None

    async def delete_session(self, token: str) -> None:
        await self._delete("DELETE FROM sessions WHERE token = ?", (token,))

    async def delete_expired_sessions(self) -> int:
        count = await self._delete("DELETE FROM sessions WHERE expires_at <= ?", (time.time(),))
        if count:
            logger.info("cleaned up expired sessions", count=count, backend="sqlite")
        return count

    async def close(self) -> None:
        self._db.close()

    def _fetch_one(self, sql: str, params: tuple[object, ...], failure: str) -> tuple | None:
        try:
            return self._db.connection.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise BackendError(failure) from exc

    async def _delete(self, sql: str, params: tuple[object, ...]) -> int:
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    cursor = conn.execute(sql, params)
            except sqlite3.Error as exc:
                raise BackendError("Failed to delete sessions") from exc
        return cursor.rowcount
