"""Process-local auth repository backed by plain dicts."""

import asyncio
import time

import structlog

from geekcraft.auth.models import Session, User
from geekcraft.dal.exceptions import ConflictError, NotFoundError
from geekcraft.dal.repository import AuthRepository

logger = structlog.get_logger()


class InMemoryAuthRepository(AuthRepository):
    """In-memory auth repository for development and tests.

    Keeps four independently locked cells: users by username, users by id,
    sessions by token, and the next user id. Nothing survives a restart.

    Lock order is always username map -> id counter -> id map. asyncio.Lock
    is not re-entrant, so no method may call another method that takes a
    lock it already holds.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._users_lock = asyncio.Lock()
        self._users_by_id: dict[int, User] = {}
        self._users_by_id_lock = asyncio.Lock()
        self._sessions: dict[str, Session] = {}
        self._sessions_lock = asyncio.Lock()
        self._next_user_id = 1
        self._next_user_id_lock = asyncio.Lock()

    async def create_user(self, username: str, password_hash: str) -> User:
        """Add a user. The existence check and id increment share one critical section."""
        async with self._users_lock:
            if username in self._users:
                raise ConflictError("Username already exists")

            async with self._next_user_id_lock:
                user_id = self._next_user_id
                self._next_user_id += 1

            user = User(id=user_id, username=username, password_hash=password_hash, created_at=time.time())
            self._users[username] = user
            async with self._users_by_id_lock:
                self._users_by_id[user_id] = user

        return user

    async def get_user_by_username(self, username: str) -> User | None:
        async with self._users_lock:
            return self._users.get(username)

    async def create_session(self, token: str, user_id: int, expires_at: float) -> None:
        async with self._users_by_id_lock:
            user = self._users_by_id.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        session = Session(
            token=token,
            user_id=user_id,
            username=user.username,
            created_at=time.time(),
            expires_at=expires_at,
        )
        async with self._sessions_lock:
            self._sessions[token] = session

    async def get_session(self, token: str) -> Session | None:
        """Return a live session, or None. Expired entries are removed lazily."""
        async with self._sessions_lock:
            session = self._sessions.get(token)
        if session is None:
            return None
        if session.is_live(time.time()):
            return session

        # The read lock is released above; take it again to delete.
        async with self._sessions_lock:
            # A concurrent login may have replaced the entry meanwhile.
            if self._sessions.get(token) is session:
                del self._sessions[token]
        return None

    async def delete_session(self, token: str) -> None:
        async with self._sessions_lock:
            self._sessions.pop(token, None)

    async def delete_expired_sessions(self) -> int:
        now = time.time()
        async with self._sessions_lock:
            expired = [token for token, s in self._sessions.items() if not s.is_live(now)]
            for token in expired:
                del self._sessions[token]
        if expired:
            logger.info("cleaned up expired sessions", count=len(expired), backend="memory")
        return len(expired)
