"""Redis-backed auth repository.

Layout:
- hash ``users``: username -> User JSON
- hash ``users_by_id``: id -> User JSON
- string ``next_user_id``: counter advanced with INCR
- string ``session:{token}``: Session JSON, written with a native TTL

Redis evicts expired session keys on its own, so the manual sweep is a no-op.

Known limitation: create_user checks HEXISTS, then INCRs the counter, then
writes both hashes as separate round-trips with no cross-command atomicity.
Two concurrent registrations of the same username can both pass the check;
the later HSET then overwrites the earlier record in ``users`` and both ids
stay in ``users_by_id``. Single-instance deployments rarely hit this window.
"""

from __future__ import annotations

import json
import math
import time
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from geekcraft.auth.models import Session, User
from geekcraft.dal.exceptions import BackendError, ConflictError, NotFoundError
from geekcraft.dal.repository import AuthRepository

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()

USERS_KEY = "users"
USERS_BY_ID_KEY = "users_by_id"
NEXT_USER_ID_KEY = "next_user_id"
SESSION_KEY_PREFIX = "session:"


def session_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token}"


def _dump_user(user: User) -> str:
    # password_hash is excluded from model dumps; the stored record needs it.
    return json.dumps({**user.model_dump(), "password_hash": user.password_hash})


def _load_user(raw: str) -> User:
    try:
        return User.model_validate_json(raw)
    except ValidationError as exc:
        raise BackendError("Corrupt user record") from exc


class RedisAuthRepository(AuthRepository):
    """Redis implementation of AuthRepository.

    Takes an already constructed client (decode_responses=True) so one
    connection pool is shared by every call for the adapter's lifetime.
    """

    def __init__(self, client: Redis) -> None:
        self._redis = client

    async def create_user(self, username: str, password_hash: str) -> User:
        try:
            if await self._redis.hexists(USERS_KEY, username):
                raise ConflictError("Username already exists")

            user_id = int(await self._redis.incr(NEXT_USER_ID_KEY))
            user = User(id=user_id, username=username, password_hash=password_hash, created_at=time.time())
            record = _dump_user(user)
            await self._redis.hset(USERS_KEY, username, record)
            await self._redis.hset(USERS_BY_ID_KEY, str(user_id), record)
        except RedisError as exc:
            raise BackendError("Failed to create user") from exc
        return user

    async def get_user_by_username(self, username: str) -> User | None:
        try:
            raw = await self._redis.hget(USERS_KEY, username)
        except RedisError as exc:
            raise BackendError("Failed to look up user") from exc
        if raw is None:
            return None
        return _load_user(raw)

    async def create_session(self, token: str, user_id: int, expires_at: float) -> None:
        """Store a session with EX set to the time left until expires_at.

        A session that is already expired is not written; a stale key under
        the same token is removed instead.
        """
        try:
            raw_user = await self._redis.hget(USERS_BY_ID_KEY, str(user_id))
            if raw_user is None:
                raise NotFoundError("User not found")
            user = _load_user(raw_user)

            now = time.time()
            session = Session(
                token=token,
                user_id=user_id,
                username=user.username,
                created_at=now,
                expires_at=expires_at,
            )
            ttl = math.ceil(expires_at - now)
            if ttl <= 0:
                logger.debug("session already expired, not stored", user_id=user_id)
                await self._redis.delete(session_key(token))
                return
            await self._redis.set(session_key(token), session.model_dump_json(), ex=ttl)
        except RedisError as exc:
            raise BackendError("Failed to create session") from exc

    async def get_session(self, token: str) -> Session | None:
        """Return a live session, or None.

        Expiry is checked again after the read in case it raced Redis's own eviction.
        """
        try:
            raw = await self._redis.get(session_key(token))
        except RedisError as exc:
            raise BackendError("Failed to look up session") from exc
        if raw is None:
            return None

        try:
            session = Session.model_validate_json(raw)
        except ValidationError as exc:
            raise BackendError("Corrupt session record") from exc
        if session.is_live(time.time()):
            return session

        await self.delete_session(token)
        return None

    async def delete_session(self, token: str) -> None:
        try:
            await self._redis.delete(session_key(token))
        except RedisError as exc:
            raise BackendError("Failed to delete session") from exc

    async def delete_expired_sessions(self) -> int:
        return 0

    async def close(self) -> None:
        await self._redis.aclose()
