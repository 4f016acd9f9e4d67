"""Database facade: builds the one configured auth repository and delegates to it."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, assert_never

import structlog
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from geekcraft.dal.exceptions import StartupError
from geekcraft.dal.models import (
    InMemoryBackendConfig,
    MongoBackendConfig,
    RedisBackendConfig,
    SqliteBackendConfig,
)
from geekcraft.db.connection import Database
from geekcraft.db.memory_repository import InMemoryAuthRepository
from geekcraft.db.mongo_repository import MongoAuthRepository
from geekcraft.db.redis_repository import RedisAuthRepository
from geekcraft.db.sqlite_repository import SqliteAuthRepository

if TYPE_CHECKING:
    from geekcraft.auth.models import Session, User
    from geekcraft.dal.models import BackendConfig
    from geekcraft.dal.repository import AuthRepository

logger = structlog.get_logger()

_MONGO_SERVER_SELECTION_TIMEOUT_MS = 5000


class AuthDatabase:
    """Single entry point to user and session storage.

    Wraps exactly one AuthRepository chosen at startup. Adapters already
    translate engine errors into geekcraft.dal.exceptions, so every backend
    presents the same error surface through this facade.
    """

    def __init__(self, repository: AuthRepository, backend: str) -> None:
        self._repository = repository
        self._backend = backend

    @property
    def backend(self) -> str:
        return self._backend

    @classmethod
    async def open(cls, config: BackendConfig) -> AuthDatabase:
        """Construct the configured adapter and verify it is reachable.

        Raises StartupError on any failure. There is no fallback backend.
        """
        match config:
            case InMemoryBackendConfig():
                repository: AuthRepository = InMemoryAuthRepository()
                logger.warning("using in-memory auth database, data will be lost on restart")
            case SqliteBackendConfig(path=path):
                repository = _open_sqlite(path)
                logger.info("using sqlite auth database", path=path)
            case RedisBackendConfig(url=url):
                repository = await _open_redis(url)
                logger.info("using redis auth database")
            case MongoBackendConfig(url=url, default_database=default_database):
                repository = await _open_mongo(url, default_database)
                logger.info("using mongodb auth database")
            case _:  # pragma: no cover
                assert_never(config)
        return cls(repository, config.kind)

    async def create_user(self, username: str, password_hash: str) -> User:
        return await self._repository.create_user(username, password_hash)

    async def get_user_by_username(self, username: str) -> User | None:
        return await self._repository.get_user_by_username(username)

    async def create_session(self, token: str, user_id: int, expires_at: float) -> None:
        await self._repository.create_session(token, user_id, expires_at)

    async def get_session(self, token: str) -> Session | None:
        return await self._repository.get_session(token)

    async def delete_session(self, token: str) -> None:
        await self._repository.delete_session(token)

    async def delete_expired_sessions(self) -> int:
        return await self._repository.delete_expired_sessions()

    async def close(self) -> None:
        await self._repository.close()


def _open_sqlite(path: str) -> SqliteAuthRepository:
    db = Database(path)
    try:
        db.connect()
    except (sqlite3.Error, OSError) as exc:
        db.close()
        raise StartupError(f"Failed to open sqlite database at {path}") from exc
    return SqliteAuthRepository(db)


async def _open_redis(url: str) -> RedisAuthRepository:
    try:
        client = Redis.from_url(url, decode_responses=True)
    except ValueError as exc:
        raise StartupError("Invalid redis URL") from exc
    try:
        await client.ping()
    except RedisError as exc:
        await client.aclose()
        raise StartupError("Failed to connect to redis") from exc
    return RedisAuthRepository(client)


async def _open_mongo(url: str, default_database: str) -> MongoAuthRepository:
    try:
        client: AsyncMongoClient = AsyncMongoClient(
            url,
            tz_aware=True,
            serverSelectionTimeoutMS=_MONGO_SERVER_SELECTION_TIMEOUT_MS,
        )
    except (PyMongoError, ValueError) as exc:
        raise StartupError("Invalid mongodb URL") from exc

    repository = MongoAuthRepository(client.get_default_database(default=default_database), client=client)
    try:
        await client.admin.command("ping")
        await repository.ensure_indexes()
    except PyMongoError as exc:
        await repository.close()
        raise StartupError("Failed to connect to mongodb") from exc
    return repository
