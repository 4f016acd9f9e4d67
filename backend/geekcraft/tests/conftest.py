"""Shared fixtures: one auth repository per storage backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import fakeredis
import mongomock
import pytest

from geekcraft.auth.password import SimpleHasher
from geekcraft.auth.service import AuthService
from geekcraft.db import (
    AuthDatabase,
    Database,
    InMemoryAuthRepository,
    MongoAuthRepository,
    RedisAuthRepository,
    SqliteAuthRepository,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from geekcraft.dal.repository import AuthRepository

BACKENDS = ["memory", "sqlite", "redis", "mongodb"]


class AsyncMockCollection:
    """Awaitable view of a mongomock collection, matching the pymongo async collection methods in use.

    Index options are recorded in created_indexes. TTL eviction is not
    simulated, which mirrors the window before MongoDB's TTL monitor runs.
    """

    def __init__(self, collection: mongomock.Collection) -> None:
        self.sync = collection
        self.created_indexes: list[tuple[Any, dict[str, Any]]] = []

    async def create_index(self, keys: Any, **kwargs: Any) -> str:  # noqa: ANN401
        self.created_indexes.append((keys, dict(kwargs)))
        kwargs.pop("expireAfterSeconds", None)
        return self.sync.create_index(keys, **kwargs)

    async def find_one(self, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        return self.sync.find_one(*args, **kwargs)

    async def find_one_and_update(self, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        return self.sync.find_one_and_update(*args, **kwargs)

    async def insert_one(self, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        return self.sync.insert_one(*args, **kwargs)

    async def replace_one(self, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        return self.sync.replace_one(*args, **kwargs)

    async def delete_one(self, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        return self.sync.delete_one(*args, **kwargs)

    async def delete_many(self, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        return self.sync.delete_many(*args, **kwargs)


class AsyncMockDatabase:
    """Hands out one AsyncMockCollection per collection name."""

    def __init__(self) -> None:
        self._db = mongomock.MongoClient()["geekcraft_test"]
        self._collections: dict[str, AsyncMockCollection] = {}

    def __getitem__(self, name: str) -> AsyncMockCollection:
        if name not in self._collections:
            self._collections[name] = AsyncMockCollection(self._db[name])
        return self._collections[name]


async def make_repository(backend: str, tmp_path: Path) -> AuthRepository:
    if backend == "memory":
        return InMemoryAuthRepository()
    if backend == "sqlite":
        db = Database(tmp_path / "auth.db")
        db.connect()
        return SqliteAuthRepository(db)
    if backend == "redis":
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
        return RedisAuthRepository(client)
    if backend == "mongodb":
        repo = MongoAuthRepository(AsyncMockDatabase())  # type: ignore[arg-type]
        await repo.ensure_indexes()
        return repo
    raise ValueError(backend)


@pytest.fixture(params=BACKENDS)
def backend(request: pytest.FixtureRequest) -> str:
    return request.param


@pytest.fixture
async def repository(backend: str, tmp_path: Path) -> AsyncGenerator[AuthRepository]:
    repo = await make_repository(backend, tmp_path)
    yield repo
    await repo.close()


@pytest.fixture
def database(repository: AuthRepository, backend: str) -> AuthDatabase:
    return AuthDatabase(repository, backend)


@pytest.fixture
def auth_service(database: AuthDatabase) -> AuthService:
    return AuthService(database, password_hasher=SimpleHasher())


@pytest.fixture
async def memory_repo() -> InMemoryAuthRepository:
    return InMemoryAuthRepository()


@pytest.fixture
def sqlite_db(tmp_path: Path):
    db = Database(tmp_path / "auth.db")
    db.connect()
    yield db
    db.close()


@pytest.fixture
def sqlite_repo(sqlite_db: Database) -> SqliteAuthRepository:
    return SqliteAuthRepository(sqlite_db)


@pytest.fixture
def redis_client() -> fakeredis.FakeAsyncRedis:
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
async def redis_repo(redis_client: fakeredis.FakeAsyncRedis) -> AsyncGenerator[RedisAuthRepository]:
    repo = RedisAuthRepository(redis_client)
    yield repo
    await repo.close()


@pytest.fixture
def mongo_db() -> AsyncMockDatabase:
    return AsyncMockDatabase()


@pytest.fixture
async def mongo_repo(mongo_db: AsyncMockDatabase) -> MongoAuthRepository:
    repo = MongoAuthRepository(mongo_db)  # type: ignore[arg-type]
    await repo.ensure_indexes()
    return repo
