"""Auth settings: storage backend selection, password hashing, and the cleanup interval."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from geekcraft.auth.cleanup import CLEANUP_INTERVAL_SECONDS
from geekcraft.auth.password import DEFAULT_BCRYPT_ROUNDS, MAX_BCRYPT_ROUNDS, MIN_BCRYPT_ROUNDS
from geekcraft.dal.models import (
    DEFAULT_MONGO_DATABASE,
    BackendConfig,
    InMemoryBackendConfig,
    MongoBackendConfig,
    RedisBackendConfig,
    SqliteBackendConfig,
)


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_"}

    # Which storage engine holds users and sessions. Exactly one is active per process.
    db_backend: Literal["memory", "sqlite", "redis", "mongodb"] = "memory"

    # SQLite database file path (db_backend=sqlite)
    database_path: str = Field(default="backend/storage.db", min_length=1)

    # Redis connection URL (db_backend=redis)
    redis_url: str = Field(default="redis://127.0.0.1:6379", min_length=1)

    # MongoDB connection URL (db_backend=mongodb); the path names the database
    mongodb_url: str = Field(default="mongodb://localhost:27017/geekcraft", min_length=1)
    mongodb_default_database: str = Field(default=DEFAULT_MONGO_DATABASE, min_length=1)

    # "bcrypt" in production, "simple" only in tests
    password_hasher: Literal["bcrypt", "simple"] = "bcrypt"
    bcrypt_rounds: int = Field(default=DEFAULT_BCRYPT_ROUNDS, ge=MIN_BCRYPT_ROUNDS, le=MAX_BCRYPT_ROUNDS)

    cleanup_interval_seconds: int = Field(default=CLEANUP_INTERVAL_SECONDS, ge=1)

    def backend_config(self) -> BackendConfig:
        """Return the typed configuration for the selected backend."""
        if self.db_backend == "sqlite":
            return SqliteBackendConfig(path=self.database_path)
        if self.db_backend == "redis":
            return RedisBackendConfig(url=self.redis_url)
        if self.db_backend == "mongodb":
            return MongoBackendConfig(url=self.mongodb_url, default_database=self.mongodb_default_database)
        return InMemoryBackendConfig()
