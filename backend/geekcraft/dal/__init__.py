"""Data access layer: repository interface, backend selection models, and storage errors."""

from geekcraft.dal.exceptions import BackendError, ConflictError, NotFoundError, StartupError, StorageError
from geekcraft.dal.models import (
    BackendConfig,
    InMemoryBackendConfig,
    MongoBackendConfig,
    RedisBackendConfig,
    SqliteBackendConfig,
)
from geekcraft.dal.repository import AuthRepository

__all__ = [
    "AuthRepository",
    "BackendConfig",
    "BackendError",
    "ConflictError",
    "InMemoryBackendConfig",
    "MongoBackendConfig",
    "NotFoundError",
    "RedisBackendConfig",
    "SqliteBackendConfig",
    "StartupError",
    "StorageError",
]
