"""Storage adapters for the auth repository and the facade that selects one of them."""

from geekcraft.db.auth_database import AuthDatabase
from geekcraft.db.connection import Database
from geekcraft.db.memory_repository import InMemoryAuthRepository
from geekcraft.db.mongo_repository import MongoAuthRepository
from geekcraft.db.redis_repository import RedisAuthRepository
from geekcraft.db.sqlite_repository import SqliteAuthRepository

__all__ = [
    "AuthDatabase",
    "Database",
    "InMemoryAuthRepository",
    "MongoAuthRepository",
    "RedisAuthRepository",
    "SqliteAuthRepository",
]
