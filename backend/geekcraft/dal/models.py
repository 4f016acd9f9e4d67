"""Backend selection models for the data access layer."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

DEFAULT_MONGO_DATABASE = "geekcraft"


class InMemoryBackendConfig(BaseModel, frozen=True):
    """Process-local maps. Data is lost on restart."""

    kind: Literal["memory"] = "memory"


class SqliteBackendConfig(BaseModel, frozen=True):
    kind: Literal["sqlite"] = "sqlite"
    path: str = Field(min_length=1)


class RedisBackendConfig(BaseModel, frozen=True):
    kind: Literal["redis"] = "redis"
    url: str = Field(min_length=1)  # e.g. "redis://127.0.0.1:6379"


class MongoBackendConfig(BaseModel, frozen=True):
    """MongoDB connection. The database name comes from the URL path when present."""

    kind: Literal["mongodb"] = "mongodb"
    url: str = Field(min_length=1)  # e.g. "mongodb://localhost:27017/geekcraft"
    default_database: str = DEFAULT_MONGO_DATABASE


BackendConfig = Annotated[
    InMemoryBackendConfig | SqliteBackendConfig | RedisBackendConfig | MongoBackendConfig,
    Field(discriminator="kind"),
]
