"""MongoDB-backed auth repository.

Collections:
- ``users``: one document per user, unique indexes on ``username`` and ``id``
- ``sessions``: one document per token, unique index on ``token`` and a TTL
  index on ``expires_at`` (stored as a UTC datetime)
- ``counters``: ``{"_id": "user_id", "seq": n}`` advanced atomically

The adapter is built once around a single long-lived async client and reused
by every call; it never opens a client or event loop per operation.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pymongo import ASCENDING, ReturnDocument
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from geekcraft.auth.models import Session, User
from geekcraft.dal.exceptions import BackendError, ConflictError, NotFoundError
from geekcraft.dal.repository import AuthRepository

if TYPE_CHECKING:
    from pymongo import AsyncMongoClient
    from pymongo.asynchronous.database import AsyncDatabase

logger = structlog.get_logger()

USER_ID_COUNTER = "user_id"

_NO_OBJECT_ID = {"_id": 0}


def _to_datetime(timestamp: float) -> datetime:
    """Naive UTC datetime, the form BSON dates are compared in."""
    return datetime.fromtimestamp(timestamp, tz=UTC).replace(tzinfo=None)


def _to_timestamp(value: datetime) -> float:
    """Convert a stored datetime back to epoch seconds. Naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


# A document missing a field, or holding a non-datetime where a date belongs.
_CORRUPT_DOCUMENT_ERRORS = (KeyError, TypeError, AttributeError, ValidationError)


def _user_from_document(doc: dict[str, Any]) -> User:
    try:
        return User.model_validate(doc)
    except _CORRUPT_DOCUMENT_ERRORS as exc:
        raise BackendError("Corrupt user record") from exc


def _session_from_document(doc: dict[str, Any]) -> Session:
    try:
        return Session(
            token=doc["token"],
            user_id=doc["user_id"],
            username=doc["username"],
            created_at=_to_timestamp(doc["created_at"]),
            expires_at=_to_timestamp(doc["expires_at"]),
        )
    except _CORRUPT_DOCUMENT_ERRORS as exc:
        raise BackendError("Corrupt session record") from exc


class MongoAuthRepository(AuthRepository):
    """MongoDB implementation of AuthRepository.

    User ids come from a find-and-increment upsert on a single counter
    document, so id assignment is race-free across processes. The TTL index
    purges expired sessions in the background, but the purge runs on a timer,
    so lookups still compare expires_at against the clock.
    """

    def __init__(self, db: AsyncDatabase, client: AsyncMongoClient | None = None) -> None:
        self._db = db
        self._client = client
        self._users = db["users"]
        self._sessions = db["sessions"]
        self._counters = db["counters"]

    async def ensure_indexes(self) -> None:
        """Create the uniqueness and TTL indexes (idempotent)."""
        await self._users.create_index([("username", ASCENDING)], unique=True, name="uniq_users_username")
        await self._users.create_index([("id", ASCENDING)], unique=True, name="uniq_users_id")
        await self._sessions.create_index([("token", ASCENDING)], unique=True, name="uniq_sessions_token")
        await self._sessions.create_index(
            [("expires_at", ASCENDING)],
            expireAfterSeconds=0,
            name="ttl_sessions_expires_at",
        )

    async def create_user(self, username: str, password_hash: str) -> User:
        try:
            if await self._users.find_one({"username": username}, _NO_OBJECT_ID) is not None:
                raise ConflictError("Username already exists")

            user_id = await self._next_user_id()
            user = User(id=user_id, username=username, password_hash=password_hash, created_at=time.time())
            await self._users.insert_one(
                {
                    "id": user.id,
                    "username": user.username,
                    "password_hash": user.password_hash,
                    "created_at": user.created_at,
                },
            )
        except DuplicateKeyError as exc:
            raise ConflictError("Username already exists") from exc
        except PyMongoError as exc:
            raise BackendError("Failed to create user") from exc
        return user

    async def get_user_by_username(self, username: str) -> User | None:
        try:
            doc = await self._users.find_one({"username": username}, _NO_OBJECT_ID)
        except PyMongoError as exc:
            raise BackendError("Failed to look up user") from exc
        if doc is None:
            return None
        return _user_from_document(doc)

    async def create_session(self, token: str, user_id: int, expires_at: float) -> None:
        """Upsert the session keyed by token, so a colliding token replaces rather than duplicates."""
        try:
            user_doc = await self._users.find_one({"id": user_id}, {"_id": 0, "username": 1})
            if user_doc is None:
                raise NotFoundError("User not found")

            await self._sessions.replace_one(
                {"token": token},
                {
                    "token": token,
                    "user_id": user_id,
                    "username": user_doc["username"],
                    "created_at": _to_datetime(time.time()),
                    "expires_at": _to_datetime(expires_at),
                },
                upsert=True,
            )
        except PyMongoError as exc:
            raise BackendError("Failed to create session") from exc

    async def get_session(self, token: str) -> Session | None:
        try:
            doc = await self._sessions.find_one({"token": token}, _NO_OBJECT_ID)
        except PyMongoError as exc:
            raise BackendError("Failed to look up session") from exc
        if doc is None:
            return None

        session = _session_from_document(doc)
        if session.is_live(time.time()):
            return session

        # Expired but not yet purged by the TTL monitor.
        try:
            await self._sessions.delete_one({"token": token, "expires_at": doc["expires_at"]})
        except PyMongoError as exc:
            raise BackendError("Failed to delete session") from exc
        return None

    async def delete_session(self, token: str) -> None:
        try:
            await self._sessions.delete_one({"token": token})
        except PyMongoError as exc:
            raise BackendError("Failed to delete session") from exc

    async def delete_expired_sessions(self) -> int:
        try:
            result = await self._sessions.delete_many({"expires_at": {"$lte": _to_datetime(time.time())}})
        except PyMongoError as exc:
            raise BackendError("Failed to delete expired sessions") from exc
        if result.deleted_count:
            logger.info("cleaned up expired sessions", count=result.deleted_count, backend="mongodb")
        return result.deleted_count

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _next_user_id(self) -> int:
        counter = await self._counters.find_one_and_update(
            {"_id": USER_ID_COUNTER},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])
