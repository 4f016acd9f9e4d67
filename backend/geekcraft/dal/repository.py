"""Abstract interface for user and session persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geekcraft.auth.models import Session, User


class AuthRepository(ABC):
    """Abstract interface for user and session persistence.

    Implementations exist for process memory, SQLite, Redis, and MongoDB.
    Every implementation must never return a session whose expires_at is not
    in the future, whatever the engine's own eviction behavior.
    """

    @abstractmethod
    async def create_user(self, username: str, password_hash: str) -> User:
        """Persist a new user with the next id. Raises ConflictError on a taken username."""

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def create_session(self, token: str, user_id: int, expires_at: float) -> None:
        """Persist a session. Raises NotFoundError when user_id does not resolve to a user."""

    @abstractmethod
    async def get_session(self, token: str) -> Session | None: ...

    @abstractmethod
    async def delete_session(self, token: str) -> None:
        """Remove a session. Deleting an unknown token is not an error."""

    @abstractmethod
    async def delete_expired_sessions(self) -> int:
        """Remove expired sessions and return how many were removed."""

    async def close(self) -> None:  # noqa: B027
        """Release connections held by the adapter."""
