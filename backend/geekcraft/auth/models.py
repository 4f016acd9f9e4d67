"""User account, session, and response models for authentication."""

from enum import StrEnum

from pydantic import BaseModel, Field


class AuthErrorKind(StrEnum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    INTERNAL = "internal"


class User(BaseModel, frozen=True):
    """User account owned by the active storage adapter."""

    id: int = Field(gt=0)
    username: str
    password_hash: str = Field(exclude=True)  # bcrypt hash, never serialized outward
    created_at: float  # time.time()


class Session(BaseModel, frozen=True):
    """Server-side session for an authenticated user."""

    token: str  # UUID4, canonical hyphenated form
    user_id: int
    username: str  # copied from the user at creation
    created_at: float  # time.time()
    expires_at: float  # time.time() + TTL

    def is_live(self, now: float) -> bool:
        return self.expires_at > now


class AuthResponse(BaseModel, frozen=True):
    """Uniform result of register, login, and logout.

    Only success, message, token, and username are part of the wire shape.
    The error kind is kept for in-process callers and excluded from dumps.
    """

    success: bool
    message: str
    token: str | None = None
    username: str | None = None
    error: AuthErrorKind | None = Field(default=None, exclude=True)
