"""Auth service coordinating registration, login, and session management."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from geekcraft.auth.models import AuthErrorKind, AuthResponse
from geekcraft.dal.exceptions import BackendError, ConflictError, NotFoundError

if TYPE_CHECKING:
    from geekcraft.auth.models import Session
    from geekcraft.auth.password import PasswordHasher
    from geekcraft.db.auth_database import AuthDatabase

logger = structlog.get_logger()

SESSION_DURATION_SECONDS = 86400  # 24 hours

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 32
USERNAME_EXTRA_CHARS = frozenset("_-")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt truncates at 72 bytes

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"
INTERNAL_ERROR_MESSAGE = "Internal error"
USERNAME_TAKEN_MESSAGE = "Username already exists"


class AuthError(Exception):
    """Authentication failure raised inside the service and converted to an AuthResponse."""


class AuthValidationError(AuthError):
    """Username or password does not meet the account rules. The message is shown to the user."""


class AuthService:
    """Register accounts, verify credentials, and issue and check session tokens.

    Stateless apart from the database facade it is given; one instance is
    shared by every request handler. Storage failures are logged here and
    reach callers only as a generic "Internal error", so the backend in use
    is never revealed.
    """

    def __init__(
        self,
        database: AuthDatabase,
        *,
        password_hasher: PasswordHasher,
        session_ttl_seconds: int = SESSION_DURATION_SECONDS,
    ) -> None:
        self._db = database
        self._hasher = password_hasher
        self._session_ttl_seconds = session_ttl_seconds

    async def register(self, username: str, password: str) -> AuthResponse:
        """Create an account. Never echoes the password or its hash."""
        try:
            _validate_username(username)
            _validate_password(password)
        except AuthValidationError as e:
            return _failure(str(e), AuthErrorKind.VALIDATION)

        try:
            password_hash = await self._hasher.hash(password)
        except ValueError:
            logger.exception("failed to hash password")
            return _failure(INTERNAL_ERROR_MESSAGE, AuthErrorKind.INTERNAL)

        try:
            user = await self._db.create_user(username, password_hash)
        except ConflictError:
            return _failure(USERNAME_TAKEN_MESSAGE, AuthErrorKind.CONFLICT)
        except BackendError:
            logger.exception("failed to create user")
            return _failure(INTERNAL_ERROR_MESSAGE, AuthErrorKind.INTERNAL)

        logger.info("user registered", user_id=user.id, username=user.username)
        return AuthResponse(success=True, message=f"User {username} registered successfully", username=username)

    async def login(self, username: str, password: str) -> AuthResponse:
        """Check credentials and start a session.

        Unknown usernames and wrong passwords produce the same message.
        """
        try:
            user = await self._db.get_user_by_username(username)
        except BackendError:
            logger.exception("failed to look up user")
            return _failure(INTERNAL_ERROR_MESSAGE, AuthErrorKind.INTERNAL)

        if user is None or not await self._hasher.verify(password, user.password_hash):
            return _failure(INVALID_CREDENTIALS_MESSAGE, AuthErrorKind.INVALID_CREDENTIALS)

        token = str(uuid4())
        expires_at = time.time() + self._session_ttl_seconds
        try:
            await self._db.create_session(token, user.id, expires_at)
        except NotFoundError:
            return _failure(INVALID_CREDENTIALS_MESSAGE, AuthErrorKind.INVALID_CREDENTIALS)
        except BackendError:
            logger.exception("failed to create session", user_id=user.id)
            return _failure(INTERNAL_ERROR_MESSAGE, AuthErrorKind.INTERNAL)

        logger.info("user logged in", user_id=user.id)
        return AuthResponse(success=True, message="Login successful", token=token, username=user.username)

    async def logout(self, token: str) -> AuthResponse:
        """Destroy a session. Unknown or already removed tokens still succeed."""
        try:
            await self._db.delete_session(token)
        except BackendError:
            logger.exception("failed to logout")
            return _failure(INTERNAL_ERROR_MESSAGE, AuthErrorKind.INTERNAL)
        return AuthResponse(success=True, message="Logout successful")

    async def validate_token(self, token: str | None) -> Session | None:
        """Return the live session for a token, otherwise None. Storage errors count as no session."""
        if not token:
            return None
        try:
            return await self._db.get_session(token)
        except BackendError:
            logger.exception("failed to validate token")
            return None

    async def cleanup_expired_sessions(self) -> int:
        """Run the backend's expired-session sweep. Return the number removed (0 on failure)."""
        try:
            return await self._db.delete_expired_sessions()
        except BackendError:
            logger.exception("failed to cleanup expired sessions")
            return 0


def _failure(message: str, kind: AuthErrorKind) -> AuthResponse:
    return AuthResponse(success=False, message=message, error=kind)


def _validate_username(username: str) -> None:
    """Validate username: 3-32 chars, letters, digits, underscores, and hyphens."""
    if len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH:
        raise AuthValidationError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
        )
    if not all(c.isalnum() or c in USERNAME_EXTRA_CHARS for c in username):
        raise AuthValidationError("Username can only contain letters, numbers, underscore, and hyphen")


def _validate_password(password: str) -> None:
    """Validate password: at least 6 chars, at most 72 UTF-8 bytes (bcrypt limit)."""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise AuthValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise AuthValidationError(f"Password must not exceed {PASSWORD_MAX_BYTES} bytes when encoded")
