"""Account registration, credential checks, and session token management."""

from geekcraft.auth.cleanup import SessionCleanupTask
from geekcraft.auth.models import AuthErrorKind, AuthResponse, Session, User
from geekcraft.auth.password import BcryptHasher, PasswordHasher, SimpleHasher, get_hasher
from geekcraft.auth.service import SESSION_DURATION_SECONDS, AuthError, AuthService, AuthValidationError
from geekcraft.auth.settings import AuthSettings

__all__ = [
    "SESSION_DURATION_SECONDS",
    "AuthError",
    "AuthErrorKind",
    "AuthResponse",
    "AuthService",
    "AuthSettings",
    "AuthValidationError",
    "BcryptHasher",
    "PasswordHasher",
    "Session",
    "SessionCleanupTask",
    "SimpleHasher",
    "User",
    "get_hasher",
]
