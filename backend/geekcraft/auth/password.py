"""Password hashers behind a small async protocol.

BcryptHasher is the only hasher for real accounts. One hash at the default
work factor costs roughly a quarter second of CPU, so both hashing and
checking run in a worker thread (anyio.to_thread.run_sync) and concurrent
logins do not block the event loop.

SimpleHasher is unsalted SHA-256 and exists to keep the test suite fast.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

DEFAULT_BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31


@runtime_checkable
class PasswordHasher(Protocol):
    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str) -> bool: ...


def _bcrypt_hash(plain: str, rounds: int) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def _bcrypt_check(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash ("Invalid salt")
        return False


class BcryptHasher:
    """bcrypt with a configurable work factor (4-31, default 12)."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        if not MIN_BCRYPT_ROUNDS <= rounds <= MAX_BCRYPT_ROUNDS:
            raise ValueError(f"bcrypt rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}")
        self._rounds = rounds

    async def hash(self, plain: str) -> str:
        return await to_thread.run_sync(_bcrypt_hash, plain, self._rounds)

    async def verify(self, plain: str, hashed: str) -> bool:
        """False for a wrong password and for anything that is not a bcrypt hash."""
        return await to_thread.run_sync(_bcrypt_check, plain, hashed)


class SimpleHasher:
    """Test-only hasher. Never configure it for a deployment."""

    _PREFIX = "simple$"

    def _digest(self, plain: str) -> str:
        return self._PREFIX + hashlib.sha256(plain.encode("utf-8")).hexdigest()

    async def hash(self, plain: str) -> str:
        return self._digest(plain)

    async def verify(self, plain: str, hashed: str) -> bool:
        if not hashed.startswith(self._PREFIX):
            return False
        return hmac.compare_digest(self._digest(plain).encode("utf-8"), hashed.encode("utf-8"))


def get_hasher(name: str = "bcrypt", rounds: int = DEFAULT_BCRYPT_ROUNDS) -> PasswordHasher:
    """Build the hasher selected by AuthSettings.password_hasher."""
    match name:
        case "bcrypt":
            return BcryptHasher(rounds)
        case "simple":
            return SimpleHasher()
    raise ValueError(f"Unknown password hasher: {name!r}")
