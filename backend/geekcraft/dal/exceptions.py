"""Storage-level exceptions shared by every auth repository.

Adapters translate engine-specific failures (sqlite3, Redis, MongoDB) into
these types so the auth service can handle one error surface regardless of
which backend is active.
"""


class StorageError(Exception):
    """Base exception for auth storage failures."""


class ConflictError(StorageError):
    """A user with the requested username already exists."""


class NotFoundError(StorageError):
    """A referenced user does not exist."""


class BackendError(StorageError):
    """The storage engine failed during a single operation (I/O, connectivity, corrupt data).

    The original engine exception is always chained as __cause__ so it can be
    logged with detail, but its text is never shown to clients.
    """


class StartupError(StorageError):
    """The configured backend could not be constructed.

    Raised while opening the database before any traffic is served. Callers
    must abort startup rather than fall back to another backend.
    """
