"""Composition root: build the auth stack once per process from settings."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from geekcraft.auth.cleanup import SessionCleanupTask
from geekcraft.auth.password import get_hasher
from geekcraft.auth.service import AuthService
from geekcraft.auth.settings import AuthSettings
from geekcraft.db.auth_database import AuthDatabase

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthStack:
    """The process-wide auth objects, passed explicitly to request handlers."""

    database: AuthDatabase
    service: AuthService
    cleanup: SessionCleanupTask


async def create_auth_stack(settings: AuthSettings | None = None) -> AuthStack:
    """Open the configured backend and wire the service on top of it.

    StartupError from the backend propagates: the process must not start
    serving without its auth database.
    """
    if settings is None:  # pragma: no cover
        settings = AuthSettings()

    database = await AuthDatabase.open(settings.backend_config())
    hasher = get_hasher(settings.password_hasher, rounds=settings.bcrypt_rounds)
    service = AuthService(database, password_hasher=hasher)
    cleanup = SessionCleanupTask(service, interval_seconds=settings.cleanup_interval_seconds)
    logger.info("auth service ready", backend=database.backend, password_hasher=settings.password_hasher)
    return AuthStack(database=database, service=service, cleanup=cleanup)


@contextlib.asynccontextmanager
async def auth_lifespan(settings: AuthSettings | None = None) -> AsyncGenerator[AuthStack]:
    """Run the auth stack for the lifetime of a server: start the sweep, then close everything."""
    stack = await create_auth_stack(settings)
    stack.cleanup.start()
    try:
        yield stack
    finally:
        try:
            await stack.cleanup.stop()
        finally:
            await stack.database.close()
        logger.info("auth service stopped")
