"""Periodic background sweep of expired sessions."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from geekcraft.auth.service import AuthService

CLEANUP_INTERVAL_SECONDS = 300  # 5 minutes

logger = structlog.get_logger()


class SessionCleanupTask:
    """Call AuthService.cleanup_expired_sessions on a fixed interval.

    Call start() on app startup and stop() on shutdown. Backends that expire
    sessions natively (Redis) turn each sweep into a no-op.
    """

    def __init__(self, auth_service: AuthService, interval_seconds: float = CLEANUP_INTERVAL_SECONDS) -> None:
        if interval_seconds <= 0:
            raise ValueError("Cleanup interval must be positive")
        self._auth_service = auth_service
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic cleanup background task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("session cleanup started", interval_seconds=self._interval_seconds)

    async def stop(self) -> None:
        """Stop the periodic cleanup background task."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self._auth_service.cleanup_expired_sessions()
            except Exception:
                # One failed sweep must not end the periodic task.
                logger.exception("session cleanup sweep failed")
