"""
Session Sweeper - Periodically completes sessions whose time ran out
while nobody was sending messages.

Expiry is already enforced on every send; the sweeper only makes idle
sessions reach their terminal state (and get scored) without a client.
"""

import asyncio
import logging
from typing import Optional

from .errors import DebateError
from .session_machine import SessionManager

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Background asyncio task calling ``SessionManager.expire_idle``."""

    def __init__(self, manager: SessionManager, interval_seconds: float = 60):
        self.manager = manager
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.interval_seconds <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-sweeper")
        logger.info(f"Session sweeper started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")

    async def sweep_once(self) -> int:
        """Run one pass; returns the number of sessions completed."""
        try:
            expired = await self.manager.expire_idle()
        except DebateError as e:
            logger.error(
                f"Session sweep failed: {e.message}",
                extra={"extra_fields": {"error_kind": e.kind}}
            )
            return 0
        except Exception as e:
            logger.error(f"Session sweep crashed: {e}", exc_info=True)
            return 0
        if expired:
            logger.info(
                f"Session sweep completed {len(expired)} expired sessions",
                extra={"extra_fields": {"session_ids": [s.session_id for s in expired]}}
            )
        return len(expired)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.sweep_once()
