"""
StaleTaskSweeper: periodically fails processing tasks whose worker went away.

Runs next to the consumer. Each pass calls ``TaskService.fail_stale``; a pass
that raises is logged and the next one runs on schedule.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ragcore.services.task_service import TaskService

logger = logging.getLogger(__name__)


class StaleTaskSweeper:
    def __init__(self, tasks: "TaskService", *, stale_after: float, interval: float) -> None:
        self._tasks = tasks
        self._stale_after = timedelta(seconds=stale_after)
        self._interval = interval
        self._stopped = asyncio.Event()
        self._expired = 0

    @property
    def expired(self) -> int:
        return self._expired

    async def sweep_once(self) -> int:
        try:
            expired = await self._tasks.fail_stale(self._stale_after)
        except Exception:
            logger.exception("Stale task sweep failed")
            return 0
        if expired:
            logger.info("Stale task sweep: failed %d tasks", len(expired))
        self._expired += len(expired)
        return len(expired)

    async def run(self) -> None:
        """Sweep immediately, then every ``interval`` seconds until ``stop()``."""
        while not self._stopped.is_set():
            await self.sweep_once()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue

    def stop(self) -> None:
        self._stopped.set()
