"""
DocumentProcessingConsumer: drains the processing channel.

Each delivery is handled in its own asyncio task and acknowledged once the
handler returns, whatever the outcome, since failures are recorded on the
task itself. ``concurrency`` bounds the number of in-flight handlers
(0 = unbounded).
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional, Set

if TYPE_CHECKING:
    from ragcore.infra.queue import BaseChannel, Delivery
    from ragcore.services.ingestion_service import IngestionService

logger = logging.getLogger(__name__)


class DocumentProcessingConsumer:
    def __init__(
        self,
        channel: "BaseChannel",
        ingestion: "IngestionService",
        *,
        concurrency: int = 0,
    ) -> None:
        self._channel = channel
        self._ingestion = ingestion
        self._semaphore: Optional[asyncio.Semaphore] = asyncio.Semaphore(concurrency) if concurrency > 0 else None
        self._inflight: Set[asyncio.Task] = set()
        self._handled = 0

    @property
    def handled(self) -> int:
        return self._handled

    async def run(self) -> None:
        """Consume until the channel is closed, then wait for in-flight handlers."""
        logger.info("Consumer started")
        async for delivery in self._channel.receive():
            if self._semaphore is not None:
                await self._semaphore.acquire()
            task = asyncio.create_task(self._handle(delivery))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("Consumer stopped (handled=%d)", self._handled)

    async def stop(self) -> None:
        await self._channel.close()

    async def _handle(self, delivery: "Delivery") -> None:
        message = delivery.message
        try:
            await self._ingestion.process(message)
        except Exception:
            # task bookkeeping itself failed (store or cache down); the message stays redeliverable
            logger.exception("Handler error for task %s", message.task_id)
            return
        finally:
            if self._semaphore is not None:
                self._semaphore.release()
        await self._channel.ack(delivery)
        self._handled += 1
