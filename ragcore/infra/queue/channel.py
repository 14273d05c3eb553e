"""
Message channel with at-least-once delivery.

Consumers iterate ``receive()`` and call ``ack()`` once a message is handled;
unacknowledged Redis deliveries are put back on the queue by ``recover()``.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ragcore.core.exceptions import QueueError, ValidationError
from ragcore.infra.queue.messages import DocumentProcessingMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivery:
    message: DocumentProcessingMessage
    raw: str


class BaseChannel(ABC):
    @abstractmethod
    async def send(self, message: DocumentProcessingMessage) -> None:
        """Raises QueueError when the message could not be enqueued."""
        ...

    @abstractmethod
    def receive(self) -> AsyncIterator[Delivery]:
        ...

    @abstractmethod
    async def ack(self, delivery: Delivery) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Stop ``receive()`` iterators."""
        ...


class InMemoryChannel(BaseChannel):
    """asyncio.Queue-backed channel for single-process deployments and tests."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[Delivery]] = asyncio.Queue()

    async def send(self, message: DocumentProcessingMessage) -> None:
        await self._queue.put(Delivery(message=message, raw=message.to_json()))

    async def receive(self) -> AsyncIterator[Delivery]:
        while True:
            delivery = await self._queue.get()
            if delivery is None:
                return
            yield delivery

    async def ack(self, delivery: Delivery) -> None:
        self._queue.task_done()

    async def close(self) -> None:
        await self._queue.put(None)

    def pending(self) -> int:
        return self._queue.qsize()


class RedisChannel(BaseChannel):
    """
    LPUSH onto ``queue_name``; receivers BLMOVE each message into
    ``<queue_name>:processing`` and LREM it from there on ack.
    """

    def __init__(self, redis: Redis, queue_name: str, *, block_timeout: int = 5) -> None:
        self._redis = redis
        self._queue = queue_name
        self._processing = f"{queue_name}:processing"
        self._block_timeout = block_timeout
        self._closed = asyncio.Event()

    async def send(self, message: DocumentProcessingMessage) -> None:
        try:
            await self._redis.lpush(self._queue, message.to_json())
        except (RedisError, OSError) as exc:
            raise QueueError(
                "Failed to enqueue processing message",
                details={"task_id": str(message.task_id)},
                cause=exc,
            ) from exc

    async def receive(self) -> AsyncIterator[Delivery]:
        while not self._closed.is_set():
            try:
                raw = await self._redis.blmove(
                    self._queue, self._processing, self._block_timeout, src="RIGHT", dest="LEFT"
                )
            except (RedisError, OSError) as exc:
                logger.warning("Queue receive failed, retrying: %s", exc)
                await asyncio.sleep(1.0)
                continue
            if raw is None:
                continue
            text = raw.decode() if isinstance(raw, bytes) else raw
            try:
                message = DocumentProcessingMessage.from_json(text)
            except ValidationError:
                logger.error("Dropping malformed queue message: %.200s", text)
                try:
                    await self._redis.lrem(self._processing, 1, text)
                except (RedisError, OSError) as exc:
                    # left in the processing list; recover() requeues it and it is dropped again
                    logger.warning("Could not drop malformed message: %s", exc)
                continue
            yield Delivery(message=message, raw=text)

    async def ack(self, delivery: Delivery) -> None:
        try:
            await self._redis.lrem(self._processing, 1, delivery.raw)
        except (RedisError, OSError) as exc:
            # the message will be redelivered by recover(); handlers are idempotent
            logger.warning("Ack failed for task %s: %s", delivery.message.task_id, exc)

    async def recover(self) -> int:
        """Move deliveries left unacknowledged by a previous consumer back onto the queue."""
        moved = 0
        while await self._redis.lmove(self._processing, self._queue, src="RIGHT", dest="RIGHT") is not None:
            moved += 1
        if moved:
            logger.info("Requeued %d unacknowledged messages from %s", moved, self._processing)
        return moved

    async def close(self) -> None:
        self._closed.set()
