"""
Task progress/status cache. Best-effort: a cache failure is logged and
treated as a miss, the durable store stays authoritative.
"""
from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 3600


def progress_key(task_id: uuid.UUID) -> str:
    return f"task:progress:{task_id}"


def status_key(task_id: uuid.UUID) -> str:
    return f"task:status:{task_id}"


class BaseProgressCache(ABC):
    @abstractmethod
    async def get_progress(self, task_id: uuid.UUID) -> Optional[int]:
        ...

    @abstractmethod
    async def set_progress(self, task_id: uuid.UUID, progress: int) -> None:
        ...

    @abstractmethod
    async def get_status(self, task_id: uuid.UUID) -> Optional[str]:
        ...

    @abstractmethod
    async def set_status(self, task_id: uuid.UUID, status: str) -> None:
        ...


class RedisProgressCache(BaseProgressCache):
    def __init__(self, redis: Redis, *, ttl_seconds: int = DEFAULT_TTL_SECONDS, key_prefix: str = "") -> None:
        self._redis = redis
        self._ttl = ttl_seconds
        self._prefix = key_prefix

    async def _get(self, key: str) -> Optional[str]:
        try:
            raw = await self._redis.get(self._prefix + key)
        except (RedisError, OSError) as exc:
            logger.warning("Progress cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        return raw.decode() if isinstance(raw, bytes) else str(raw)

    async def _set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(self._prefix + key, value, ex=self._ttl)
        except (RedisError, OSError) as exc:
            logger.warning("Progress cache write failed for %s: %s", key, exc)

    async def get_progress(self, task_id: uuid.UUID) -> Optional[int]:
        raw = await self._get(progress_key(task_id))
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring malformed cached progress %r for task %s", raw, task_id)
            return None

    async def set_progress(self, task_id: uuid.UUID, progress: int) -> None:
        await self._set(progress_key(task_id), str(progress))

    async def get_status(self, task_id: uuid.UUID) -> Optional[str]:
        return await self._get(status_key(task_id))

    async def set_status(self, task_id: uuid.UUID, status: str) -> None:
        await self._set(status_key(task_id), status)


class LocalProgressCache(BaseProgressCache):
    """In-process LRU with TTL, for single-worker setups and tests."""

    def __init__(
        self,
        max_size: int = 10_000,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._store: OrderedDict[str, Tuple[str, float]] = OrderedDict()

    def _get(self, key: str) -> Optional[str]:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, ts = entry
        if self._clock() - ts > self._ttl:
            self._store.pop(key, None)
            return None
        self._store.move_to_end(key)
        return value

    def _set(self, key: str, value: str) -> None:
        self._store[key] = (value, self._clock())
        self._store.move_to_end(key)
        while len(self._store) > self._max_size:
            self._store.popitem(last=False)

    async def get_progress(self, task_id: uuid.UUID) -> Optional[int]:
        raw = self._get(progress_key(task_id))
        return int(raw) if raw is not None else None

    async def set_progress(self, task_id: uuid.UUID, progress: int) -> None:
        self._set(progress_key(task_id), str(progress))

    async def get_status(self, task_id: uuid.UUID) -> Optional[str]:
        return self._get(status_key(task_id))

    async def set_status(self, task_id: uuid.UUID, status: str) -> None:
        self._set(status_key(task_id), status)

    def clear(self) -> None:
        self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)
