"""
ragcore.config.redis – task progress cache and queue transport.

Env vars: REDIS_URL, REDIS_TASK_TTL_HOURS, REDIS_QUEUE_NAME, REDIS_KEY_PREFIX,
          REDIS_BLOCK_TIMEOUT.

REDIS_URL unset means "no Redis": the composition root falls back to the
in-process cache and queue.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RedisConfig:
    url: Optional[str] = None
    task_ttl_hours: int = 24
    queue_name: str = "document.processing"
    key_prefix: str = ""
    block_timeout: int = 5

    def __post_init__(self) -> None:
        if self.url is not None and not self.url.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must start with redis://, rediss:// or unix://")
        if self.task_ttl_hours < 1:
            raise ValueError(f"task_ttl_hours must be >= 1, got {self.task_ttl_hours!r}")
        if not self.queue_name.strip():
            raise ValueError("queue_name must be a non-empty string")
        if self.block_timeout < 0:
            raise ValueError(f"block_timeout must be >= 0, got {self.block_timeout!r}")

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    @property
    def task_ttl_seconds(self) -> int:
        return self.task_ttl_hours * 3600

    @classmethod
    def from_env(cls, **overrides: object) -> RedisConfig:
        url = overrides.get("url", os.environ.get("REDIS_URL") or None)
        return cls(
            url=str(url).strip() if url else None,
            task_ttl_hours=int(overrides.get("task_ttl_hours") or os.environ.get("REDIS_TASK_TTL_HOURS", "24")),
            queue_name=str(overrides.get("queue_name") or os.environ.get("REDIS_QUEUE_NAME", "document.processing")),
            key_prefix=str(overrides.get("key_prefix") or os.environ.get("REDIS_KEY_PREFIX", "")),
            block_timeout=int(overrides.get("block_timeout") or os.environ.get("REDIS_BLOCK_TIMEOUT", "5")),
        )


def load_redis_config(**overrides: object) -> RedisConfig:
    return RedisConfig.from_env(**overrides)
