"""Task progress cache (Redis or in-process)."""
from ragcore.infra.cache.progress import (
    BaseProgressCache,
    LocalProgressCache,
    RedisProgressCache,
    progress_key,
    status_key,
)

__all__ = [
    "BaseProgressCache",
    "LocalProgressCache",
    "RedisProgressCache",
    "progress_key",
    "status_key",
]
