"""Processing queue: message format and channels."""
from ragcore.infra.queue.channel import BaseChannel, Delivery, InMemoryChannel, RedisChannel
from ragcore.infra.queue.messages import DocumentProcessingMessage

__all__ = [
    "BaseChannel",
    "Delivery",
    "InMemoryChannel",
    "RedisChannel",
    "DocumentProcessingMessage",
]
