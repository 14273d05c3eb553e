"""
Embedding clients: base, config, registry.

    client = default_registry.build(cfg.provider, cfg.to_dict())
"""
from ragcore.clients.embedding.base import BaseEmbeddingClient
from ragcore.clients.embedding.config import EmbeddingConfig
from ragcore.clients.embedding.registry import EmbeddingRegistry, default_registry

__all__ = [
    "BaseEmbeddingClient",
    "EmbeddingConfig",
    "EmbeddingRegistry",
    "default_registry",
]
