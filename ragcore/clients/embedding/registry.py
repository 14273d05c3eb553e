"""
Embedding provider registry: provider name → builder(config dict) → client.
"""
from __future__ import annotations

from typing import Any, Callable, Dict

from ragcore.clients.embedding.base import BaseEmbeddingClient

Builder = Callable[[Dict[str, Any]], BaseEmbeddingClient]


class EmbeddingRegistry:
    def __init__(self) -> None:
        self._builders: Dict[str, Builder] = {}

    def register(self, provider: str, builder: Builder) -> None:
        self._builders[provider] = builder

    def build(self, provider: str, config: Dict[str, Any]) -> BaseEmbeddingClient:
        """Raises KeyError for an unknown provider."""
        builder = self._builders.get(provider)
        if builder is None:
            raise KeyError(
                f"Unknown embedding provider: {provider!r}. Registered: {sorted(self._builders)}"
            )
        return builder(config)


default_registry = EmbeddingRegistry()

from ragcore.clients.embedding.providers.openai import openai_builder  # noqa: E402

default_registry.register("openai", openai_builder)
