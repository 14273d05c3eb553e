"""
LLM provider registry: provider name → builder(config dict) → client.
"""
from __future__ import annotations

from typing import Any, Callable, Dict

from ragcore.clients.llm.base import BaseLLMClient

Builder = Callable[[Dict[str, Any]], BaseLLMClient]


class LLMRegistry:
    def __init__(self) -> None:
        self._builders: Dict[str, Builder] = {}

    def register(self, provider: str, builder: Builder) -> None:
        self._builders[provider] = builder

    def build(self, provider: str, config: Dict[str, Any]) -> BaseLLMClient:
        """Raises KeyError for an unknown provider."""
        builder = self._builders.get(provider)
        if builder is None:
            raise KeyError(f"Unknown LLM provider: {provider!r}. Registered: {sorted(self._builders)}")
        return builder(config)


default_registry = LLMRegistry()

from ragcore.clients.llm.providers.openai import openai_builder  # noqa: E402

default_registry.register("openai", openai_builder)
