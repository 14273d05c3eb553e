"""
LLM clients: base, config, registry.

    client = default_registry.build(cfg.provider, cfg.to_dict())
"""
from ragcore.clients.llm.base import BaseLLMClient, LLMMessage
from ragcore.clients.llm.config import LLMConfig
from ragcore.clients.llm.registry import LLMRegistry, default_registry

__all__ = [
    "BaseLLMClient",
    "LLMMessage",
    "LLMConfig",
    "LLMRegistry",
    "default_registry",
]
