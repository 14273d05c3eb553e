"""OpenAI chat-completions provider + registry builder."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from ragcore.clients.llm.base import BaseLLMClient, LLMMessage


class OpenAILLMClient(BaseLLMClient):
    def __init__(
        self,
        model: str = "gpt-4o-mini",
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: float = 60.0,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = AsyncOpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            base_url=base_url,
            timeout=timeout,
        )

    @property
    def provider(self) -> str:
        return "openai"

    async def complete(self, prompt: str, *, model: Optional[str] = None) -> str:
        return await self._create([{"role": "user", "content": prompt}], model=model)

    async def chat(self, messages: List[LLMMessage]) -> str:
        """Native chat with system-prompt support."""
        return await self._create(list(messages))

    async def _create(self, messages: List[Any], *, model: Optional[str] = None) -> str:
        kwargs: Dict[str, Any] = {
            "model": model or self._model,
            "messages": messages,
            "temperature": self._temperature,
        }
        if self._max_tokens is not None:
            kwargs["max_tokens"] = self._max_tokens
        response = await self._client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""


def openai_builder(config: Dict[str, Any]) -> OpenAILLMClient:
    return OpenAILLMClient(
        model=config.get("model", "gpt-4o-mini"),
        api_key=config.get("api_key"),
        base_url=config.get("base_url"),
        temperature=float(config.get("temperature", 0.0)),
        max_tokens=config.get("max_tokens"),
        timeout=float(config.get("timeout", 60.0)),
    )
