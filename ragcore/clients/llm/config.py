"""LLM client configuration (LLM_* env vars)."""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class LLMConfig:
    model: str = "gpt-4o-mini"
    provider: Optional[str] = "openai"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.0
    max_tokens: Optional[int] = None
    timeout: float = 60.0
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """
        LLM_PROVIDER (empty disables the LLM), LLM_MODEL, LLM_API_KEY (or
        OPENAI_API_KEY), LLM_BASE_URL, LLM_TEMPERATURE, LLM_MAX_TOKENS.
        """
        max_tokens = os.environ.get("LLM_MAX_TOKENS")
        return cls(
            model=os.environ.get("LLM_MODEL", "gpt-4o-mini"),
            provider=os.environ.get("LLM_PROVIDER", "openai") or None,
            api_key=os.environ.get("LLM_API_KEY") or os.environ.get("OPENAI_API_KEY"),
            base_url=os.environ.get("LLM_BASE_URL") or None,
            temperature=float(os.environ.get("LLM_TEMPERATURE", "0")),
            max_tokens=int(max_tokens) if max_tokens else None,
            timeout=float(os.environ.get("LLM_TIMEOUT", "60")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}
