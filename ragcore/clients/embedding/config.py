"""Embedding client configuration (EMBEDDING_* env vars)."""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class EmbeddingConfig:
    model: str = "text-embedding-3-small"
    provider: str = "openai"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 60.0
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "EmbeddingConfig":
        """EMBEDDING_PROVIDER, EMBEDDING_MODEL, EMBEDDING_API_KEY (or OPENAI_API_KEY), EMBEDDING_BASE_URL."""
        return cls(
            model=os.environ.get("EMBEDDING_MODEL", "text-embedding-3-small"),
            provider=os.environ.get("EMBEDDING_PROVIDER", "openai"),
            api_key=os.environ.get("EMBEDDING_API_KEY") or os.environ.get("OPENAI_API_KEY"),
            base_url=os.environ.get("EMBEDDING_BASE_URL") or None,
            timeout=float(os.environ.get("EMBEDDING_TIMEOUT", "60")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, omitting None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}
