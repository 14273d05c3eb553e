"""
ragcore.config.qdrant – Qdrant connection and collection config.

Env vars: QDRANT_URL, QDRANT_API_KEY, QDRANT_TIMEOUT, QDRANT_VECTOR_SIZE,
         QDRANT_COLLECTION_NAME, QDRANT_DISTANCE.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

_VALID_DISTANCES = frozenset({"Cosine", "Dot", "Euclid"})


@dataclass(frozen=True)
class QdrantConfig:
    url: str
    api_key: str | None = None
    timeout: int = 30
    vector_size: int = 1536
    collection_name: str = "document_chunks"
    distance: str = "Cosine"

    def __post_init__(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise ValueError("QDRANT_URL must start with http:// or https://")
        if self.timeout < 1:
            raise ValueError(f"timeout must be a positive integer, got {self.timeout!r}")
        if self.vector_size < 1:
            raise ValueError(f"vector_size must be a positive integer, got {self.vector_size!r}")
        if self.distance not in _VALID_DISTANCES:
            raise ValueError(f"distance must be one of {sorted(_VALID_DISTANCES)}, got {self.distance!r}")
        if not self.collection_name.strip():
            raise ValueError("collection_name must be a non-empty string")

    @classmethod
    def from_env(cls, **overrides: object) -> QdrantConfig:
        def _get(attr: str, env: str, default: str) -> str:
            v = overrides.get(attr)
            return str(v if v is not None else os.environ.get(env, default)).strip()

        api_key = _get("api_key", "QDRANT_API_KEY", "") or None
        return cls(
            url=_get("url", "QDRANT_URL", "http://localhost:6333").rstrip("/"),
            api_key=api_key,
            timeout=int(_get("timeout", "QDRANT_TIMEOUT", "30")),
            vector_size=int(_get("vector_size", "QDRANT_VECTOR_SIZE", "1536")),
            collection_name=_get("collection_name", "QDRANT_COLLECTION_NAME", "document_chunks"),
            distance=_get("distance", "QDRANT_DISTANCE", "Cosine"),
        )


def load_qdrant_config(**overrides: object) -> QdrantConfig:
    return QdrantConfig.from_env(**overrides)
