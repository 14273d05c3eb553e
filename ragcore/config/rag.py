"""
ragcore.config.rag – chunking, indexing, retrieval and task settings.

Env vars (all optional):
    RAG_CHUNK_SIZE, RAG_CHUNK_OVERLAP, RAG_SEMANTIC_THRESHOLD,
    RAG_EMBED_BATCH_SIZE, RAG_INDEX_BATCH_SIZE,
    RAG_VECTOR_WEIGHT, RAG_TEXT_WEIGHT, RAG_LEXICAL_LIMIT,
    RAG_ENABLE_RERANK, RAG_ENABLE_KEYWORD_EXPANSION, RAG_RERANK_PASSAGE_CHARS,
    RAG_RERANK_EXPAND_FACTOR,
    RAG_MAX_RETRIES, RAG_MAX_CONTEXT_TOKENS, RAG_TASK_STALE_SECONDS,
    RAG_STALE_SWEEP_INTERVAL
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class RAGConfig:
    # chunking (tokens)
    chunk_size: int = 500
    chunk_overlap: int = 100
    semantic_threshold: float = 0.5
    embed_batch_size: int = 10
    # indexing
    index_batch_size: int = 10
    # hybrid fusion
    vector_weight: float = 0.6
    text_weight: float = 0.4
    lexical_limit: int = 20
    # query path
    enable_rerank: bool = True
    enable_keyword_expansion: bool = True
    rerank_passage_chars: int = 500
    rerank_expand_factor: int = 3
    max_context_tokens: int = 4000
    # task lifecycle
    max_retries: int = 3
    # processing tasks without progress for this long are failed by the sweeper
    task_stale_seconds: int = 1800
    stale_sweep_interval: int = 300

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {self.chunk_overlap}"
            )
        if not 0.0 <= self.semantic_threshold <= 1.0:
            raise ValueError(f"semantic_threshold must be in [0, 1], got {self.semantic_threshold}")
        for name in (
            "embed_batch_size",
            "index_batch_size",
            "lexical_limit",
            "rerank_passage_chars",
            "rerank_expand_factor",
            "max_context_tokens",
            "task_stale_seconds",
            "stale_sweep_interval",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.vector_weight < 0 or self.text_weight < 0:
            raise ValueError("fusion weights must be non-negative")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @classmethod
    def from_env(cls, **overrides: Any) -> RAGConfig:
        """Each field maps to ``RAG_<FIELD_NAME>``; overrides win over env."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name in overrides:
                values[f.name] = overrides[f.name]
                continue
            raw = os.environ.get(f"RAG_{f.name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            if f.type in ("bool", bool):
                values[f.name] = _parse_bool(raw)
            elif f.type in ("float", float):
                values[f.name] = float(raw)
            else:
                values[f.name] = int(raw)
        return cls(**values)


def load_rag_config(**overrides: Any) -> RAGConfig:
    return RAGConfig.from_env(**overrides)
