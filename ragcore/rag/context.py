"""ContextAssembler: deduplicated, token-budgeted context from ranked candidates."""
from __future__ import annotations

import logging
from typing import List, Sequence

from ragcore.rag.tokens import estimate_tokens
from ragcore.rag.types import AssembledContext, SearchCandidate

logger = logging.getLogger(__name__)


def _jaccard(a: str, b: str) -> float:
    sa = set(a.lower().split())
    sb = set(b.lower().split())
    if not sa or not sb:
        return 0.0
    return len(sa & sb) / len(sa | sb)


class ContextAssembler:
    def __init__(self, *, max_tokens: int = 4000, dedup_threshold: float = 0.85) -> None:
        self._max_tokens = max_tokens
        self._dedup_threshold = dedup_threshold

    def assemble(self, candidates: Sequence[SearchCandidate]) -> AssembledContext:
        kept: List[SearchCandidate] = []
        for cand in candidates:
            if not cand.content.strip():
                continue
            if any(_jaccard(cand.content, k.content) >= self._dedup_threshold for k in kept):
                continue
            kept.append(cand)

        parts: List[str] = []
        sources = []
        total = 0
        truncated = False
        for cand in kept:
            tokens = estimate_tokens(cand.content)
            if total + tokens > self._max_tokens:
                truncated = True
                break
            parts.append(f"[Source: {cand.title or cand.document_id}]\n{cand.content}")
            sources.append(
                {
                    "document_id": cand.document_id,
                    "chunk_id": cand.chunk_id,
                    "title": cand.title,
                    "score": cand.rerank_score if cand.rerank_score is not None else cand.fused_score,
                }
            )
            total += tokens

        if truncated:
            logger.debug("ContextAssembler: token budget reached after %d passages", len(parts))
        return AssembledContext(
            text="\n\n---\n\n".join(parts),
            sources=sources,
            total_tokens=total,
            chunk_count=len(parts),
            truncated=truncated,
        )
