"""LLM-based reranker with keyword-overlap fallback and tiered prefiltering."""
from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from ragcore.rag.embedder import cosine_similarity
from ragcore.rag.lexical import bm25_score, tokenize

if TYPE_CHECKING:
    from ragcore.clients.llm import BaseLLMClient
    from ragcore.rag.embedder import Embedder

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a relevance assessment expert. Rate how relevant a document is to "
    "a query on a scale of 0 to 10. Respond with the number only."
)

_RERANK_PROMPT_TEMPLATE = (
    "Query: {query}\n\n"
    "Document:\n{passage}\n\n"
    "Relevance score (0-10):"
)

_NON_NUMERIC = re.compile(r"[^0-9.]")
_UNPARSEABLE_SCORE = 5.0

# Candidate-count tiers for prefiltering before LLM scoring.
_LLM_DIRECT_MAX = 5
_VECTOR_TIER_MAX = 20
_BM25_KEEP = 30


def parse_score(raw: str) -> float:
    """Strip everything but digits and dots, clamp to [0, 10]. Unparseable → 5."""
    cleaned = _NON_NUMERIC.sub("", raw or "")
    try:
        value = float(cleaned)
    except ValueError:
        return _UNPARSEABLE_SCORE
    return max(0.0, min(value, 10.0))


def keyword_overlap(query: str, content: str) -> float:
    """Fraction of whitespace-separated query tokens found in the content."""
    tokens = query.lower().split()
    if not tokens:
        return 0.0
    haystack = content.lower()
    return sum(1 for t in tokens if t in haystack) / len(tokens)


class LLMReranker:
    """
    Scores every candidate in [0, 1] and returns ids best first.

    Up to 5 candidates go straight to the LLM. Up to 20 are first cut to
    ``top_k * 2`` by embedding similarity. Larger pools are cut to 30 by BM25
    and then by embedding similarity.
    """

    def __init__(
        self,
        llm: Optional["BaseLLMClient"],
        *,
        embedder: Optional["Embedder"] = None,
        passage_chars: int = 500,
    ) -> None:
        self._llm = llm
        self._embedder = embedder
        self._passage_chars = passage_chars

    async def rerank(self, query: str, candidates: Mapping[str, str], top_k: int) -> List[str]:
        scores = await self.score_all(query, candidates, top_k)
        return sorted(scores, key=lambda cid: scores[cid], reverse=True)[:top_k]

    async def score_all(self, query: str, candidates: Mapping[str, str], top_k: int) -> Dict[str, float]:
        if not candidates:
            return {}
        pool = await self._prefilter(query, candidates, top_k)
        values = await asyncio.gather(*(self.score(query, candidates[cid]) for cid in pool))
        logger.debug("Reranked %d candidates (pool=%d)", len(candidates), len(pool))
        return dict(zip(pool, values))

    async def score(self, query: str, content: str) -> float:
        if self._llm is None:
            return keyword_overlap(query, content)
        passage = content
        if len(passage) > self._passage_chars:
            passage = passage[: self._passage_chars] + "..."
        try:
            raw = await self._llm.chat(
                [
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": _RERANK_PROMPT_TEMPLATE.format(query=query, passage=passage)},
                ]
            )
        except Exception as exc:
            logger.warning("Rerank scoring failed, using keyword overlap: %s", exc)
            return keyword_overlap(query, content)
        return parse_score(raw) / 10.0

    # ── prefilter tiers ───────────────────────────────────────────

    async def _prefilter(self, query: str, candidates: Mapping[str, str], top_k: int) -> List[str]:
        ids = list(candidates)
        if len(ids) <= _LLM_DIRECT_MAX:
            return ids
        if len(ids) > _VECTOR_TIER_MAX:
            query_tokens = tokenize(query)
            ids = sorted(ids, key=lambda cid: bm25_score(query_tokens, candidates[cid]), reverse=True)[:_BM25_KEEP]
        return await self._vector_prefilter(query, {cid: candidates[cid] for cid in ids}, top_k * 2)

    async def _vector_prefilter(self, query: str, candidates: Mapping[str, str], keep: int) -> List[str]:
        ids = list(candidates)
        if len(ids) <= keep:
            return ids
        if self._embedder is None:
            return sorted(ids, key=lambda cid: keyword_overlap(query, candidates[cid]), reverse=True)[:keep]
        try:
            vectors = await self._embedder.embed_texts([query] + [candidates[cid] for cid in ids])
        except Exception as exc:
            logger.warning("Vector prefilter failed, using keyword overlap: %s", exc)
            return sorted(ids, key=lambda cid: keyword_overlap(query, candidates[cid]), reverse=True)[:keep]
        query_vec, doc_vecs = vectors[0], vectors[1:]
        sims = {cid: cosine_similarity(query_vec, vec) for cid, vec in zip(ids, doc_vecs)}
        return sorted(ids, key=lambda cid: sims[cid], reverse=True)[:keep]
