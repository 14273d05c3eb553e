"""HybridSearcher: weighted fusion of vector and lexical retrieval per document."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ragcore.rag.lexical import title_match_score
from ragcore.rag.types import RetrievalPlan, SearchCandidate, SearchResult, SearchScope

if TYPE_CHECKING:
    from ragcore.rag.search import SemanticSearcher
    from ragcore.rag.stores import BaseLexicalStore, LexicalHit

logger = logging.getLogger(__name__)


class HybridSearcher:
    """
    fused = vector_score * vector_weight + text_score * text_weight

    A path that fails (or finds nothing) contributes 0 for every document, so
    a vector-store outage degrades the search to lexical-only results.
    """

    def __init__(
        self,
        searcher: "SemanticSearcher",
        lexical: "BaseLexicalStore",
        *,
        vector_weight: float = 0.6,
        text_weight: float = 0.4,
        lexical_limit: int = 20,
    ) -> None:
        self._searcher = searcher
        self._lexical = lexical
        self._vector_weight = vector_weight
        self._text_weight = text_weight
        self._lexical_limit = lexical_limit

    async def search(
        self,
        query: str,
        plan: RetrievalPlan,
        scope: SearchScope = SearchScope(),
        *,
        variants: Optional[Sequence[str]] = None,
    ) -> List[SearchCandidate]:
        vector_hits, lexical_hits = await asyncio.gather(
            self._vector_path(list(variants) if variants else [query], plan, scope),
            self._lexical_path(query, scope),
        )
        candidates = self.fuse(query, vector_hits, lexical_hits)
        logger.debug(
            "Hybrid search: vector=%d lexical=%d fused=%d",
            len(vector_hits), len(lexical_hits), len(candidates),
        )
        return candidates

    def fuse(
        self,
        query: str,
        vector_hits: Sequence[SearchResult],
        lexical_hits: Sequence["LexicalHit"],
    ) -> List[SearchCandidate]:
        by_doc: Dict[str, SearchCandidate] = {}
        for hit in vector_hits:
            cand = by_doc.get(hit.document_id)
            if cand is None or (cand.vector_score or 0.0) < hit.score:
                by_doc[hit.document_id] = SearchCandidate(
                    document_id=hit.document_id,
                    vector_score=hit.score,
                    chunk_id=hit.vector_id,
                    title=hit.title,
                    content=hit.content,
                    chunk_index=hit.chunk_index,
                )
        for hit in lexical_hits:
            cand = by_doc.get(hit.document_id)
            if cand is None:
                cand = by_doc[hit.document_id] = SearchCandidate(
                    document_id=hit.document_id,
                    chunk_id=hit.chunk_id,
                    title=hit.title,
                    content=hit.content or hit.title,
                )
            cand.text_score = title_match_score(query, hit.title)
            if not cand.title:
                cand.title = hit.title

        for cand in by_doc.values():
            cand.fused_score = (
                (cand.vector_score or 0.0) * self._vector_weight
                + (cand.text_score or 0.0) * self._text_weight
            )
        return sorted(by_doc.values(), key=lambda c: c.fused_score, reverse=True)

    async def _vector_path(
        self, queries: List[str], plan: RetrievalPlan, scope: SearchScope
    ) -> List[SearchResult]:
        try:
            return await self._searcher.search_many(
                queries, top_k=plan.top_k, threshold=plan.similarity_threshold, scope=scope
            )
        except Exception as exc:
            logger.warning("Vector search failed, continuing with lexical results only: %s", exc)
            return []

    async def _lexical_path(self, query: str, scope: SearchScope) -> List["LexicalHit"]:
        try:
            return await self._lexical.search(query, scope, limit=self._lexical_limit)
        except Exception as exc:
            logger.warning("Lexical search failed, continuing with vector results only: %s", exc)
            return []
