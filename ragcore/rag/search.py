"""SemanticSearcher: vector similarity search, single query or fanned out over several."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, List, Sequence

from ragcore.rag.types import SearchResult, SearchScope

if TYPE_CHECKING:
    from ragcore.infra.vectorstore.base import BaseVectorStore

logger = logging.getLogger(__name__)


def merge_max(result_lists: Sequence[Sequence[SearchResult]], top_k: int) -> List[SearchResult]:
    """Keep the highest-scoring hit per vector id, sort descending, truncate."""
    best: Dict[str, SearchResult] = {}
    for results in result_lists:
        for hit in results:
            current = best.get(hit.vector_id)
            if current is None or hit.score > current.score:
                best[hit.vector_id] = hit
    return sorted(best.values(), key=lambda r: r.score, reverse=True)[:top_k]


class SemanticSearcher:
    def __init__(self, vector_store: "BaseVectorStore") -> None:
        self._store = vector_store

    async def search(
        self,
        query: str,
        *,
        top_k: int,
        threshold: float,
        scope: SearchScope = SearchScope(),
    ) -> List[SearchResult]:
        results = await self._store.similarity_search(
            query, top_k=top_k, threshold=threshold, metadata_filter=scope.as_filter()
        )
        logger.debug("SemanticSearcher returned %d results for query length=%d", len(results), len(query))
        return results

    async def search_many(
        self,
        queries: Sequence[str],
        *,
        top_k: int,
        threshold: float,
        scope: SearchScope = SearchScope(),
    ) -> List[SearchResult]:
        """
        Run one search per query concurrently. A failing query contributes
        nothing; if every query fails the last error is raised.
        """
        if not queries:
            return []
        outcomes = await asyncio.gather(
            *(self.search(q, top_k=top_k, threshold=threshold, scope=scope) for q in queries),
            return_exceptions=True,
        )
        lists: List[List[SearchResult]] = []
        errors: List[BaseException] = []
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Search failed for query %r: %s", query[:80], outcome)
                errors.append(outcome)
            else:
                lists.append(outcome)
        if errors and not lists:
            raise errors[-1]
        return merge_max(lists, top_k)
