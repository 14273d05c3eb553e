"""QdrantVectorStore: BaseVectorStore over QdrantManager + Embedder."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence

from qdrant_client.models import PointStruct

from ragcore.core.exceptions import ProjectError, VectorStoreWriteError
from ragcore.infra.vectorstore.base import BaseVectorStore, VectorItem
from ragcore.infra.vectorstore.collections import PayloadField
from ragcore.infra.vectorstore.query import build_filter
from ragcore.rag.types import SearchResult

if TYPE_CHECKING:
    from ragcore.infra.vectorstore.client import QdrantManager
    from ragcore.rag.embedder import Embedder

logger = logging.getLogger(__name__)

_SCROLL_PAGE = 256


class QdrantVectorStore(BaseVectorStore):
    def __init__(self, qdrant: "QdrantManager", embedder: "Embedder", collection: str) -> None:
        self._qdrant = qdrant
        self._embedder = embedder
        self._collection = collection

    async def add(self, items: Sequence[VectorItem]) -> None:
        if not items:
            return
        try:
            missing = [item.text for item in items if item.vector is None]
            computed = iter(await self._embedder.embed_texts(missing)) if missing else iter(())
            points = [
                PointStruct(
                    id=item.id,
                    vector=item.vector if item.vector is not None else next(computed),
                    payload={**item.metadata, PayloadField.CONTENT: item.text},
                )
                for item in items
            ]
            await self._qdrant.upsert_points(self._collection, points)
        except ProjectError as exc:
            raise VectorStoreWriteError(
                f"Failed to write {len(items)} vectors: {exc}", cause=exc
            ) from exc

    async def similarity_search(
        self,
        query: str,
        *,
        top_k: int,
        threshold: float,
        metadata_filter: Optional[Mapping[str, Any]] = None,
    ) -> List[SearchResult]:
        vector = await self._embedder.embed_query(query)
        hits = await self._qdrant.search(
            self._collection,
            vector,
            query_filter=build_filter(metadata_filter),
            limit=top_k,
            score_threshold=threshold,
        )
        results: List[SearchResult] = []
        for hit in hits:
            payload = dict(hit.payload or {})
            results.append(
                SearchResult(
                    vector_id=str(hit.id),
                    document_id=str(payload.pop(PayloadField.DOCUMENT_ID, "")),
                    content=str(payload.pop(PayloadField.CONTENT, "")),
                    score=float(hit.score),
                    chunk_index=int(payload.pop(PayloadField.CHUNK_INDEX, 0)),
                    title=str(payload.pop(PayloadField.TITLE, "")),
                    metadata=payload,
                )
            )
        return results

    async def delete(self, ids: Sequence[str]) -> None:
        await self._qdrant.delete_points(self._collection, list(ids))
        logger.debug("Deleted %d vectors from %s", len(ids), self._collection)

    async def find_ids(self, metadata_filter: Mapping[str, Any]) -> List[str]:
        query_filter = build_filter(metadata_filter)
        ids: List[str] = []
        offset = None
        while True:
            points, offset = await self._qdrant.scroll(
                self._collection, scroll_filter=query_filter, limit=_SCROLL_PAGE, offset=offset
            )
            ids.extend(str(p.id) for p in points)
            if offset is None:
                return ids
