"""IndexingBatcher: write chunks to the vector store in batches and remove them by document."""
from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, List, Optional, Sequence

from ragcore.core.exceptions import ProjectError, VectorStoreWriteError
from ragcore.infra.vectorstore.base import VectorItem
from ragcore.infra.vectorstore.collections import PayloadField, build_chunk_payload
from ragcore.rag.stores import StoredChunk
from ragcore.rag.types import Chunk, DocumentMeta

if TYPE_CHECKING:
    from ragcore.infra.vectorstore.base import BaseVectorStore
    from ragcore.rag.stores import BaseChunkStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


class IndexingBatcher:
    """
    For each batch: vector-store ``add`` first, then the batch's mapping and
    chunk rows. A mapping row therefore only ever points at a stored vector.
    """

    def __init__(
        self,
        vector_store: "BaseVectorStore",
        chunk_store: "BaseChunkStore",
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._vectors = vector_store
        self._chunks = chunk_store
        self._batch_size = batch_size

    async def index(
        self,
        chunks: Sequence[Chunk],
        document_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        meta: DocumentMeta,
    ) -> List[str]:
        """Return the vector ids written, in chunk order. Raises VectorStoreWriteError."""
        timestamp = int(time.time() * 1000)
        written: List[str] = []
        for start in range(0, len(chunks), self._batch_size):
            batch = chunks[start : start + self._batch_size]
            stored = [StoredChunk(chunk=c, vector_id=str(uuid.uuid4())) for c in batch]
            items = [
                VectorItem(
                    id=s.vector_id,
                    text=s.chunk.content,
                    metadata=build_chunk_payload(
                        document_id=str(document_id),
                        user_id=str(user_id) if user_id else None,
                        chunk_index=s.chunk.chunk_index,
                        chunk_kind=s.chunk.kind.value,
                        content=s.chunk.content,
                        title=meta.title,
                        source_type=meta.source_type,
                        timestamp=timestamp,
                        token_count=s.chunk.token_count,
                        section_title=s.chunk.section_title,
                        section_level=s.chunk.section_level,
                    ),
                )
                for s in stored
            ]
            try:
                await self._vectors.add(items)
            except VectorStoreWriteError:
                raise
            except ProjectError as exc:
                raise VectorStoreWriteError(
                    f"Vector write failed for batch starting at chunk {start}", cause=exc
                ) from exc
            batch_ids = [s.vector_id for s in stored]
            try:
                await self._chunks.save_batch(document_id, stored)
            except Exception:
                logger.error("Mapping write failed for document %s, removing batch vectors", document_id)
                await self._vectors.delete(batch_ids)
                raise
            written.extend(batch_ids)
            logger.debug("Indexed batch document=%s start=%d size=%d", document_id, start, len(batch))

        logger.info("Indexed document=%s chunks=%d", document_id, len(written))
        return written

    async def deindex(self, document_id: uuid.UUID) -> int:
        """
        Delete every vector of the document, then its mapping rows, then its
        chunk rows. Vectors are found through the mappings and through a
        metadata lookup, so entries without a mapping row are removed too.
        """
        vector_ids = set(await self._chunks.vector_ids_for_document(document_id))
        vector_ids.update(await self._vectors.find_ids({PayloadField.DOCUMENT_ID: str(document_id)}))
        if vector_ids:
            await self._vectors.delete(sorted(vector_ids))
        mappings = await self._chunks.delete_mappings(document_id)
        chunks = await self._chunks.delete_chunks(document_id)
        logger.info(
            "Deindexed document=%s vectors=%d mappings=%d chunks=%d",
            document_id, len(vector_ids), mappings, chunks,
        )
        return len(vector_ids)
