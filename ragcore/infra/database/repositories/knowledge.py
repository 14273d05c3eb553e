"""Repositories for KnowledgeDocument, DocumentChunk and VectorMapping."""
from __future__ import annotations

from typing import ClassVar, List, Optional
from uuid import UUID

from sqlalchemy import or_, select, update

from ragcore.infra.database.models.knowledge import DocumentChunk, KnowledgeDocument, VectorMapping
from ragcore.infra.database.repositories.base import BaseRepository


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class KnowledgeDocumentRepository(BaseRepository[KnowledgeDocument]):
    model: ClassVar[type] = KnowledgeDocument

    async def set_status(self, doc_id: UUID, status: str) -> bool:
        stmt = update(KnowledgeDocument).where(KnowledgeDocument.id == doc_id).values(status=status)
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def search_text(
        self,
        query: str,
        *,
        user_id: Optional[UUID] = None,
        document_ids: Optional[List[UUID]] = None,
        limit: int = 20,
    ) -> List[KnowledgeDocument]:
        """Active documents whose title or any chunk contains ``query`` (case-insensitive)."""
        pattern = _like_pattern(query)
        chunk_match = (
            select(DocumentChunk.document_id)
            .where(DocumentChunk.content.ilike(pattern, escape="\\"))
        )
        stmt = select(KnowledgeDocument).where(
            KnowledgeDocument.is_deleted.is_(False),
            or_(
                KnowledgeDocument.title.ilike(pattern, escape="\\"),
                KnowledgeDocument.id.in_(chunk_match),
            ),
        )
        if user_id is not None:
            stmt = stmt.where(KnowledgeDocument.user_id == user_id)
        if document_ids:
            stmt = stmt.where(KnowledgeDocument.id.in_(document_ids))
        stmt = stmt.order_by(KnowledgeDocument.updated_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class DocumentChunkRepository(BaseRepository[DocumentChunk]):
    model: ClassVar[type] = DocumentChunk

    async def first_match(self, document_id: UUID, query: str) -> Optional[DocumentChunk]:
        stmt = (
            select(DocumentChunk)
            .where(
                DocumentChunk.document_id == document_id,
                DocumentChunk.content.ilike(_like_pattern(query), escape="\\"),
            )
            .order_by(DocumentChunk.chunk_index)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_by_document(self, document_id: UUID) -> int:
        return await self.delete_where(DocumentChunk.document_id == document_id)


class VectorMappingRepository(BaseRepository[VectorMapping]):
    model: ClassVar[type] = VectorMapping

    async def vector_ids_for_document(self, document_id: UUID) -> List[str]:
        stmt = (
            select(VectorMapping.vector_id)
            .where(VectorMapping.document_id == document_id)
            .order_by(VectorMapping.chunk_index)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_document(self, document_id: UUID) -> int:
        return await self.delete_where(VectorMapping.document_id == document_id)
