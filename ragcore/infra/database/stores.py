"""
SQLAlchemy implementations of the task, chunk, document and lexical stores.

Each call runs in its own transaction from the session factory, so the stores
are safe to share between concurrently running message handlers.
"""
from __future__ import annotations

import contextlib
import logging
import uuid
from datetime import datetime
from typing import AsyncIterator, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ragcore.core.exceptions import ExternalServiceError, NotFoundError
from ragcore.infra.database.models import DocumentTask, KnowledgeDocument
from ragcore.infra.database.repositories import (
    DocumentChunkRepository,
    DocumentTaskRepository,
    KnowledgeDocumentRepository,
    VectorMappingRepository,
)
from ragcore.rag.stores import (
    BaseChunkStore,
    BaseDocumentStore,
    BaseLexicalStore,
    DocumentRecord,
    LexicalHit,
    StoredChunk,
)
from ragcore.rag.types import SearchScope
from ragcore.tasks.store import BaseTaskStore, Mutation
from ragcore.tasks.types import DEFAULT_MAX_RETRIES, ProcessingTask, TaskStatus, TaskType

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


class _SqlStore:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    @contextlib.asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            raise ExternalServiceError(f"Database operation '{operation}' failed", cause=exc) from exc


def _to_task(row: DocumentTask) -> ProcessingTask:
    return ProcessingTask(
        id=row.id,
        document_id=row.document_id,
        task_type=TaskType(row.task_type),
        status=TaskStatus(row.status),
        progress=row.progress,
        retry_count=row.retry_count,
        max_retries=row.max_retries,
        error_message=row.error_message,
        started_at=row.started_at,
        ended_at=row.ended_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


_MUTABLE_TASK_FIELDS = ("progress", "retry_count", "error_message", "started_at", "ended_at")


class SqlTaskStore(_SqlStore, BaseTaskStore):
    async def create(
        self,
        document_id: uuid.UUID,
        task_type: TaskType = TaskType.DOCUMENT_PROCESSING,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> ProcessingTask:
        async with self._transaction("create_task") as session:
            row = await DocumentTaskRepository(session).create(
                {
                    "document_id": document_id,
                    "task_type": task_type.value,
                    "status": TaskStatus.PENDING.value,
                    "progress": 0,
                    "retry_count": 0,
                    "max_retries": max_retries,
                }
            )
            return _to_task(row)

    async def get(self, task_id: uuid.UUID) -> Optional[ProcessingTask]:
        async with self._transaction("get_task") as session:
            row = await DocumentTaskRepository(session).get_by_id(task_id)
            return _to_task(row) if row is not None else None

    async def transition(self, task_id: uuid.UUID, mutate: Mutation) -> ProcessingTask:
        async with self._transaction("transition_task") as session:
            row = await DocumentTaskRepository(session).get_for_update(task_id)
            if row is None:
                raise NotFoundError("Task not found", details={"task_id": str(task_id)})
            updated = mutate(_to_task(row))
            row.status = updated.status.value
            for name in _MUTABLE_TASK_FIELDS:
                setattr(row, name, getattr(updated, name))
        return updated

    async def find_by_document_id(self, document_id: uuid.UUID) -> List[ProcessingTask]:
        async with self._transaction("find_tasks_by_document") as session:
            rows = await DocumentTaskRepository(session).find_by_document_id(document_id)
            return [_to_task(r) for r in rows]

    async def find_failed_below_max_retries(self, limit: int = 100) -> List[ProcessingTask]:
        async with self._transaction("find_retryable_tasks") as session:
            rows = await DocumentTaskRepository(session).find_failed_below_max_retries(limit)
            return [_to_task(r) for r in rows]

    async def find_stale_processing(self, cutoff: datetime, limit: int = 100) -> List[ProcessingTask]:
        async with self._transaction("find_stale_tasks") as session:
            rows = await DocumentTaskRepository(session).find_stale_processing(cutoff, limit)
            return [_to_task(r) for r in rows]


class SqlChunkStore(_SqlStore, BaseChunkStore):
    async def save_batch(self, document_id: uuid.UUID, stored: Sequence[StoredChunk]) -> None:
        if not stored:
            return
        async with self._transaction("save_chunk_batch") as session:
            await VectorMappingRepository(session).bulk_create(
                [
                    {"document_id": document_id, "chunk_index": s.chunk.chunk_index, "vector_id": s.vector_id}
                    for s in stored
                ]
            )
            await DocumentChunkRepository(session).bulk_create(
                [
                    {
                        "document_id": document_id,
                        "chunk_index": s.chunk.chunk_index,
                        "content": s.chunk.content,
                        "token_count": s.chunk.token_count,
                        "chunk_kind": s.chunk.kind.value,
                        "start_offset": s.chunk.start_offset,
                        "end_offset": s.chunk.end_offset,
                        "section_title": s.chunk.section_title,
                        "section_level": s.chunk.section_level,
                        "vector_id": s.vector_id,
                    }
                    for s in stored
                ]
            )

    async def vector_ids_for_document(self, document_id: uuid.UUID) -> List[str]:
        async with self._transaction("list_vector_ids") as session:
            return await VectorMappingRepository(session).vector_ids_for_document(document_id)

    async def delete_mappings(self, document_id: uuid.UUID) -> int:
        async with self._transaction("delete_mappings") as session:
            return await VectorMappingRepository(session).delete_by_document(document_id)

    async def delete_chunks(self, document_id: uuid.UUID) -> int:
        async with self._transaction("delete_chunks") as session:
            return await DocumentChunkRepository(session).delete_by_document(document_id)


def _to_record(row: KnowledgeDocument) -> DocumentRecord:
    return DocumentRecord(
        id=row.id,
        title=row.title,
        user_id=row.user_id,
        source_type=row.source_type,
        file_path=row.file_path,
        status=row.status,
        is_deleted=row.is_deleted,
    )


class SqlDocumentStore(_SqlStore, BaseDocumentStore):
    async def get(self, document_id: uuid.UUID) -> Optional[DocumentRecord]:
        async with self._transaction("get_document") as session:
            row = await KnowledgeDocumentRepository(session).get_by_id(document_id)
            return _to_record(row) if row is not None else None

    async def set_status(self, document_id: uuid.UUID, status: str) -> None:
        async with self._transaction("set_document_status") as session:
            if not await KnowledgeDocumentRepository(session).set_status(document_id, status):
                logger.warning("set_status: document %s not found", document_id)


class SqlLexicalStore(_SqlStore, BaseLexicalStore):
    """Case-insensitive substring match over document titles and chunk text."""

    async def search(self, query: str, scope: SearchScope, limit: int = 20) -> List[LexicalHit]:
        query = query.strip()
        if not query:
            return []
        async with self._transaction("lexical_search") as session:
            docs = await KnowledgeDocumentRepository(session).search_text(
                query,
                user_id=scope.user_id,
                document_ids=list(scope.document_ids) if scope.document_ids else None,
                limit=limit,
            )
            chunks = DocumentChunkRepository(session)
            hits: List[LexicalHit] = []
            for doc in docs:
                chunk = await chunks.first_match(doc.id, query)
                hits.append(
                    LexicalHit(
                        document_id=str(doc.id),
                        title=doc.title,
                        content=chunk.content if chunk is not None else "",
                        chunk_id=chunk.vector_id if chunk is not None else None,
                    )
                )
            return hits
