"""IngestionService: submit documents and run the processing pipeline for one message.

Stages, with the task progress reached after each:

    load (20) → structure (40) → chunk (60) → index (90) → complete (100)

Any stage error marks the task and the document as failed. The stage name is
kept in the task's error message so a retry can be diagnosed.
"""
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, List, Optional

from ragcore.core.exceptions import InvalidTaskTransitionError, NotFoundError, QueueError
from ragcore.infra.queue.messages import DocumentProcessingMessage
from ragcore.rag.types import DocumentMeta, Section
from ragcore.tasks.types import ProcessingTask, TaskStatus

if TYPE_CHECKING:
    from ragcore.infra.queue import BaseChannel
    from ragcore.rag.chunker import ChunkingEngine
    from ragcore.rag.indexer import IndexingBatcher
    from ragcore.rag.loaders import BaseStructureExtractor, BaseTextLoader
    from ragcore.rag.stores import BaseDocumentStore, DocumentRecord
    from ragcore.services.task_service import TaskService

logger = logging.getLogger(__name__)

PROGRESS_LOADED = 20
PROGRESS_STRUCTURED = 40
PROGRESS_CHUNKED = 60
PROGRESS_INDEXED = 90


class IngestionService:
    def __init__(
        self,
        tasks: "TaskService",
        documents: "BaseDocumentStore",
        loader: "BaseTextLoader",
        chunker: "ChunkingEngine",
        indexer: "IndexingBatcher",
        channel: "BaseChannel",
        *,
        extractor: Optional["BaseStructureExtractor"] = None,
        chunk_size: int = 500,
        chunk_overlap: int = 100,
    ) -> None:
        self._tasks = tasks
        self._documents = documents
        self._loader = loader
        self._chunker = chunker
        self._indexer = indexer
        self._channel = channel
        self._extractor = extractor
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    # ── producer side ────────────────────────────────────────────

    async def submit(self, document_id: uuid.UUID) -> ProcessingTask:
        """Create a pending task for the document and enqueue it."""
        document = await self._require_document(document_id)
        task = await self._tasks.create_task(document_id)
        message = DocumentProcessingMessage(document_id=document_id, task_id=task.id, user_id=document.user_id)
        try:
            await self._channel.send(message)
        except QueueError as exc:
            await self._tasks.fail(task.id, f"enqueue: {exc}")
            raise
        logger.info("Document submitted: %s (task=%s)", document_id, task.id)
        return task

    async def purge(self, document_id: uuid.UUID) -> int:
        """Remove every vector, mapping and chunk row of the document."""
        removed = await self._indexer.deindex(document_id)
        logger.info("Document purged: %s (vectors=%d)", document_id, removed)
        return removed

    # ── consumer side ────────────────────────────────────────────

    async def process(self, message: DocumentProcessingMessage) -> Optional[ProcessingTask]:
        """
        Run the pipeline for ``message``. Only pending tasks are processed;
        redelivered messages for tasks in any other status are skipped.
        Returns the final task, or None when the task does not exist.
        """
        task = await self._tasks.get_task(message.task_id)
        if task is None:
            logger.warning("Skipping message for unknown task %s", message.task_id)
            return None
        if task.status is not TaskStatus.PENDING:
            logger.info("Skipping task %s in status %s", task.id, task.status.value)
            return task

        try:
            await self._tasks.claim(task.id)
        except InvalidTaskTransitionError:
            logger.info("Task %s was claimed by another worker", task.id)
            return await self._tasks.get_task(task.id)
        stage = "load"
        try:
            document = await self._require_document(message.document_id)
            await self._documents.set_status(document.id, "processing")
            text = await self._loader.load_text(document)
            await self._tasks.update_progress(task.id, PROGRESS_LOADED)

            stage = "structure"
            sections = await self._extract_sections(document, text)
            await self._tasks.update_progress(task.id, PROGRESS_STRUCTURED)

            stage = "chunk"
            chunks = await self._chunker.chunk(
                text, sections, target_tokens=self._chunk_size, overlap_tokens=self._chunk_overlap
            )
            await self._tasks.update_progress(task.id, PROGRESS_CHUNKED)

            stage = "index"
            # entries of an earlier run are superseded, not duplicated
            await self._indexer.deindex(document.id)
            vector_ids = await self._indexer.index(
                chunks,
                document.id,
                message.user_id or document.user_id,
                DocumentMeta(title=document.title, source_type=document.source_type),
            )
            await self._tasks.update_progress(task.id, PROGRESS_INDEXED)

            stage = "complete"
            await self._documents.set_status(document.id, "completed")
            done = await self._tasks.complete(task.id)
        except Exception as exc:
            logger.exception("Processing failed at stage '%s' for task %s", stage, task.id)
            return await self._mark_failed(task.id, message.document_id, f"{stage}: {exc}")

        logger.info(
            "Document processed: %s (chunks=%d vectors=%d)", message.document_id, len(chunks), len(vector_ids)
        )
        return done

    # ── internals ────────────────────────────────────────────────

    async def _extract_sections(self, document: "DocumentRecord", text: str) -> Optional[List[Section]]:
        if self._extractor is None:
            return None
        try:
            return await self._extractor.extract(document, text)
        except Exception as exc:
            logger.warning("Structure extraction failed for %s, using semantic chunking: %s", document.id, exc)
            return None

    async def _require_document(self, document_id: uuid.UUID) -> "DocumentRecord":
        document = await self._documents.get(document_id)
        if document is None or document.is_deleted:
            raise NotFoundError("Document not found or deleted", details={"document_id": str(document_id)})
        return document

    async def _mark_failed(self, task_id: uuid.UUID, document_id: uuid.UUID, error: str) -> ProcessingTask:
        task = await self._tasks.fail(task_id, error)
        try:
            await self._documents.set_status(document_id, "failed")
        except Exception as exc:
            logger.warning("Could not mark document %s failed: %s", document_id, exc)
        return task
