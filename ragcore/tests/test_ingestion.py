"""Unit tests for IndexingBatcher, IngestionService and the queue consumer."""
from __future__ import annotations

import asyncio
import dataclasses
import unittest
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from ragcore.core.exceptions import (
    ExternalServiceError,
    ExtractionError,
    NotFoundError,
    ProjectError,
    VectorStoreWriteError,
)
from ragcore.infra.cache import LocalProgressCache
from ragcore.infra.queue import DocumentProcessingMessage, InMemoryChannel
from ragcore.rag.chunker import ChunkingEngine
from ragcore.rag.embedder import Embedder
from ragcore.rag.indexer import IndexingBatcher
from ragcore.rag.loaders import MarkdownStructureExtractor
from ragcore.rag.types import Chunk, ChunkKind, DocumentMeta
from ragcore.services.ingestion_service import IngestionService
from ragcore.services.task_service import TaskService
from ragcore.tasks.types import TaskStatus
from ragcore.tests.fakes import (
    FakeEmbeddingClient,
    InMemoryChunkStore,
    InMemoryDocumentStore,
    InMemoryTaskStore,
    InMemoryVectorStore,
    document,
    failed_task,
)
from ragcore.workers.consumer import DocumentProcessingConsumer
from ragcore.workers.sweeper import StaleTaskSweeper


def _chunks(n: int):
    return [Chunk(f"chunk {i}", i, 2, ChunkKind.FALLBACK, i * 10, i * 10 + 10) for i in range(n)]


class TestIndexingBatcher(unittest.TestCase):
    def setUp(self) -> None:
        self.log = []
        self.vectors = InMemoryVectorStore(self.log)
        self.chunk_store = InMemoryChunkStore(self.log)
        self.indexer = IndexingBatcher(self.vectors, self.chunk_store, batch_size=10)
        self.doc_id = uuid.uuid4()

    def test_batches_of_ten(self) -> None:
        ids = asyncio.run(self.indexer.index(_chunks(23), self.doc_id, None, DocumentMeta(title="T")))
        self.assertEqual(len(ids), 23)
        self.assertEqual([len(c) for c in self.vectors.add_calls], [10, 10, 3])
        self.assertEqual(self.log[:2], ["vectors.add", "chunks.save_batch"])
        meta = self.vectors.add_calls[0][0].metadata
        self.assertEqual(meta["document_id"], str(self.doc_id))
        self.assertNotIn("user_id", meta)
        self.assertEqual(meta["title"], "T")

    def test_vector_failure_is_a_write_error(self) -> None:
        self.vectors.add_error = ProjectError("upsert failed")
        with self.assertRaises(VectorStoreWriteError):
            asyncio.run(self.indexer.index(_chunks(3), self.doc_id, None, DocumentMeta()))
        self.assertNotIn("chunks.save_batch", self.log)

    def test_mapping_failure_removes_batch_vectors(self) -> None:
        self.chunk_store.save_error = RuntimeError("db down")
        with self.assertRaises(RuntimeError):
            asyncio.run(self.indexer.index(_chunks(3), self.doc_id, None, DocumentMeta()))
        self.assertEqual(self.vectors.items, {})
        self.assertEqual(self.log[-1], "vectors.delete")

    def test_deindex_order_and_orphans(self) -> None:
        asyncio.run(self.indexer.index(_chunks(2), self.doc_id, None, DocumentMeta()))
        self.vectors.extra_ids = ["orphan"]
        self.log.clear()
        removed = asyncio.run(self.indexer.deindex(self.doc_id))
        self.assertEqual(removed, 3)
        self.assertEqual(self.log, ["vectors.delete", "chunks.delete_mappings", "chunks.delete_chunks"])
        self.assertEqual(self.chunk_store.rows, {})


class _Loader:
    def __init__(self, text: str = "", error: Exception = None) -> None:
        self.text = text
        self.error = error
        self.calls = 0

    async def load_text(self, document):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


class TestIngestionService(unittest.TestCase):
    def setUp(self) -> None:
        self.doc = document()
        self.documents = InMemoryDocumentStore(self.doc)
        self.vectors = InMemoryVectorStore()
        self.indexer = IndexingBatcher(self.vectors, InMemoryChunkStore())
        self.channel = InMemoryChannel()
        self.store = InMemoryTaskStore()
        self.tasks = TaskService(self.store, LocalProgressCache(), self.indexer, self.channel)
        self.loader = _Loader("Alpha facts. Beta facts.")

    def _service(self, **kwargs) -> IngestionService:
        return IngestionService(
            self.tasks,
            self.documents,
            kwargs.pop("loader", self.loader),
            ChunkingEngine(Embedder(FakeEmbeddingClient())),
            self.indexer,
            self.channel,
            **kwargs,
        )

    def _message(self, task) -> DocumentProcessingMessage:
        return DocumentProcessingMessage(document_id=self.doc.id, task_id=task.id, user_id=self.doc.user_id)

    def test_process_completes_task(self) -> None:
        service = self._service()
        task = asyncio.run(self.tasks.create_task(self.doc.id))
        done = asyncio.run(service.process(self._message(task)))
        self.assertIs(done.status, TaskStatus.COMPLETED)
        self.assertEqual(done.progress, 100)
        self.assertEqual(self.documents.documents[self.doc.id].status, "completed")
        self.assertEqual(len(self.vectors.items), 1)
        item = next(iter(self.vectors.items.values()))
        self.assertEqual(item.metadata["user_id"], str(self.doc.user_id))

    def test_markdown_structure_gives_section_chunks(self) -> None:
        self.loader.text = "# Setup\nInstall it.\n# Usage\nRun it."
        service = self._service(extractor=MarkdownStructureExtractor())
        task = asyncio.run(self.tasks.create_task(self.doc.id))
        asyncio.run(service.process(self._message(task)))
        kinds = {item.metadata["chunk_kind"] for item in self.vectors.items.values()}
        self.assertEqual(kinds, {"section"})
        self.assertEqual(len(self.vectors.items), 2)

    def test_parse_failure_marks_task_and_document_failed(self) -> None:
        service = self._service(loader=_Loader(error=ExtractionError("corrupt pdf")))
        task = asyncio.run(self.tasks.create_task(self.doc.id))
        failed = asyncio.run(service.process(self._message(task)))
        self.assertIs(failed.status, TaskStatus.FAILED)
        self.assertTrue(failed.error_message.startswith("load:"))
        self.assertEqual(self.documents.documents[self.doc.id].status, "failed")

    def test_index_failure_is_retryable(self) -> None:
        self.vectors.add_error = VectorStoreWriteError("qdrant down")
        service = self._service()
        task = asyncio.run(self.tasks.create_task(self.doc.id))
        failed = asyncio.run(service.process(self._message(task)))
        self.assertTrue(failed.error_message.startswith("index:"))
        self.assertTrue(failed.can_retry)

    def test_redelivery_of_finished_task_is_skipped(self) -> None:
        service = self._service()
        task = self.store.put(dataclasses.replace(failed_task(self.doc.id), status=TaskStatus.COMPLETED))
        result = asyncio.run(service.process(self._message(task)))
        self.assertIs(result.status, TaskStatus.COMPLETED)
        self.assertEqual(self.loader.calls, 0)

    def test_unknown_task(self) -> None:
        message = DocumentProcessingMessage(document_id=self.doc.id, task_id=uuid.uuid4())
        self.assertIsNone(asyncio.run(self._service().process(message)))

    def test_submit_creates_pending_task_and_enqueues(self) -> None:
        task = asyncio.run(self._service().submit(self.doc.id))
        self.assertIs(task.status, TaskStatus.PENDING)
        self.assertEqual(self.channel.pending(), 1)

    def test_purge_removes_everything_indexed(self) -> None:
        service = self._service()
        task = asyncio.run(self.tasks.create_task(self.doc.id))
        asyncio.run(service.process(self._message(task)))
        self.assertEqual(asyncio.run(service.purge(self.doc.id)), 1)
        self.assertEqual(self.vectors.items, {})

    def test_submit_unknown_document(self) -> None:
        with self.assertRaises(NotFoundError):
            asyncio.run(self._service().submit(uuid.uuid4()))
        self.assertEqual(self.store.tasks, {})

    def test_processing_twice_replaces_earlier_vectors(self) -> None:
        service = self._service()
        for _ in range(2):
            task = asyncio.run(self.tasks.create_task(self.doc.id))
            done = asyncio.run(service.process(self._message(task)))
            self.assertIs(done.status, TaskStatus.COMPLETED)
        self.assertEqual(len(self.vectors.items), 1)

    def _sweep(self):
        later = datetime.now(timezone.utc) + timedelta(hours=1)
        return asyncio.run(self.tasks.fail_stale(timedelta(minutes=30), now=later))

    def test_task_of_crashed_worker_is_recovered(self) -> None:
        service = self._service()
        task = asyncio.run(self.tasks.create_task(self.doc.id))
        asyncio.run(self.tasks.claim(task.id))

        redelivered = asyncio.run(service.process(self._message(task)))
        self.assertIs(redelivered.status, TaskStatus.PROCESSING)
        self.assertEqual(self.loader.calls, 0)

        self.assertEqual([t.id for t in self._sweep()], [task.id])
        asyncio.run(self.tasks.retry_task(task.id))
        done = asyncio.run(service.process(self._message(task)))
        self.assertIs(done.status, TaskStatus.COMPLETED)
        self.assertEqual(done.retry_count, 1)

    def test_task_left_processing_when_failure_cannot_be_recorded(self) -> None:
        service = self._service(loader=_Loader(error=ExtractionError("corrupt pdf")))
        task = asyncio.run(self.tasks.create_task(self.doc.id))
        with patch.object(self.tasks, "fail", AsyncMock(side_effect=ExternalServiceError("db down"))):
            with self.assertRaises(ExternalServiceError):
                asyncio.run(service.process(self._message(task)))
        self.assertIs(self.store.tasks[task.id].status, TaskStatus.PROCESSING)

        [expired] = self._sweep()
        self.assertIs(expired.status, TaskStatus.FAILED)
        retried = asyncio.run(self.tasks.retry_task(task.id))
        self.assertIs(retried.status, TaskStatus.PENDING)


class TestConsumer(unittest.TestCase):
    def _message(self) -> DocumentProcessingMessage:
        return DocumentProcessingMessage(document_id=uuid.uuid4(), task_id=uuid.uuid4())

    def test_handles_and_acks_every_delivery(self) -> None:
        async def scenario():
            channel = InMemoryChannel()
            ingestion = MagicMock()
            ingestion.process = AsyncMock(return_value=None)
            consumer = DocumentProcessingConsumer(channel, ingestion, concurrency=1)
            await channel.send(self._message())
            await channel.send(self._message())
            await consumer.stop()
            await consumer.run()
            return consumer, ingestion

        consumer, ingestion = asyncio.run(scenario())
        self.assertEqual(ingestion.process.await_count, 2)
        self.assertEqual(consumer.handled, 2)

    def test_handler_error_leaves_message_unacked(self) -> None:
        async def scenario():
            channel = InMemoryChannel()
            channel.ack = AsyncMock()
            ingestion = MagicMock()
            ingestion.process = AsyncMock(side_effect=RuntimeError("store down"))
            consumer = DocumentProcessingConsumer(channel, ingestion)
            await channel.send(self._message())
            await consumer.stop()
            await consumer.run()
            return consumer, channel

        consumer, channel = asyncio.run(scenario())
        channel.ack.assert_not_awaited()
        self.assertEqual(consumer.handled, 0)


class TestStaleTaskSweeper(unittest.TestCase):
    def test_sweep_counts_expired_tasks(self) -> None:
        tasks = MagicMock()
        tasks.fail_stale = AsyncMock(return_value=[failed_task(uuid.uuid4()), failed_task(uuid.uuid4())])

        async def scenario():
            sweeper = StaleTaskSweeper(tasks, stale_after=60, interval=3600)
            running = asyncio.create_task(sweeper.run())
            await asyncio.sleep(0.01)
            sweeper.stop()
            await asyncio.wait_for(running, timeout=1)
            return sweeper

        sweeper = asyncio.run(scenario())
        self.assertEqual(sweeper.expired, 2)
        tasks.fail_stale.assert_awaited_once_with(timedelta(seconds=60))

    def test_failed_sweep_is_logged_and_skipped(self) -> None:
        tasks = MagicMock()
        tasks.fail_stale = AsyncMock(side_effect=ExternalServiceError("db down"))

        async def scenario():
            sweeper = StaleTaskSweeper(tasks, stale_after=60, interval=3600)
            return sweeper, await sweeper.sweep_once()

        with self.assertLogs("ragcore.workers.sweeper", level="ERROR"):
            sweeper, count = asyncio.run(scenario())
        self.assertEqual(count, 0)
        self.assertEqual(sweeper.expired, 0)


if __name__ == "__main__":
    unittest.main()
