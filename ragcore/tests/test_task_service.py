"""Unit tests for task transitions and TaskService."""
from __future__ import annotations

import asyncio
import dataclasses
import unittest
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from ragcore.core.exceptions import (
    InvalidTaskTransitionError,
    NotFoundError,
    QueueError,
    RetryExhaustedError,
    ValidationError,
)
from ragcore.infra.cache import LocalProgressCache
from ragcore.infra.queue import InMemoryChannel
from ragcore.rag.indexer import IndexingBatcher
from ragcore.rag.types import Chunk, ChunkKind, DocumentMeta
from ragcore.services.task_service import TaskService
from ragcore.tasks import state
from ragcore.tasks.types import ProcessingTask, TaskStatus
from ragcore.tests.fakes import (
    InMemoryChunkStore,
    InMemoryDocumentStore,
    InMemoryTaskStore,
    InMemoryVectorStore,
    document,
    failed_task,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class _SlowReadTaskStore(InMemoryTaskStore):
    """Yields to the loop after every read, so concurrent callers see the same snapshot."""

    async def get(self, task_id):
        task = self.tasks.get(task_id)
        await asyncio.sleep(0)
        return task


class _ReindexingChannel(InMemoryChannel):
    """Indexes one chunk as soon as a message is sent, like a fast worker would."""

    def __init__(self, indexer: IndexingBatcher) -> None:
        super().__init__()
        self._indexer = indexer

    async def send(self, message) -> None:
        await super().send(message)
        chunk = Chunk("reindexed", 0, 1, ChunkKind.FALLBACK, 0, 9)
        await self._indexer.index([chunk], message.document_id, None, DocumentMeta())


class TestTransitions(unittest.TestCase):
    def _pending(self) -> ProcessingTask:
        return ProcessingTask(id=uuid.uuid4(), document_id=uuid.uuid4())

    def test_start_is_idempotent_and_keeps_started_at(self) -> None:
        first = state.start(self._pending(), now=datetime(2024, 5, 1, tzinfo=timezone.utc))
        again = state.start(first, now=datetime(2024, 5, 2, tzinfo=timezone.utc))
        self.assertIs(again.status, TaskStatus.PROCESSING)
        self.assertEqual(again.started_at, datetime(2024, 5, 1, tzinfo=timezone.utc))

    def test_claim_rejects_running_task(self) -> None:
        running = state.start(self._pending())
        with self.assertRaises(InvalidTaskTransitionError):
            state.claim(running)

    def test_complete_sets_progress_and_end(self) -> None:
        done = state.complete(state.start(self._pending()))
        self.assertEqual(done.progress, 100)
        self.assertIsNotNone(done.ended_at)

    def test_complete_requires_processing(self) -> None:
        with self.assertRaises(InvalidTaskTransitionError):
            state.complete(self._pending())

    def test_progress_bounds(self) -> None:
        running = state.start(self._pending())
        with self.assertRaises(ValidationError):
            state.set_progress(running, 101)

    def test_retry_exhausted(self) -> None:
        with self.assertRaises(RetryExhaustedError):
            state.reset_for_retry(failed_task(uuid.uuid4(), retry_count=3, max_retries=3))

    def test_retry_resets_task(self) -> None:
        task = state.reset_for_retry(failed_task(uuid.uuid4(), retry_count=2, max_retries=3))
        self.assertIs(task.status, TaskStatus.PENDING)
        self.assertEqual(task.retry_count, 3)
        self.assertEqual(task.progress, 0)
        self.assertIsNone(task.error_message)
        self.assertIsNone(task.started_at)
        self.assertIsNone(task.ended_at)

    def test_retry_requires_failed(self) -> None:
        with self.assertRaises(InvalidTaskTransitionError):
            state.reset_for_retry(self._pending())

    def test_expire_only_idle_processing_tasks(self) -> None:
        running = state.start(self._pending(), now=T0)
        cutoff = T0 + timedelta(minutes=30)
        expired = state.expire(running, cutoff)
        self.assertIs(expired.status, TaskStatus.FAILED)
        self.assertTrue(expired.error_message.startswith("stale:"))
        self.assertTrue(expired.can_retry)
        with self.assertRaises(InvalidTaskTransitionError):
            state.expire(running, T0 - timedelta(minutes=1))
        with self.assertRaises(InvalidTaskTransitionError):
            state.expire(self._pending(), cutoff)


class TestTaskService(unittest.TestCase):
    def setUp(self) -> None:
        self.doc = document()
        self.store = InMemoryTaskStore()
        self.cache = LocalProgressCache()
        self.channel = InMemoryChannel()
        self.indexer = MagicMock()
        self.indexer.deindex = AsyncMock(return_value=4)
        self.service = TaskService(
            self.store,
            self.cache,
            self.indexer,
            self.channel,
            document_store=InMemoryDocumentStore(self.doc),
        )

    def test_lifecycle_mirrors_into_cache(self) -> None:
        async def scenario():
            task = await self.service.create_task(self.doc.id)
            await self.service.start(task.id)
            await self.service.update_progress(task.id, 40)
            self.assertEqual(await self.cache.get_progress(task.id), 40)
            self.assertEqual(await self.cache.get_status(task.id), "processing")
            await self.service.complete(task.id)
            return task.id

        task_id = asyncio.run(scenario())
        self.assertEqual(asyncio.run(self.cache.get_progress(task_id)), 100)
        self.assertIs(self.store.tasks[task_id].status, TaskStatus.COMPLETED)

    def test_second_start_keeps_timestamp(self) -> None:
        async def scenario():
            task = await self.service.create_task(self.doc.id)
            first = await self.service.start(task.id)
            second = await self.service.start(task.id)
            return first, second

        first, second = asyncio.run(scenario())
        self.assertEqual(first.started_at, second.started_at)

    def test_progress_read_backfills_cache_on_miss(self) -> None:
        task = self.store.put(dataclasses.replace(failed_task(self.doc.id), progress=40))

        async def scenario():
            self.assertIsNone(await self.cache.get_progress(task.id))
            value = await self.service.get_progress(task.id)
            return value, await self.cache.get_progress(task.id), await self.service.get_status(task.id)

        value, cached, status = asyncio.run(scenario())
        self.assertEqual(value, 40)
        self.assertEqual(cached, 40)
        self.assertIs(status, TaskStatus.FAILED)

    def test_progress_of_unknown_task(self) -> None:
        with self.assertRaises(NotFoundError):
            asyncio.run(self.service.get_progress(uuid.uuid4()))

    def test_update_progress_rejects_out_of_range(self) -> None:
        with self.assertRaises(ValidationError):
            asyncio.run(self.service.update_progress(uuid.uuid4(), -1))

    def test_retry_exhausted_is_rejected_without_cleanup(self) -> None:
        task = self.store.put(failed_task(self.doc.id, retry_count=3, max_retries=3))
        with self.assertRaises(RetryExhaustedError):
            asyncio.run(self.service.retry_task(task.id))
        self.indexer.deindex.assert_not_awaited()
        self.assertEqual(self.channel.pending(), 0)

    def test_retry_cleans_up_resets_and_requeues(self) -> None:
        task = self.store.put(failed_task(self.doc.id, retry_count=2, max_retries=3))
        retried = asyncio.run(self.service.retry_task(task.id))

        self.assertIs(retried.status, TaskStatus.PENDING)
        self.assertEqual(retried.retry_count, 3)
        self.assertEqual(retried.progress, 0)
        self.indexer.deindex.assert_awaited_once_with(self.doc.id)
        self.assertEqual(self.channel.pending(), 1)
        self.assertEqual(asyncio.run(self.cache.get_status(task.id)), "pending")

    def test_cleanup_failure_does_not_block_retry(self) -> None:
        self.indexer.deindex = AsyncMock(side_effect=RuntimeError("qdrant down"))
        task = self.store.put(failed_task(self.doc.id))
        retried = asyncio.run(self.service.retry_task(task.id))
        self.assertIs(retried.status, TaskStatus.PENDING)
        self.assertEqual(self.channel.pending(), 1)

    def test_retry_of_running_task_is_invalid(self) -> None:
        async def scenario():
            task = await self.service.create_task(self.doc.id)
            await self.service.start(task.id)
            await self.service.retry_task(task.id)

        with self.assertRaises(InvalidTaskTransitionError):
            asyncio.run(scenario())

    def test_retry_of_deleted_document(self) -> None:
        deleted = document(is_deleted=True)
        service = TaskService(
            self.store, self.cache, self.indexer, self.channel, document_store=InMemoryDocumentStore(deleted)
        )
        task = self.store.put(failed_task(deleted.id))
        with self.assertRaises(NotFoundError):
            asyncio.run(service.retry_task(task.id))
        self.assertIs(self.store.tasks[task.id].status, TaskStatus.FAILED)

    def test_queue_failure_surfaces(self) -> None:
        channel = MagicMock()
        channel.send = AsyncMock(side_effect=QueueError("redis down"))
        service = TaskService(self.store, self.cache, self.indexer, channel)
        task = self.store.put(failed_task(self.doc.id))
        with self.assertRaises(QueueError):
            asyncio.run(service.retry_task(task.id))

    def test_concurrent_retries_allow_one(self) -> None:
        task = self.store.put(failed_task(self.doc.id))

        async def scenario():
            return await asyncio.gather(
                self.service.retry_task(task.id), self.service.retry_task(task.id), return_exceptions=True
            )

        outcomes = asyncio.run(scenario())
        errors = [o for o in outcomes if isinstance(o, Exception)]
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], InvalidTaskTransitionError)
        self.assertEqual(self.store.tasks[task.id].retry_count, 1)
        self.assertEqual(self.channel.pending(), 1)

    def test_list_queries(self) -> None:
        retryable = self.store.put(failed_task(self.doc.id, retry_count=1))
        self.store.put(failed_task(self.doc.id, retry_count=3, max_retries=3))
        self.assertEqual([t.id for t in asyncio.run(self.service.list_retryable())], [retryable.id])
        self.assertEqual(len(asyncio.run(self.service.list_document_tasks(self.doc.id))), 2)


class TestRetryRace(unittest.TestCase):
    def test_losing_retry_does_not_touch_the_index(self) -> None:
        doc = document()
        log = []
        vectors = InMemoryVectorStore(log)
        indexer = IndexingBatcher(vectors, InMemoryChunkStore(log))
        store = _SlowReadTaskStore()
        task = store.put(failed_task(doc.id))
        service = TaskService(
            store,
            LocalProgressCache(),
            indexer,
            _ReindexingChannel(indexer),
            document_store=InMemoryDocumentStore(doc),
        )

        async def scenario():
            return await asyncio.gather(
                service.retry_task(task.id), service.retry_task(task.id), return_exceptions=True
            )

        outcomes = asyncio.run(scenario())
        self.assertEqual(
            sorted(type(o).__name__ for o in outcomes), ["InvalidTaskTransitionError", "ProcessingTask"]
        )
        self.assertEqual(log.count("chunks.delete_mappings"), 1)
        self.assertEqual(len(vectors.items), 1)
        self.assertEqual(store.tasks[task.id].retry_count, 1)


class TestStaleTasks(unittest.TestCase):
    def setUp(self) -> None:
        self.doc = document()
        self.store = InMemoryTaskStore()
        self.indexer = MagicMock()
        self.indexer.deindex = AsyncMock(return_value=0)
        self.channel = InMemoryChannel()
        self.service = TaskService(self.store, LocalProgressCache(), self.indexer, self.channel)

    def _running(self, started_at: datetime) -> ProcessingTask:
        return self.store.put(
            ProcessingTask(
                id=uuid.uuid4(),
                document_id=self.doc.id,
                status=TaskStatus.PROCESSING,
                progress=40,
                started_at=started_at,
                updated_at=started_at,
            )
        )

    def test_idle_task_is_failed_and_becomes_retryable(self) -> None:
        idle = self._running(T0)
        busy = self._running(T0 + timedelta(minutes=50))

        expired = asyncio.run(self.service.fail_stale(timedelta(minutes=30), now=T0 + timedelta(hours=1)))

        self.assertEqual([t.id for t in expired], [idle.id])
        self.assertIs(self.store.tasks[idle.id].status, TaskStatus.FAILED)
        self.assertTrue(self.store.tasks[idle.id].error_message.startswith("stale:"))
        self.assertIs(self.store.tasks[busy.id].status, TaskStatus.PROCESSING)

        retried = asyncio.run(self.service.retry_task(idle.id))
        self.assertIs(retried.status, TaskStatus.PENDING)
        self.assertEqual(self.channel.pending(), 1)

    def test_task_that_moved_on_is_left_alone(self) -> None:
        idle = self._running(T0)
        self.store.find_stale_processing = AsyncMock(return_value=[idle])
        self.store.put(dataclasses.replace(idle, status=TaskStatus.COMPLETED, progress=100))

        expired = asyncio.run(self.service.fail_stale(timedelta(minutes=30), now=T0 + timedelta(hours=1)))

        self.assertEqual(expired, [])
        self.assertIs(self.store.tasks[idle.id].status, TaskStatus.COMPLETED)


if __name__ == "__main__":
    unittest.main()
