"""TaskService: lifecycle of document processing tasks.

Every change goes through ``BaseTaskStore.transition`` (row-locked in the
database) while holding an in-process lock for the task id, and is then
mirrored into the progress cache. Reads try the cache first and backfill it
from the durable store on a miss.

Usage::

    task = await svc.create_task(document_id)
    await svc.start(task.id)
    await svc.update_progress(task.id, 40)
    await svc.complete(task.id)
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, List, Optional

from ragcore.core.exceptions import InvalidTaskTransitionError, NotFoundError, ValidationError
from ragcore.core.locks import KeyedLock
from ragcore.infra.queue.messages import DocumentProcessingMessage
from ragcore.tasks import state
from ragcore.tasks.store import Mutation
from ragcore.tasks.types import DEFAULT_MAX_RETRIES, ProcessingTask, TaskStatus, TaskType

if TYPE_CHECKING:
    from ragcore.infra.cache import BaseProgressCache
    from ragcore.infra.queue import BaseChannel
    from ragcore.rag.indexer import IndexingBatcher
    from ragcore.rag.stores import BaseDocumentStore
    from ragcore.tasks.store import BaseTaskStore

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(
        self,
        task_store: "BaseTaskStore",
        cache: "BaseProgressCache",
        indexer: "IndexingBatcher",
        channel: "BaseChannel",
        *,
        document_store: Optional["BaseDocumentStore"] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._tasks = task_store
        self._cache = cache
        self._indexer = indexer
        self._channel = channel
        self._documents = document_store
        self._max_retries = max_retries
        self._task_locks = KeyedLock()

    # ── lifecycle ────────────────────────────────────────────────

    async def create_task(
        self,
        document_id: uuid.UUID,
        task_type: TaskType = TaskType.DOCUMENT_PROCESSING,
    ) -> ProcessingTask:
        task = await self._tasks.create(document_id, task_type, self._max_retries)
        await self._mirror(task)
        logger.info("Task created: %s (document=%s)", task.id, document_id)
        return task

    async def start(self, task_id: uuid.UUID) -> ProcessingTask:
        task = await self._apply(task_id, state.start)
        logger.info("Task started: %s", task_id)
        return task

    async def claim(self, task_id: uuid.UUID) -> ProcessingTask:
        """Like ``start`` but only from pending; a second claimant gets InvalidTaskTransitionError."""
        task = await self._apply(task_id, state.claim)
        logger.info("Task claimed: %s", task_id)
        return task

    async def update_progress(self, task_id: uuid.UUID, progress: int) -> ProcessingTask:
        if not 0 <= progress <= 100:
            raise ValidationError(f"progress must be in [0, 100], got {progress}")
        return await self._apply(task_id, lambda t: state.set_progress(t, progress))

    async def complete(self, task_id: uuid.UUID) -> ProcessingTask:
        task = await self._apply(task_id, state.complete)
        logger.info("Task completed: %s (%.1fs)", task_id, task.duration_seconds or 0.0)
        return task

    async def fail(self, task_id: uuid.UUID, error_message: str) -> ProcessingTask:
        task = await self._apply(task_id, lambda t: state.fail(t, error_message))
        logger.warning("Task failed: %s: %s", task_id, error_message)
        return task

    async def retry_task(self, task_id: uuid.UUID, *, user_id: Optional[uuid.UUID] = None) -> ProcessingTask:
        """
        failed → pending, clean the document out of the index, re-enqueue.

        The reset is the row-locked check-and-set, so of several concurrent
        callers only the one that moved the task to pending goes on to
        deindex; the others fail before touching the index.

        Raises RetryExhaustedError once ``retry_count`` reached ``max_retries``,
        InvalidTaskTransitionError when the task is not failed, NotFoundError
        for unknown tasks or deleted documents, QueueError when the message
        could not be sent (the task then stays pending and can be re-sent).
        """
        current = await self._require(task_id)
        # surface exhaustion / wrong status before any other lookup
        state.reset_for_retry(current)

        if self._documents is not None:
            document = await self._documents.get(current.document_id)
            if document is None or document.is_deleted:
                raise NotFoundError(
                    "Document not found or deleted",
                    details={"document_id": str(current.document_id)},
                )
            user_id = user_id or document.user_id

        task = await self._apply(task_id, state.reset_for_retry)

        try:
            removed = await self._indexer.deindex(task.document_id)
            logger.info("Retry cleanup: removed %d vectors of document %s", removed, task.document_id)
        except Exception as exc:
            logger.warning("Retry cleanup failed for document %s: %s", task.document_id, exc)

        await self._channel.send(
            DocumentProcessingMessage(
                document_id=task.document_id,
                task_id=task.id,
                user_id=user_id,
                metadata={"retry_count": task.retry_count},
            )
        )
        logger.info("Task requeued: %s (retry %d/%d)", task_id, task.retry_count, task.max_retries)
        return task

    async def fail_stale(
        self,
        older_than: timedelta,
        *,
        now: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[ProcessingTask]:
        """
        Fail processing tasks with no start or progress for ``older_than``.

        Covers workers that died mid-task: their redelivered messages are
        skipped (the task is not pending) and a processing task cannot be
        retried, so without this the task would stay processing forever.
        Returns the tasks that were failed; they are retryable as usual.
        """
        cutoff = (now or datetime.now(timezone.utc)) - older_than
        expired: List[ProcessingTask] = []
        for candidate in await self._tasks.find_stale_processing(cutoff, limit):
            try:
                task = await self._apply(candidate.id, lambda t: state.expire(t, cutoff, now))
            except InvalidTaskTransitionError:
                logger.debug("Task %s became active again, not expiring", candidate.id)
                continue
            logger.warning("Task expired: %s (%s)", task.id, task.error_message)
            expired.append(task)
        return expired

    # ── reads ────────────────────────────────────────────────────

    async def get_task(self, task_id: uuid.UUID) -> Optional[ProcessingTask]:
        return await self._tasks.get(task_id)

    async def get_progress(self, task_id: uuid.UUID) -> int:
        cached = await self._cache.get_progress(task_id)
        if cached is not None:
            return cached
        task = await self._require(task_id)
        await self._cache.set_progress(task_id, task.progress)
        return task.progress

    async def get_status(self, task_id: uuid.UUID) -> TaskStatus:
        cached = await self._cache.get_status(task_id)
        if cached is not None:
            try:
                return TaskStatus(cached)
            except ValueError:
                logger.warning("Ignoring unknown cached status %r for task %s", cached, task_id)
        task = await self._require(task_id)
        await self._cache.set_status(task_id, task.status.value)
        return task.status

    async def list_document_tasks(self, document_id: uuid.UUID) -> List[ProcessingTask]:
        return await self._tasks.find_by_document_id(document_id)

    async def list_retryable(self, limit: int = 100) -> List[ProcessingTask]:
        return await self._tasks.find_failed_below_max_retries(limit)

    # ── internals ────────────────────────────────────────────────

    async def _apply(self, task_id: uuid.UUID, mutate: Mutation) -> ProcessingTask:
        async with self._task_locks.hold(task_id):
            task = await self._tasks.transition(task_id, mutate)
            await self._mirror(task)
        return task

    async def _mirror(self, task: ProcessingTask) -> None:
        await self._cache.set_status(task.id, task.status.value)
        await self._cache.set_progress(task.id, task.progress)

    async def _require(self, task_id: uuid.UUID) -> ProcessingTask:
        task = await self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found", details={"task_id": str(task_id)})
        return task
