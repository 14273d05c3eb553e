"""Durable task store contract."""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from ragcore.tasks.types import DEFAULT_MAX_RETRIES, ProcessingTask, TaskType

Mutation = Callable[[ProcessingTask], ProcessingTask]


class BaseTaskStore(ABC):
    @abstractmethod
    async def create(
        self,
        document_id: uuid.UUID,
        task_type: TaskType = TaskType.DOCUMENT_PROCESSING,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> ProcessingTask:
        ...

    @abstractmethod
    async def get(self, task_id: uuid.UUID) -> Optional[ProcessingTask]:
        ...

    @abstractmethod
    async def transition(self, task_id: uuid.UUID, mutate: Mutation) -> ProcessingTask:
        """
        Atomically read the task, apply ``mutate`` and persist the result.
        Raises NotFoundError for unknown ids; exceptions from ``mutate``
        propagate and nothing is written.
        """
        ...

    @abstractmethod
    async def find_by_document_id(self, document_id: uuid.UUID) -> List[ProcessingTask]:
        """Newest first."""
        ...

    @abstractmethod
    async def find_failed_below_max_retries(self, limit: int = 100) -> List[ProcessingTask]:
        """Failed tasks that still have retries left, oldest first."""
        ...

    @abstractmethod
    async def find_stale_processing(self, cutoff: datetime, limit: int = 100) -> List[ProcessingTask]:
        """Processing tasks with no start or update since ``cutoff``, oldest first."""
        ...
