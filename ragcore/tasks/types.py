from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

DEFAULT_MAX_RETRIES = 3


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskType(str, enum.Enum):
    DOCUMENT_PROCESSING = "document_processing"


@dataclass(frozen=True)
class ProcessingTask:
    id: uuid.UUID
    document_id: uuid.UUID
    task_type: TaskType = TaskType.DOCUMENT_PROCESSING
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def can_retry(self) -> bool:
        return self.status is TaskStatus.FAILED and self.retry_count < self.max_retries

    @property
    def last_activity_at(self) -> Optional[datetime]:
        """Latest of ``started_at`` and ``updated_at`` (progress updates bump the latter)."""
        stamps = [t for t in (self.started_at, self.updated_at) if t is not None]
        return max(stamps) if stamps else None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()
