"""
Task transition rules as pure functions: each takes a task and returns the
updated copy, or raises when the transition is not allowed.

    pending ──start──► processing ──complete──► completed
                          │
                          ├──fail──► failed ──reset_for_retry──► pending
                          │
                          └──expire (no activity since cutoff)──► failed
"""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Optional

from ragcore.core.exceptions import InvalidTaskTransitionError, RetryExhaustedError, ValidationError
from ragcore.tasks.types import ProcessingTask, TaskStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _reject(task: ProcessingTask, action: str) -> InvalidTaskTransitionError:
    return InvalidTaskTransitionError(
        f"Cannot {action} task in status {task.status.value}",
        details={"task_id": str(task.id), "status": task.status.value},
    )


def start(task: ProcessingTask, now: Optional[datetime] = None) -> ProcessingTask:
    """pending → processing. Starting a processing task again is a no-op."""
    if task.status is TaskStatus.PROCESSING:
        return task
    if task.status is not TaskStatus.PENDING:
        raise _reject(task, "start")
    return dataclasses.replace(
        task,
        status=TaskStatus.PROCESSING,
        started_at=task.started_at or now or _now(),
    )


def claim(task: ProcessingTask, now: Optional[datetime] = None) -> ProcessingTask:
    """Strict pending → processing, for a worker taking ownership of the task."""
    if task.status is not TaskStatus.PENDING:
        raise _reject(task, "claim")
    return start(task, now)


def set_progress(task: ProcessingTask, progress: int) -> ProcessingTask:
    if not 0 <= progress <= 100:
        raise ValidationError(f"progress must be in [0, 100], got {progress}")
    if task.status is not TaskStatus.PROCESSING:
        raise _reject(task, "update progress of")
    return dataclasses.replace(task, progress=progress)


def complete(task: ProcessingTask, now: Optional[datetime] = None) -> ProcessingTask:
    if task.status is not TaskStatus.PROCESSING:
        raise _reject(task, "complete")
    return dataclasses.replace(
        task, status=TaskStatus.COMPLETED, progress=100, ended_at=now or _now()
    )


def fail(task: ProcessingTask, error_message: str, now: Optional[datetime] = None) -> ProcessingTask:
    """pending|processing → failed. A pending task fails when it cannot be started at all."""
    if task.status.is_terminal:
        raise _reject(task, "fail")
    return dataclasses.replace(
        task, status=TaskStatus.FAILED, error_message=error_message, ended_at=now or _now()
    )


def reset_for_retry(task: ProcessingTask) -> ProcessingTask:
    """failed → pending with one more retry used and progress cleared."""
    if task.status is not TaskStatus.FAILED:
        raise _reject(task, "retry")
    if task.retry_count >= task.max_retries:
        raise RetryExhaustedError(
            f"Task exhausted its retries ({task.retry_count}/{task.max_retries})",
            details={"task_id": str(task.id), "retry_count": task.retry_count},
        )
    return dataclasses.replace(
        task,
        status=TaskStatus.PENDING,
        retry_count=task.retry_count + 1,
        progress=0,
        error_message=None,
        started_at=None,
        ended_at=None,
    )


def expire(task: ProcessingTask, cutoff: datetime, now: Optional[datetime] = None) -> ProcessingTask:
    """
    processing → failed for a task whose worker went away: no start or
    progress since ``cutoff``. The failed task can then be retried.
    """
    if task.status is not TaskStatus.PROCESSING:
        raise _reject(task, "expire")
    last = task.last_activity_at
    if last is not None and last >= cutoff:
        raise _reject(task, "expire active")
    since = last.isoformat() if last is not None else "never"
    return dataclasses.replace(
        task,
        status=TaskStatus.FAILED,
        error_message=f"stale: no progress since {since}",
        ended_at=now or _now(),
    )
