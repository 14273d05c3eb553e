"""
Processing task model: statuses, the immutable task record, transition rules
and the durable store contract.
"""
from ragcore.tasks.state import claim, complete, expire, fail, reset_for_retry, set_progress, start
from ragcore.tasks.store import BaseTaskStore
from ragcore.tasks.types import ProcessingTask, TaskStatus, TaskType

__all__ = [
    "BaseTaskStore",
    "ProcessingTask",
    "TaskStatus",
    "TaskType",
    "start",
    "claim",
    "set_progress",
    "complete",
    "fail",
    "expire",
    "reset_for_retry",
]
