"""
ragcore exception system.

Usage:
    from ragcore.core.exceptions import ProjectError, NotFoundError, exception_factory

    raise NotFoundError("Task not found", details={"task_id": str(task_id)})

    # Add new type on demand
    StageError = exception_factory("StageError", code="STAGE_ERROR")
    raise StageError("chunk stage failed", cause=original_error)
"""
from ragcore.core.exceptions.base import ProjectError, exception_factory
from ragcore.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    EmbeddingError,
    ExternalServiceError,
    ExtractionError,
    InvalidTaskTransitionError,
    NotFoundError,
    QueueError,
    RetryExhaustedError,
    UnsupportedFileTypeError,
    ValidationError,
    VectorstoreError,
    VectorStoreWriteError,
)

__all__ = [
    "ProjectError",
    "exception_factory",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidTaskTransitionError",
    "RetryExhaustedError",
    "ExternalServiceError",
    "EmbeddingError",
    "ExtractionError",
    "UnsupportedFileTypeError",
    "VectorstoreError",
    "VectorStoreWriteError",
    "QueueError",
]
