"""
Built-in exception types. Add new ones here or via exception_factory().
"""
from __future__ import annotations

from ragcore.core.exceptions.base import ProjectError, exception_factory


class ConfigurationError(ProjectError):
    """Invalid or missing configuration / wiring."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Input validation failed."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(ProjectError):
    """Requested task or document not found."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class ConflictError(ProjectError):
    """Resource state conflict (concurrent update, illegal state)."""

    default_code = "CONFLICT"
    default_http_status = 409


class InvalidTaskTransitionError(ConflictError):
    """Task status change not allowed from the current status."""

    default_code = "INVALID_TASK_TRANSITION"


class RetryExhaustedError(ConflictError):
    """Task already used all of its retries."""

    default_code = "RETRY_EXHAUSTED"


class ExternalServiceError(ProjectError):
    """External service (LLM, embedding, DB, cache, queue) failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502


class ExtractionError(ProjectError):
    """Text extraction failed (document could not be parsed)."""

    default_code = "EXTRACTION_ERROR"
    default_http_status = 422


class UnsupportedFileTypeError(ExtractionError):
    """No parser is registered for the file extension."""

    default_code = "UNSUPPORTED_FILE_TYPE"
    default_http_status = 415


class EmbeddingError(ExternalServiceError):
    """Embedding provider call failed or returned malformed vectors."""

    default_code = "EMBEDDING_ERROR"


class VectorstoreError(ProjectError):
    """Vector database (Qdrant) operation failed."""

    default_code = "VECTORSTORE_ERROR"
    default_http_status = 502


class VectorStoreWriteError(VectorstoreError):
    """Writing a batch of vectors failed; the indexing stage must abort."""

    default_code = "VECTORSTORE_WRITE_ERROR"


QueueError = exception_factory(
    "QueueError",
    code="QUEUE_ERROR",
    http_status=502,
    base=ExternalServiceError,
    doc="Sending to or receiving from the processing queue failed.",
)
