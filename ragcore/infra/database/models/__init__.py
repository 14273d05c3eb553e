"""
ragcore.infra.database.models – SQLAlchemy 2.0 ORM models.
"""
from ragcore.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from ragcore.infra.database.models.knowledge import DocumentChunk, KnowledgeDocument, VectorMapping
from ragcore.infra.database.models.task import DocumentTask

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "KnowledgeDocument",
    "DocumentChunk",
    "VectorMapping",
    "DocumentTask",
]
