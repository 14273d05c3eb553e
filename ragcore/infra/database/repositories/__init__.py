"""Repositories for the ragcore database."""
from ragcore.infra.database.repositories.base import BaseRepository
from ragcore.infra.database.repositories.knowledge import (
    DocumentChunkRepository,
    KnowledgeDocumentRepository,
    VectorMappingRepository,
)
from ragcore.infra.database.repositories.task import DocumentTaskRepository

__all__ = [
    "BaseRepository",
    "DocumentTaskRepository",
    "KnowledgeDocumentRepository",
    "DocumentChunkRepository",
    "VectorMappingRepository",
]
