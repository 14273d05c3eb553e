"""Service layer: task lifecycle, document ingestion and retrieval."""
from ragcore.services.ingestion_service import IngestionService
from ragcore.services.rag_service import RAGService
from ragcore.services.task_service import TaskService

__all__ = ["TaskService", "IngestionService", "RAGService"]
