"""Qdrant-backed vector store."""
from ragcore.infra.vectorstore.base import BaseVectorStore, VectorItem
from ragcore.infra.vectorstore.client import QdrantManager
from ragcore.infra.vectorstore.collections import (
    PayloadField,
    build_chunk_payload,
    ensure_collection_exists,
)
from ragcore.infra.vectorstore.query import build_filter
from ragcore.infra.vectorstore.store import QdrantVectorStore

__all__ = [
    "BaseVectorStore",
    "VectorItem",
    "QdrantManager",
    "QdrantVectorStore",
    "PayloadField",
    "build_chunk_payload",
    "ensure_collection_exists",
    "build_filter",
]
