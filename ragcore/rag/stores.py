"""Persistence contracts the RAG core depends on (chunks, documents, lexical search)."""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ragcore.rag.types import Chunk, SearchScope


@dataclass(frozen=True)
class DocumentRecord:
    id: uuid.UUID
    title: str
    user_id: Optional[uuid.UUID] = None
    source_type: str = ""
    file_path: Optional[str] = None
    status: str = "pending"
    is_deleted: bool = False


@dataclass(frozen=True)
class StoredChunk:
    """A chunk together with the id of its vector-store entry."""

    chunk: Chunk
    vector_id: str


@dataclass(frozen=True)
class LexicalHit:
    document_id: str
    title: str
    content: str = ""
    chunk_id: Optional[str] = None


class BaseChunkStore(ABC):
    """DocumentChunk rows and the VectorMapping rows that link them to vectors."""

    @abstractmethod
    async def save_batch(self, document_id: uuid.UUID, stored: Sequence[StoredChunk]) -> None:
        """Persist mappings and chunk rows for one indexed batch, all or nothing."""
        ...

    @abstractmethod
    async def vector_ids_for_document(self, document_id: uuid.UUID) -> List[str]:
        ...

    @abstractmethod
    async def delete_mappings(self, document_id: uuid.UUID) -> int:
        ...

    @abstractmethod
    async def delete_chunks(self, document_id: uuid.UUID) -> int:
        ...


class BaseDocumentStore(ABC):
    @abstractmethod
    async def get(self, document_id: uuid.UUID) -> Optional[DocumentRecord]:
        ...

    @abstractmethod
    async def set_status(self, document_id: uuid.UUID, status: str) -> None:
        ...


class BaseLexicalStore(ABC):
    @abstractmethod
    async def search(self, query: str, scope: SearchScope, limit: int = 20) -> List[LexicalHit]:
        """Documents whose title or chunk text contains ``query``."""
        ...
