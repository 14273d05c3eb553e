"""Vector store contract used by indexing and retrieval."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ragcore.rag.types import SearchResult


@dataclass
class VectorItem:
    """One entry to store. ``vector`` is computed by the store when omitted."""

    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    vector: Optional[List[float]] = None


class BaseVectorStore(ABC):
    @abstractmethod
    async def add(self, items: Sequence[VectorItem]) -> None:
        """Store items; raises VectorStoreWriteError on failure."""
        ...

    @abstractmethod
    async def similarity_search(
        self,
        query: str,
        *,
        top_k: int,
        threshold: float,
        metadata_filter: Optional[Mapping[str, Any]] = None,
    ) -> List[SearchResult]:
        ...

    @abstractmethod
    async def delete(self, ids: Sequence[str]) -> None:
        ...

    @abstractmethod
    async def find_ids(self, metadata_filter: Mapping[str, Any]) -> List[str]:
        """Ids of every entry matching the filter."""
        ...
