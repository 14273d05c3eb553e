"""
Shared data types for the RAG core (chunking, planning, retrieval).
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence


class ChunkKind(str, enum.Enum):
    SECTION = "section"
    SEMANTIC = "semantic"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Chunk:
    """A retrievable unit of a document.

    ``start_offset``/``end_offset`` locate the chunk in the source text
    (half-open). Overlap previews appended to ``content`` are not reflected
    in the offsets.
    """

    content: str
    chunk_index: int
    token_count: int
    kind: ChunkKind
    start_offset: int
    end_offset: int
    section_title: Optional[str] = None
    section_level: Optional[int] = None


@dataclass(frozen=True)
class Section:
    """Structural hint from an external parser (heading + body + position)."""

    title: str
    content: str
    level: int = 1
    start_offset: int = 0
    end_offset: int = 0


@dataclass(frozen=True)
class DocumentMeta:
    """Document attributes copied into every indexed vector's metadata."""

    title: str = ""
    source_type: str = ""


class QueryType(str, enum.Enum):
    FACT = "fact"
    COMPARISON = "comparison"
    SUMMARY = "summary"
    HOW_TO = "how_to"
    WHY = "why"
    GENERAL = "general"


@dataclass(frozen=True)
class RetrievalPlan:
    top_k: int
    similarity_threshold: float
    query_type: QueryType


@dataclass(frozen=True)
class SearchScope:
    """Who is searching and, optionally, which documents they are limited to."""

    user_id: Optional[uuid.UUID] = None
    document_ids: Optional[Sequence[uuid.UUID]] = None

    def as_filter(self) -> Dict[str, Any]:
        """Metadata filter: scalars are equality, lists are inclusion."""
        out: Dict[str, Any] = {}
        if self.user_id is not None:
            out["user_id"] = str(self.user_id)
        if self.document_ids:
            out["document_id"] = [str(d) for d in self.document_ids]
        return out


@dataclass
class SearchResult:
    """A single vector-store hit (one chunk)."""

    vector_id: str
    document_id: str
    content: str
    score: float
    chunk_index: int = 0
    title: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchCandidate:
    """A document after hybrid fusion, carrying its best chunk when one matched."""

    document_id: str
    fused_score: float = 0.0
    vector_score: Optional[float] = None
    text_score: Optional[float] = None
    rerank_score: Optional[float] = None
    chunk_id: Optional[str] = None
    title: str = ""
    content: str = ""
    chunk_index: Optional[int] = None


@dataclass
class AssembledContext:
    """Context text ready to be injected into the LLM prompt."""

    text: str
    sources: List[Dict[str, Any]] = field(default_factory=list)
    total_tokens: int = 0
    chunk_count: int = 0
    truncated: bool = False
