"""
RAG core: chunking, embedding, planning, hybrid search, reranking and the
query pipeline.

Modules that touch infrastructure (``indexer``, ``loaders``, ``parsers``)
are imported directly from their modules::

    from ragcore.rag.indexer import IndexingBatcher
"""
from ragcore.rag.chunker import ChunkingEngine
from ragcore.rag.context import ContextAssembler
from ragcore.rag.embedder import Embedder
from ragcore.rag.hybrid_search import HybridSearcher
from ragcore.rag.pipeline import RAGPipeline, RetrievalContext, compose_stages
from ragcore.rag.planner import RetrievalPlanner
from ragcore.rag.query_rewriter import QueryRewriter
from ragcore.rag.reranker import LLMReranker
from ragcore.rag.search import SemanticSearcher
from ragcore.rag.types import (
    AssembledContext,
    Chunk,
    ChunkKind,
    QueryType,
    RetrievalPlan,
    SearchCandidate,
    SearchResult,
    SearchScope,
    Section,
)

__all__ = [
    "ChunkingEngine",
    "ContextAssembler",
    "Embedder",
    "HybridSearcher",
    "RAGPipeline",
    "RetrievalContext",
    "compose_stages",
    "RetrievalPlanner",
    "QueryRewriter",
    "LLMReranker",
    "SemanticSearcher",
    "AssembledContext",
    "Chunk",
    "ChunkKind",
    "QueryType",
    "RetrievalPlan",
    "SearchCandidate",
    "SearchResult",
    "SearchScope",
    "Section",
]
