"""RAGService: retrieval and question answering over indexed documents.

Usage::

    svc = RAGService(hybrid, llm=llm, config=rag_config, embedder=embedder)
    ctx = await svc.retrieve("What is HNSW?", SearchScope(user_id=uid))
    ctx = await svc.ask("What is HNSW?", SearchScope(user_id=uid))
    print(ctx.answer, ctx.context.sources)
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from ragcore.config.rag import RAGConfig
from ragcore.rag.context import ContextAssembler
from ragcore.rag.pipeline import (
    AnswerStage,
    AssembleStage,
    ExpandStage,
    PlanStage,
    RAGPipeline,
    RerankStage,
    RetrievalContext,
    RetrieveStage,
    Stage,
    TruncateStage,
)
from ragcore.rag.planner import RetrievalPlanner
from ragcore.rag.query_rewriter import QueryRewriter
from ragcore.rag.reranker import LLMReranker
from ragcore.rag.types import SearchScope

if TYPE_CHECKING:
    from ragcore.clients.llm import BaseLLMClient
    from ragcore.rag.embedder import Embedder
    from ragcore.rag.hybrid_search import HybridSearcher

logger = logging.getLogger(__name__)


class RAGService:
    """
    ``retrieve`` runs plan → expand → retrieve → rerank → assemble.
    ``ask`` adds the answer stage when an LLM is configured.

    Without an LLM, keyword expansion falls back to the heuristic and rerank
    scores are keyword overlap.
    """

    def __init__(
        self,
        hybrid: "HybridSearcher",
        *,
        llm: Optional["BaseLLMClient"] = None,
        embedder: Optional["Embedder"] = None,
        config: Optional[RAGConfig] = None,
    ) -> None:
        self._config = config or RAGConfig()
        self._llm = llm
        self._pipeline = RAGPipeline(self._build_stages(hybrid, embedder))

    @property
    def stage_names(self) -> List[str]:
        return self._pipeline.stage_names

    async def retrieve(self, query: str, scope: SearchScope = SearchScope()) -> RetrievalContext:
        return await self._pipeline.without(AnswerStage.name).run(query, scope)

    async def ask(self, question: str, scope: SearchScope = SearchScope()) -> RetrievalContext:
        return await self._pipeline.run(question, scope)

    # ── internals ──

    def _build_stages(self, hybrid: "HybridSearcher", embedder: Optional["Embedder"]) -> List[Stage]:
        cfg = self._config
        stages: List[Stage] = [PlanStage(RetrievalPlanner())]
        if cfg.enable_keyword_expansion:
            stages.append(ExpandStage(QueryRewriter(self._llm)))
        if cfg.enable_rerank:
            stages.append(RetrieveStage(hybrid, expand_factor=cfg.rerank_expand_factor))
            stages.append(
                RerankStage(LLMReranker(self._llm, embedder=embedder, passage_chars=cfg.rerank_passage_chars))
            )
        else:
            stages.append(RetrieveStage(hybrid))
            stages.append(TruncateStage())
        stages.append(AssembleStage(ContextAssembler(max_tokens=cfg.max_context_tokens)))
        if self._llm is not None:
            stages.append(AnswerStage(self._llm))
        logger.debug("RAG stages: %s", ", ".join(s.name for s in stages))
        return stages
