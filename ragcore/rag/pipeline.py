"""
Query pipeline as an ordered list of named stages.

Each stage takes the RetrievalContext and returns it (usually the same object,
updated). ``RAGPipeline`` simply awaits the stages in order:

    plan → expand → retrieve → rerank → assemble → answer
"""
from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Sequence

from ragcore.rag.types import AssembledContext, RetrievalPlan, SearchCandidate, SearchScope

if TYPE_CHECKING:
    from ragcore.clients.llm import BaseLLMClient
    from ragcore.rag.context import ContextAssembler
    from ragcore.rag.hybrid_search import HybridSearcher
    from ragcore.rag.planner import RetrievalPlanner
    from ragcore.rag.query_rewriter import QueryRewriter
    from ragcore.rag.reranker import LLMReranker

logger = logging.getLogger(__name__)

_ANSWER_PROMPT = (
    "Answer the user's question using ONLY the provided context. "
    "If the context does not contain enough information, say so clearly.\n\n"
    "Context:\n{context}\n\n"
    "Question: {question}\n\n"
    "Answer:"
)


@dataclass
class RetrievalContext:
    query: str
    scope: SearchScope = field(default_factory=SearchScope)
    plan: Optional[RetrievalPlan] = None
    search_queries: List[str] = field(default_factory=list)
    candidates: List[SearchCandidate] = field(default_factory=list)
    context: Optional[AssembledContext] = None
    answer: Optional[str] = None
    completed_stages: List[str] = field(default_factory=list)


class Stage(ABC):
    name: str = "stage"

    @abstractmethod
    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        ...


class PlanStage(Stage):
    name = "plan"

    def __init__(self, planner: "RetrievalPlanner") -> None:
        self._planner = planner

    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        ctx.plan = self._planner.plan(ctx.query)
        return ctx


class ExpandStage(Stage):
    """Original query first, then extracted keyword queries."""

    name = "expand"

    def __init__(self, rewriter: "QueryRewriter") -> None:
        self._rewriter = rewriter

    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        queries = [ctx.query]
        for q in await self._rewriter.extract_search_queries(ctx.query):
            if q not in queries:
                queries.append(q)
        ctx.search_queries = queries
        return ctx


class RetrieveStage(Stage):
    """Hybrid search. ``expand_factor`` widens top-k when a rerank stage follows."""

    name = "retrieve"

    def __init__(self, hybrid: "HybridSearcher", *, expand_factor: int = 1) -> None:
        self._hybrid = hybrid
        self._expand_factor = max(1, expand_factor)

    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        plan = _require_plan(ctx)
        if self._expand_factor > 1:
            plan = dataclasses.replace(plan, top_k=plan.top_k * self._expand_factor)
        candidates = await self._hybrid.search(
            ctx.query, plan, ctx.scope, variants=ctx.search_queries or None
        )
        ctx.candidates = candidates
        return ctx


class RerankStage(Stage):
    name = "rerank"

    def __init__(self, reranker: "LLMReranker") -> None:
        self._reranker = reranker

    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        plan = _require_plan(ctx)
        if not ctx.candidates:
            return ctx
        by_id = {c.document_id: c for c in ctx.candidates}
        scores = await self._reranker.score_all(
            ctx.query, {doc_id: _rerank_text(c) for doc_id, c in by_id.items()}, plan.top_k
        )
        ordered = sorted(scores, key=lambda doc_id: scores[doc_id], reverse=True)[: plan.top_k]
        for doc_id in ordered:
            by_id[doc_id].rerank_score = scores[doc_id]
        ctx.candidates = [by_id[doc_id] for doc_id in ordered]
        return ctx


class TruncateStage(Stage):
    """Cut fused candidates to the planned top-k when no reranker runs."""

    name = "truncate"

    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        ctx.candidates = ctx.candidates[: _require_plan(ctx).top_k]
        return ctx


class AssembleStage(Stage):
    name = "assemble"

    def __init__(self, assembler: "ContextAssembler") -> None:
        self._assembler = assembler

    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        ctx.context = self._assembler.assemble(ctx.candidates)
        return ctx


class AnswerStage(Stage):
    name = "answer"

    def __init__(self, llm: "BaseLLMClient") -> None:
        self._llm = llm

    async def __call__(self, ctx: RetrievalContext) -> RetrievalContext:
        if ctx.context is None or not ctx.context.text:
            return ctx
        prompt = _ANSWER_PROMPT.format(context=ctx.context.text, question=ctx.query)
        try:
            ctx.answer = await self._llm.complete(prompt)
        except Exception as exc:
            logger.error("Answer generation failed: %s", exc)
        return ctx


StageFn = Callable[[RetrievalContext], Awaitable[RetrievalContext]]


def compose_stages(stages: Sequence[Stage]) -> StageFn:
    """Fold stages into one coroutine function that runs them in order."""
    ordered = list(stages)

    async def run(ctx: RetrievalContext) -> RetrievalContext:
        for stage in ordered:
            ctx = await stage(ctx)
            ctx.completed_stages.append(stage.name)
        return ctx

    return run


class RAGPipeline:
    def __init__(self, stages: Sequence[Stage]) -> None:
        self._stages = list(stages)
        self._run = compose_stages(self._stages)

    @property
    def stage_names(self) -> List[str]:
        return [s.name for s in self._stages]

    def without(self, *names: str) -> "RAGPipeline":
        """Copy of the pipeline with the named stages removed."""
        return RAGPipeline([s for s in self._stages if s.name not in names])

    async def run(self, query: str, scope: SearchScope = SearchScope()) -> RetrievalContext:
        ctx = await self._run(RetrievalContext(query=query, scope=scope))
        logger.info(
            "Pipeline: query='%s' stages=%s candidates=%d answered=%s",
            query[:60], ",".join(ctx.completed_stages), len(ctx.candidates), bool(ctx.answer),
        )
        return ctx


def _require_plan(ctx: RetrievalContext) -> RetrievalPlan:
    if ctx.plan is None:
        raise RuntimeError("pipeline stage needs a plan; put PlanStage first")
    return ctx.plan


def _rerank_text(cand: SearchCandidate) -> str:
    if cand.title and cand.title not in cand.content:
        return f"{cand.title}\n{cand.content}"
    return cand.content
