"""RetrievalPlanner: pick top-k and similarity threshold from the query itself."""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Tuple

from ragcore.rag.types import QueryType, RetrievalPlan

logger = logging.getLogger(__name__)

# Checked in order; the first matching type wins.
_PATTERNS: List[Tuple[QueryType, re.Pattern[str]]] = [
    (
        QueryType.FACT,
        re.compile(r"what\s+(?:is|are)\b|\bdefin(?:e|ition)\b|\bmeaning\s+of\b|是什么|什么是|定义|含义|概念"),
    ),
    (
        QueryType.COMPARISON,
        re.compile(r"\bcompar(?:e|ison|ing)\b|\bdifferen(?:ce|ces|t)\b|\bversus\b|\bvs\.?\s|对比|比较|区别|差异|不同"),
    ),
    (
        QueryType.SUMMARY,
        re.compile(r"\bsummar(?:y|ize|ise)\b|\boverview\b|\brecap\b|总结|概括|归纳|综述|梳理"),
    ),
    (
        QueryType.HOW_TO,
        re.compile(r"\bhow\s+(?:to|do|does|can|should)\b|\bsteps?\b|\bmethods?\b|如何|怎么|怎样|方法|步骤"),
    ),
    (
        QueryType.WHY,
        re.compile(r"\bwhy\b|\breasons?\b|为什么|原因|为何"),
    ),
]

_THRESHOLDS: Dict[QueryType, float] = {
    QueryType.FACT: 0.75,
    QueryType.HOW_TO: 0.70,
    QueryType.WHY: 0.68,
    QueryType.GENERAL: 0.65,
    QueryType.COMPARISON: 0.60,
    QueryType.SUMMARY: 0.55,
}

# (exclusive upper bound on query length, top_k)
_TOP_K_BY_LENGTH: List[Tuple[int, int]] = [(20, 5), (50, 8), (100, 12)]
_MAX_TOP_K = 15


def classify(query: str) -> QueryType:
    text = query.lower()
    for query_type, pattern in _PATTERNS:
        if pattern.search(text):
            return query_type
    return QueryType.GENERAL


def top_k_for(query: str) -> int:
    length = len(query)
    for bound, top_k in _TOP_K_BY_LENGTH:
        if length < bound:
            return top_k
    return _MAX_TOP_K


def threshold_for(query_type: QueryType) -> float:
    return _THRESHOLDS[query_type]


class RetrievalPlanner:
    """Longer queries get more candidates; precise query types get stricter thresholds."""

    def plan(self, query: str) -> RetrievalPlan:
        query_type = classify(query)
        plan = RetrievalPlan(
            top_k=top_k_for(query),
            similarity_threshold=threshold_for(query_type),
            query_type=query_type,
        )
        logger.debug("Retrieval plan: type=%s top_k=%d threshold=%.2f", query_type.value, plan.top_k, plan.similarity_threshold)
        return plan
