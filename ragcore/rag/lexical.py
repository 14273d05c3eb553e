"""Lexical scoring helpers: tokenizer, title-match score and a simple BM25."""
from __future__ import annotations

import re
from collections import Counter
from typing import List, Set

EXACT_TITLE_SCORE = 2.0
PARTIAL_MATCH_SCORE = 1.0

STOP_WORDS: Set[str] = {
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "can", "of", "in", "to", "for", "with", "on",
    "at", "from", "by", "about", "as", "into", "and", "but", "or", "not",
    "this", "that", "these", "those", "it", "its", "what", "how", "why",
    "的", "了", "是", "在", "和", "与", "或", "及", "等", "这", "那", "个",
    "请", "帮", "我", "你", "吗", "呢", "吧", "啊",
}

# Latin/digit words, or single CJK ideographs
_TOKEN_RE = re.compile(r"[a-z0-9]+|[\u3400-\u4dbf\u4e00-\u9fff]")


def tokenize(text: str) -> List[str]:
    return [t for t in _TOKEN_RE.findall(text.lower()) if t not in STOP_WORDS]


def title_match_score(query: str, title: str) -> float:
    """2.0 when the title equals the query (case-insensitive, trimmed), else 1.0."""
    if title.strip().lower() == query.strip().lower():
        return EXACT_TITLE_SCORE
    return PARTIAL_MATCH_SCORE


def bm25_score(query_tokens: List[str], content: str, k1: float = 1.5, b: float = 0.75) -> float:
    """Single-document BM25 without corpus statistics (average length fixed at >= 100)."""
    doc_tokens = tokenize(content)
    if not doc_tokens or not query_tokens:
        return 0.0
    dl = len(doc_tokens)
    avgdl = max(dl, 100)
    tf_map: Counter[str] = Counter(doc_tokens)
    score = 0.0
    for qt in query_tokens:
        tf = tf_map.get(qt, 0)
        if tf == 0:
            continue
        score += tf * (k1 + 1) / (tf + k1 * (1 - b + b * dl / avgdl))
    return score
