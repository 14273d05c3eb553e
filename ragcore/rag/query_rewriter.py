"""QueryRewriter: turn one user query into a few focused search queries."""
from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, List, Optional

from ragcore.rag.lexical import STOP_WORDS

if TYPE_CHECKING:
    from ragcore.clients.llm import BaseLLMClient

logger = logging.getLogger(__name__)

_KEYWORD_PROMPT = (
    "Extract 2-3 short search keywords or phrases from the query below that "
    "would retrieve the most relevant passages from a document library. "
    'Return a JSON array of strings only, e.g. ["vector index", "HNSW"].\n\n'
    "Query: {query}\n\n"
    "Keywords:"
)

_MAX_QUERIES = 3
_JSON_ARRAY_RE = re.compile(r"\[.*?\]", re.DOTALL)
_SPLIT_RE = re.compile(r"[\s,.;:!?，。！？；：、()（）\"'“”‘’]+")
_LATIN_WORD_RE = re.compile(r"[A-Za-z]{3,}")


def heuristic_keywords(query: str, limit: int = _MAX_QUERIES) -> List[str]:
    """Distinct non-stop-word terms of 2+ chars, then Latin words of 3+ letters."""
    seen: List[str] = []
    for term in _SPLIT_RE.split(query):
        term = term.strip()
        if len(term) >= 2 and term.lower() not in STOP_WORDS and term not in seen:
            seen.append(term)
    for word in _LATIN_WORD_RE.findall(query):
        if word.lower() not in STOP_WORDS and word not in seen:
            seen.append(word)
    return seen[:limit]


def _parse_keywords(raw: str) -> List[str]:
    match = _JSON_ARRAY_RE.search(raw)
    if match:
        try:
            items = json.loads(match.group(0))
        except json.JSONDecodeError:
            items = []
        keywords = [str(i).strip() for i in items if str(i).strip()]
        if keywords:
            return keywords
    return [kw.strip().strip("\"'") for kw in raw.split(",") if kw.strip().strip("\"'")]


class QueryRewriter:
    """LLM keyword extraction with a heuristic fallback; never returns an empty list."""

    def __init__(self, llm: Optional["BaseLLMClient"]) -> None:
        self._llm = llm

    async def extract_search_queries(self, query: str) -> List[str]:
        query = query.strip()
        if not query:
            return []
        if self._llm is not None:
            try:
                raw = (await self._llm.complete(_KEYWORD_PROMPT.format(query=query))).strip()
                keywords = _parse_keywords(raw)[:_MAX_QUERIES]
                if keywords:
                    logger.debug("QueryRewriter: %d LLM keywords", len(keywords))
                    return keywords
            except Exception as exc:
                logger.warning("QueryRewriter: keyword extraction failed, using heuristic: %s", exc)
        return heuristic_keywords(query) or [query]
