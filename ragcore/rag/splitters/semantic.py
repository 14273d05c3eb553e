"""Semantic splitter: break between adjacent sentences whose embeddings diverge."""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from ragcore.rag.embedder import cosine_similarity
from ragcore.rag.types import Chunk, ChunkKind, Section

from .base import BaseSplitter, overlap_chars, with_preview

if TYPE_CHECKING:
    from ragcore.rag.embedder import Embedder

logger = logging.getLogger(__name__)

# CJK terminators end a sentence on their own; Latin ones need trailing whitespace or end of text.
_SENTENCE_END = re.compile(r"[。！？；\n]+|[.!?;]+(?:\s+|$)")

OVERLAP_MARKER = "\n\n--- overlap ---\n"

Span = Tuple[int, int]


def sentence_spans(text: str) -> List[Span]:
    """Half-open sentence spans that tile ``text``.

    Whitespace-only stretches are folded into the preceding sentence (or the
    following one at the start of the text), so the spans cover every offset.
    """
    raw: List[Span] = []
    start = 0
    for match in _SENTENCE_END.finditer(text):
        if match.end() > start:
            raw.append((start, match.end()))
            start = match.end()
    if start < len(text):
        raw.append((start, len(text)))

    spans: List[Span] = []
    lead = 0
    for s, e in raw:
        if text[s:e].strip():
            spans.append((lead if not spans else s, e))
        elif spans:
            spans[-1] = (spans[-1][0], e)
    return spans


def find_breakpoints(similarities: Sequence[float], threshold: float) -> List[int]:
    """Index ``i`` is a breakpoint when sentence ``i`` and ``i + 1`` are dissimilar."""
    return [i for i, sim in enumerate(similarities) if sim < threshold]


def group_by_breakpoints(count: int, breakpoints: Sequence[int]) -> List[Tuple[int, int]]:
    """Sentence index ranges ``[first, last]`` between breakpoints."""
    groups: List[Tuple[int, int]] = []
    first = 0
    for bp in breakpoints:
        groups.append((first, bp))
        first = bp + 1
    if first < count:
        groups.append((first, count - 1))
    return groups


class SemanticSplitter(BaseSplitter):
    kind = ChunkKind.SEMANTIC

    def __init__(
        self,
        embedder: "Embedder",
        *,
        overlap_tokens: int = 100,
        threshold: float = 0.5,
    ) -> None:
        self._embedder = embedder
        self.overlap_tokens = overlap_tokens
        self.threshold = threshold

    async def split(self, text: str, sections: Optional[Sequence[Section]] = None) -> List[Chunk]:
        if not text or not text.strip():
            return []
        spans = sentence_spans(text)
        if len(spans) <= 1:
            return [self._chunk(text, 0, 0, len(text))]

        sentences = [text[s:e].strip() for s, e in spans]
        vectors = await self._embedder.embed_texts(sentences, tolerate_failures=True)
        similarities = [
            cosine_similarity(vectors[i], vectors[i + 1]) for i in range(len(vectors) - 1)
        ]
        breakpoints = find_breakpoints(similarities, self.threshold)
        logger.debug("Semantic split: sentences=%d breakpoints=%s", len(sentences), breakpoints)

        bodies: List[str] = []
        bounds: List[Span] = []
        for first, last in group_by_breakpoints(len(sentences), breakpoints):
            bodies.append(" ".join(sentences[first : last + 1]))
            bounds.append((spans[first][0], spans[last][1]))

        budget = overlap_chars(self.overlap_tokens)
        chunks: List[Chunk] = []
        for i, (body, (start, end)) in enumerate(zip(bodies, bounds)):
            content = body
            if i + 1 < len(bodies):
                content = with_preview(body, bodies[i + 1], budget, OVERLAP_MARKER)
            chunks.append(self._chunk(content, i, start, end))
        return chunks
