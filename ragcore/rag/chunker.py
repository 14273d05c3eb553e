"""ChunkingEngine: picks section, semantic or fallback chunking for a document."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence

from ragcore.rag.splitters import CharacterSplitter, SectionSplitter, SemanticSplitter
from ragcore.rag.types import Chunk, Section

if TYPE_CHECKING:
    from ragcore.rag.embedder import Embedder

logger = logging.getLogger(__name__)


class ChunkingEngine:
    """
    - Section hints present → one chunk per section.
    - Otherwise → semantic chunking on sentence-embedding similarity.
    - Any unexpected error in semantic chunking → fixed character windows.
    """

    def __init__(
        self,
        embedder: "Embedder",
        *,
        semantic_threshold: float = 0.5,
    ) -> None:
        self._embedder = embedder
        self._semantic_threshold = semantic_threshold

    async def chunk(
        self,
        content: str,
        sections: Optional[Sequence[Section]] = None,
        target_tokens: int = 500,
        overlap_tokens: int = 100,
    ) -> List[Chunk]:
        if not content or not content.strip():
            return []

        if sections:
            chunks = await SectionSplitter(overlap_tokens).split(content, sections)
            logger.info("Section chunking: sections=%d chunks=%d", len(sections), len(chunks))
            return chunks

        semantic = SemanticSplitter(
            self._embedder,
            overlap_tokens=overlap_tokens,
            threshold=self._semantic_threshold,
        )
        try:
            chunks = await semantic.split(content)
        except Exception:
            logger.exception("Semantic chunking failed, falling back to character windows")
            return CharacterSplitter(target_tokens, overlap_tokens).windows(content)
        logger.info("Semantic chunking: chars=%d chunks=%d", len(content), len(chunks))
        return chunks
