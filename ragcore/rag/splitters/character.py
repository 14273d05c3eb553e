"""Fixed-size character windows with overlap; last-resort chunking."""
from __future__ import annotations

from typing import List, Optional, Sequence

from ragcore.rag.tokens import CHARS_PER_TOKEN
from ragcore.rag.types import Chunk, ChunkKind, Section

from .base import BaseSplitter, overlap_chars


class CharacterSplitter(BaseSplitter):
    """Windows of ``chunk_tokens * 4`` chars stepping by ``(chunk_tokens - overlap_tokens) * 4``."""

    kind = ChunkKind.FALLBACK

    def __init__(self, chunk_tokens: int = 500, overlap_tokens: int = 100) -> None:
        self.window = max(1, chunk_tokens * CHARS_PER_TOKEN)
        step = self.window - overlap_chars(overlap_tokens)
        # overlap >= window would never advance
        self.step = step if step > 0 else self.window

    async def split(self, text: str, sections: Optional[Sequence[Section]] = None) -> List[Chunk]:
        return self.windows(text)

    def windows(self, text: str) -> List[Chunk]:
        if not text or not text.strip():
            return []
        chunks: List[Chunk] = []
        start = 0
        while start < len(text):
            end = min(start + self.window, len(text))
            chunks.append(self._chunk(text[start:end], len(chunks), start, end))
            if end == len(text):
                break
            start += self.step
        return chunks
