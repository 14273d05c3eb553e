"""Splitter interface: text (+ optional section hints) → list[Chunk]."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ragcore.rag.tokens import CHARS_PER_TOKEN, estimate_tokens
from ragcore.rag.types import Chunk, ChunkKind, Section


class BaseSplitter(ABC):
    """Every splitter produces the same output: chunks indexed from 0."""

    kind: ChunkKind

    @abstractmethod
    async def split(self, text: str, sections: Optional[Sequence[Section]] = None) -> List[Chunk]:
        """
        Split ``text`` into chunks.

        Args:
            text: Full document text.
            sections: Structural hints; only structure-aware splitters use them.
        """
        ...

    def _chunk(
        self,
        content: str,
        index: int,
        start: int,
        end: int,
        *,
        section: Optional[Section] = None,
    ) -> Chunk:
        return Chunk(
            content=content,
            chunk_index=index,
            token_count=estimate_tokens(content),
            kind=self.kind,
            start_offset=start,
            end_offset=end,
            section_title=section.title if section else None,
            section_level=section.level if section else None,
        )


def overlap_chars(overlap_tokens: int) -> int:
    return max(0, overlap_tokens) * CHARS_PER_TOKEN


def with_preview(content: str, next_text: str, budget: int, marker: str, *, ellipsis: bool = False) -> str:
    """Append the head of ``next_text`` when it is longer than ``budget`` chars."""
    if budget <= 0 or len(next_text) <= budget:
        return content
    return f"{content}{marker}{next_text[:budget]}{'...' if ellipsis else ''}"
