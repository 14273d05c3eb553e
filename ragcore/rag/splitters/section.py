"""Section splitter: one chunk per structural section with a heading prefix."""
from __future__ import annotations

from typing import List, Optional, Sequence

from ragcore.rag.types import Chunk, ChunkKind, Section

from .base import BaseSplitter, overlap_chars, with_preview

PREVIEW_MARKER = "\n\n--- next section preview ---\n"


def heading(section: Section) -> str:
    return f"{'#' * max(1, section.level)} {section.title.strip()}"


class SectionSplitter(BaseSplitter):
    """
    Sections are ordered by start offset. Chunk ``i`` spans from the start of
    section ``i`` (0 for the first) to the start of section ``i + 1`` (end of
    text for the last), so text between hints belongs to the preceding section.
    """

    kind = ChunkKind.SECTION

    def __init__(self, overlap_tokens: int = 100) -> None:
        self.overlap_tokens = overlap_tokens

    async def split(self, text: str, sections: Optional[Sequence[Section]] = None) -> List[Chunk]:
        if not sections:
            return []
        ordered = sorted(sections, key=lambda s: s.start_offset)
        length = len(text)
        starts = [0] + [min(max(s.start_offset, 0), length) for s in ordered[1:]]
        # keep boundaries monotone when hints overlap or run past the text
        for i in range(1, len(starts)):
            starts[i] = max(starts[i], starts[i - 1])
        ends = starts[1:] + [length]

        budget = overlap_chars(self.overlap_tokens)
        chunks: List[Chunk] = []
        for i, section in enumerate(ordered):
            content = f"{heading(section)}\n\n{section.content.strip()}"
            if i + 1 < len(ordered):
                content = with_preview(
                    content, ordered[i + 1].content.strip(), budget, PREVIEW_MARKER, ellipsis=True
                )
            chunks.append(self._chunk(content, i, starts[i], ends[i], section=section))
        return chunks
