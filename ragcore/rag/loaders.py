"""
Document text loading and structural hints for the ingestion pipeline.

``FileTextLoader`` reads ``DocumentRecord.file_path`` with the parser for its
extension. ``MarkdownStructureExtractor`` turns Markdown headings (including
the ones the DOCX parser emits for heading styles) into Section hints.
"""
from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from ragcore.core.exceptions import ExtractionError
from ragcore.rag.parsers import clean_text, get_parser
from ragcore.rag.stores import DocumentRecord
from ragcore.rag.types import Section

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t#]*$", re.MULTILINE)


class BaseTextLoader(ABC):
    @abstractmethod
    async def load_text(self, document: DocumentRecord) -> str:
        """Raises ExtractionError when the document cannot be parsed."""
        ...


class BaseStructureExtractor(ABC):
    @abstractmethod
    async def extract(self, document: DocumentRecord, text: str) -> Optional[List[Section]]:
        """Section hints for ``text``, or None when the document has no usable structure."""
        ...


class FileTextLoader(BaseTextLoader):
    def __init__(self, base_dir: Optional[str] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else None

    async def load_text(self, document: DocumentRecord) -> str:
        if not document.file_path:
            raise ExtractionError("Document has no file", details={"document_id": str(document.id)})
        path = Path(document.file_path)
        if self._base_dir is not None and not path.is_absolute():
            path = self._base_dir / path
        parser = get_parser(path.suffix)

        def _sync() -> str:
            return clean_text(parser.extract(path).text)

        text = await asyncio.get_running_loop().run_in_executor(None, _sync)
        if not text:
            raise ExtractionError(
                "Document contains no extractable text",
                details={"document_id": str(document.id), "file": path.name},
            )
        logger.info("Loaded %s: chars=%d", path.name, len(text))
        return text


class MarkdownStructureExtractor(BaseStructureExtractor):
    """
    One Section per heading line. Text before the first heading becomes a
    leading section titled after the document. Needs ``min_sections`` headings
    to count as structured.
    """

    def __init__(self, min_sections: int = 2) -> None:
        self._min_sections = min_sections

    async def extract(self, document: DocumentRecord, text: str) -> Optional[List[Section]]:
        return extract_markdown_sections(text, document.title, self._min_sections)


def extract_markdown_sections(text: str, fallback_title: str = "", min_sections: int = 2) -> Optional[List[Section]]:
    matches = list(_HEADING_RE.finditer(text))
    if len(matches) < min_sections:
        return None

    sections: List[Section] = []
    preamble = text[: matches[0].start()].strip()
    if preamble:
        sections.append(
            Section(
                title=fallback_title or "Introduction",
                content=preamble,
                level=1,
                start_offset=0,
                end_offset=matches[0].start(),
            )
        )
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        sections.append(
            Section(
                title=match.group(2).strip(),
                content=text[match.end():end].strip(),
                level=len(match.group(1)),
                start_offset=match.start(),
                end_offset=end,
            )
        )
    return sections
