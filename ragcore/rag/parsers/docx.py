"""DOCX text extraction (python-docx): paragraphs, then tables."""
from __future__ import annotations

import zipfile
from io import BytesIO
from pathlib import Path

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from ragcore.core.exceptions import ExtractionError
from ragcore.rag.parsers.base import BaseParser, ParsedText, PathOrBytes

_HEADING_STYLE_PREFIX = "Heading"


class DocxParser(BaseParser):
    """
    Paragraphs styled ``Heading N`` are emitted as Markdown headings
    (``#`` × N) so the structure extractor can find sections.
    """

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return ("docx",)

    def extract(self, source: PathOrBytes) -> ParsedText:
        stream = BytesIO(source) if isinstance(source, bytes) else str(Path(source))
        try:
            doc = Document(stream)
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, OSError) as e:
            raise ExtractionError(f"Cannot open DOCX: {e}", cause=e) from e
        parts = []
        for para in doc.paragraphs:
            text = para.text.strip()
            if not text:
                continue
            level = _heading_level(para.style.name if para.style is not None else "")
            parts.append(f"{'#' * level} {text}" if level else text)
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text]
                if cells:
                    parts.append(" | ".join(cells))
        return ParsedText(text="\n".join(parts), source_type=self.source_type)


def _heading_level(style_name: str) -> int:
    if not style_name.startswith(_HEADING_STYLE_PREFIX):
        return 0
    suffix = style_name[len(_HEADING_STYLE_PREFIX):].strip()
    return min(int(suffix), 6) if suffix.isdigit() else 0
