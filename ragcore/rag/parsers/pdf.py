"""PDF text extraction (pypdf)."""
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ragcore.core.exceptions import ExtractionError
from ragcore.rag.parsers.base import BaseParser, ParsedText, PathOrBytes

logger = logging.getLogger(__name__)


class PdfParser(BaseParser):
    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return ("pdf",)

    def extract(self, source: PathOrBytes) -> ParsedText:
        stream = BytesIO(source) if isinstance(source, bytes) else Path(source)
        try:
            reader = PdfReader(stream)
        except (PdfReadError, OSError, ValueError) as e:
            raise ExtractionError(f"Cannot open PDF: {e}", cause=e) from e
        parts = []
        for number, page in enumerate(reader.pages, start=1):
            try:
                text = page.extract_text()
            except (PdfReadError, ValueError, KeyError) as e:
                logger.warning("Skipping unreadable PDF page %d: %s", number, e)
                continue
            if text:
                parts.append(text)
        return ParsedText(text="\n".join(parts), source_type=self.source_type)
