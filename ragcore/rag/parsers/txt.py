"""Plain text and Markdown. UTF-8 first, then common single-byte encodings."""
from __future__ import annotations

from pathlib import Path

from ragcore.core.exceptions import ExtractionError
from ragcore.rag.parsers.base import BaseParser, ParsedText, PathOrBytes

_ENCODINGS = ("utf-8", "utf-8-sig", "gb18030", "cp1252", "latin-1")


class TxtParser(BaseParser):
    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return ("txt", "text")

    def extract(self, source: PathOrBytes) -> ParsedText:
        if isinstance(source, bytes):
            raw = source
        else:
            path = Path(source)
            try:
                raw = path.read_bytes()
            except OSError as e:
                raise ExtractionError(f"Cannot read text file: {path}", cause=e) from e
        return ParsedText(text=decode(raw), source_type=self.source_type)


class MarkdownParser(TxtParser):
    """Markdown is kept verbatim so heading lines survive for section extraction."""

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return ("md", "markdown")


def decode(raw: bytes) -> str:
    for enc in _ENCODINGS:
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    raise ExtractionError(f"Cannot decode text (tried {', '.join(_ENCODINGS)})")
