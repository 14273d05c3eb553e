"""Parser contract: file path or bytes → ParsedText."""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PathOrBytes = Union[str, Path, bytes]

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INLINE_SPACE = re.compile(r"[ \t]{2,}")
_EDGE_SPACE = re.compile(r"^[ \t]+|[ \t]+$", re.MULTILINE)
_BLANK_LINES = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ParsedText:
    text: str
    source_type: str


def clean_text(text: str) -> str:
    """Strip control characters, trim lines, collapse runs of spaces and blank lines."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _EDGE_SPACE.sub("", text)
    text = _INLINE_SPACE.sub(" ", text)
    text = _BLANK_LINES.sub("\n\n", text)
    return text.strip()


class BaseParser(ABC):
    """One file type: ``extract`` → ParsedText."""

    @property
    @abstractmethod
    def supported_extensions(self) -> tuple[str, ...]:
        ...

    @property
    def source_type(self) -> str:
        exts = self.supported_extensions
        return exts[0] if exts else "unknown"

    @abstractmethod
    def extract(self, source: PathOrBytes) -> ParsedText:
        """Raises ExtractionError when the source cannot be read."""
