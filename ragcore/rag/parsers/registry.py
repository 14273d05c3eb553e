"""Extension → parser."""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from ragcore.core.exceptions import UnsupportedFileTypeError

if TYPE_CHECKING:
    from ragcore.rag.parsers.base import BaseParser

_registry: Dict[str, "BaseParser"] = {}


def register_parser(parser: "BaseParser") -> None:
    for ext in parser.supported_extensions:
        _registry[ext.lower().lstrip(".")] = parser


def get_parser(extension: str) -> "BaseParser":
    """Accepts ``.pdf`` as well as ``pdf``."""
    key = extension.lower().strip().lstrip(".")
    if not key:
        raise UnsupportedFileTypeError("File has no extension")
    parser = _registry.get(key)
    if parser is None:
        raise UnsupportedFileTypeError(
            f"Unsupported file type: .{key}",
            details={"supported": sorted(_registry)},
        )
    return parser


def list_supported_extensions() -> tuple[str, ...]:
    return tuple(sorted(_registry))
