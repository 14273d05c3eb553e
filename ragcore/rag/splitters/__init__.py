"""Splitters: section-based, semantic and fixed character windows."""
from .base import BaseSplitter
from .character import CharacterSplitter
from .section import SectionSplitter
from .semantic import SemanticSplitter

__all__ = [
    "BaseSplitter",
    "CharacterSplitter",
    "SectionSplitter",
    "SemanticSplitter",
]
