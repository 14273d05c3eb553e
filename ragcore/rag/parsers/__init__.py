"""Parsers: PDF, DOCX, Markdown, TXT → ParsedText."""
from ragcore.rag.parsers.base import BaseParser, ParsedText, PathOrBytes, clean_text
from ragcore.rag.parsers.docx import DocxParser
from ragcore.rag.parsers.pdf import PdfParser
from ragcore.rag.parsers.registry import get_parser, list_supported_extensions, register_parser
from ragcore.rag.parsers.txt import MarkdownParser, TxtParser

register_parser(TxtParser())
register_parser(MarkdownParser())
register_parser(PdfParser())
register_parser(DocxParser())

__all__ = [
    "BaseParser",
    "ParsedText",
    "PathOrBytes",
    "clean_text",
    "TxtParser",
    "MarkdownParser",
    "PdfParser",
    "DocxParser",
    "register_parser",
    "get_parser",
    "list_supported_extensions",
]
