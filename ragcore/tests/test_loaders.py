"""Unit tests for parsers, FileTextLoader and Markdown structure extraction."""
from __future__ import annotations

import asyncio
import tempfile
import unittest
from io import BytesIO
from pathlib import Path

from docx import Document

from ragcore.core.exceptions import ExtractionError, UnsupportedFileTypeError
from ragcore.rag.loaders import FileTextLoader, MarkdownStructureExtractor, extract_markdown_sections
from ragcore.rag.parsers import DocxParser, PdfParser, clean_text, get_parser, list_supported_extensions
from ragcore.tests.fakes import document


class TestParsers(unittest.TestCase):
    def test_registry(self) -> None:
        self.assertEqual(list_supported_extensions(), ("docx", "markdown", "md", "pdf", "text", "txt"))
        self.assertIs(get_parser(".PDF"), get_parser("pdf"))
        with self.assertRaises(UnsupportedFileTypeError):
            get_parser(".xlsx")
        with self.assertRaises(UnsupportedFileTypeError):
            get_parser("")

    def test_clean_text(self) -> None:
        raw = "  Title\x00  \r\n\r\n\r\n\r\nbody   with\t\tgaps  \n"
        self.assertEqual(clean_text(raw), "Title\n\nbody with gaps")

    def test_txt_decoding_fallback(self) -> None:
        text = get_parser("txt").extract("café".encode("cp1252")).text
        self.assertTrue(text.startswith("caf"))
        self.assertEqual(get_parser("txt").extract("向量数据库".encode("utf-8")).text, "向量数据库")

    def test_docx_headings_become_markdown(self) -> None:
        doc = Document()
        doc.add_heading("Setup", level=1)
        doc.add_paragraph("Install the package.")
        doc.add_heading("Details", level=2)
        doc.add_paragraph("More text.")
        buffer = BytesIO()
        doc.save(buffer)

        text = DocxParser().extract(buffer.getvalue()).text
        self.assertEqual(text, "# Setup\nInstall the package.\n## Details\nMore text.")

    def test_corrupt_binaries(self) -> None:
        for parser in (PdfParser(), DocxParser()):
            with self.subTest(parser=type(parser).__name__), self.assertRaises(ExtractionError):
                parser.extract(b"definitely not a document")


class TestFileTextLoader(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_loads_relative_to_base_dir(self) -> None:
        (self.dir / "notes.md").write_text("# Intro\n\n\n\nHello   world\n", encoding="utf-8")
        loader = FileTextLoader(str(self.dir))
        text = asyncio.run(loader.load_text(document(file_path="notes.md")))
        self.assertEqual(text, "# Intro\n\nHello world")

    def test_empty_file(self) -> None:
        (self.dir / "empty.txt").write_text("   \n\n", encoding="utf-8")
        with self.assertRaises(ExtractionError):
            asyncio.run(FileTextLoader(str(self.dir)).load_text(document(file_path="empty.txt")))

    def test_missing_path_and_unsupported_type(self) -> None:
        loader = FileTextLoader(str(self.dir))
        with self.assertRaises(ExtractionError):
            asyncio.run(loader.load_text(document(file_path=None)))
        with self.assertRaises(UnsupportedFileTypeError):
            asyncio.run(loader.load_text(document(file_path="sheet.xlsx")))


class TestMarkdownSections(unittest.TestCase):
    TEXT = "Preface line.\n# Setup\nInstall it.\n## Options\nTune it.\n# Usage ##\nRun it."

    def test_sections_tile_the_text(self) -> None:
        sections = extract_markdown_sections(self.TEXT, "Guide")
        self.assertEqual([s.title for s in sections], ["Guide", "Setup", "Options", "Usage"])
        self.assertEqual([s.level for s in sections], [1, 1, 2, 1])
        self.assertEqual(sections[0].start_offset, 0)
        self.assertEqual(sections[-1].end_offset, len(self.TEXT))
        for prev, nxt in zip(sections, sections[1:]):
            self.assertEqual(prev.end_offset, nxt.start_offset)
        self.assertEqual(sections[2].content, "Tune it.")

    def test_too_few_headings(self) -> None:
        self.assertIsNone(extract_markdown_sections("# Only one\nbody"))
        extractor = MarkdownStructureExtractor(min_sections=1)
        sections = asyncio.run(extractor.extract(document(), "# Only one\nbody"))
        self.assertEqual(len(sections), 1)


if __name__ == "__main__":
    unittest.main()
