"""Unit tests for the splitters and ChunkingEngine."""
from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock

from ragcore.rag.chunker import ChunkingEngine
from ragcore.rag.embedder import Embedder
from ragcore.rag.splitters import CharacterSplitter, SectionSplitter, SemanticSplitter
from ragcore.rag.splitters.section import PREVIEW_MARKER
from ragcore.rag.splitters.semantic import find_breakpoints, group_by_breakpoints, sentence_spans
from ragcore.rag.types import ChunkKind, Section
from ragcore.tests.fakes import FakeEmbeddingClient


def _assert_tiles(case: unittest.TestCase, spans, length: int) -> None:
    case.assertEqual(spans[0][0], 0)
    case.assertEqual(spans[-1][1], length)
    for (_, end), (start, _) in zip(spans, spans[1:]):
        case.assertEqual(end, start)


class TestBreakpoints(unittest.TestCase):
    def test_low_similarity_splits_groups(self) -> None:
        breakpoints = find_breakpoints([0.9, 0.9, 0.3, 0.9], threshold=0.5)
        self.assertEqual(breakpoints, [2])
        self.assertEqual(group_by_breakpoints(5, breakpoints), [(0, 2), (3, 4)])

    def test_no_breakpoints_single_group(self) -> None:
        self.assertEqual(group_by_breakpoints(3, []), [(0, 2)])


class TestSentenceSpans(unittest.TestCase):
    def test_spans_tile_text(self) -> None:
        text = "One. Two!  Three"
        spans = sentence_spans(text)
        self.assertEqual(len(spans), 3)
        _assert_tiles(self, spans, len(text))

    def test_leading_whitespace_folds_into_first_sentence(self) -> None:
        text = "\n\nHello. World."
        spans = sentence_spans(text)
        self.assertEqual(spans, [(0, 9), (9, len(text))])

    def test_cjk_terminators(self) -> None:
        text = "向量检索很快。重排序更准！"
        spans = sentence_spans(text)
        self.assertEqual(len(spans), 2)
        _assert_tiles(self, spans, len(text))


class TestCharacterSplitter(unittest.TestCase):
    def test_windows_overlap_and_cover_text(self) -> None:
        text = "a" * 20
        chunks = CharacterSplitter(chunk_tokens=2, overlap_tokens=1).windows(text)
        self.assertEqual([(c.start_offset, c.end_offset) for c in chunks], [(0, 8), (4, 12), (8, 16), (12, 20)])
        self.assertTrue(all(c.kind is ChunkKind.FALLBACK for c in chunks))
        self.assertEqual([c.chunk_index for c in chunks], [0, 1, 2, 3])

    def test_overlap_larger_than_window_still_advances(self) -> None:
        chunks = CharacterSplitter(chunk_tokens=2, overlap_tokens=5).windows("b" * 20)
        self.assertEqual([(c.start_offset, c.end_offset) for c in chunks], [(0, 8), (8, 16), (16, 20)])

    def test_blank_text(self) -> None:
        self.assertEqual(CharacterSplitter().windows("   "), [])


class TestSectionSplitter(unittest.TestCase):
    def setUp(self) -> None:
        self.text = "Intro line\n# Alpha\nalpha body\n# Beta\nbeta body is long"
        beta = self.text.index("# Beta")
        self.sections = [
            Section("Alpha", "alpha body", 1, self.text.index("# Alpha"), beta),
            Section("Beta", "beta body is long", 1, beta, len(self.text)),
        ]

    def test_offsets_cover_whole_text(self) -> None:
        chunks = asyncio.run(SectionSplitter(overlap_tokens=100).split(self.text, self.sections))
        _assert_tiles(self, [(c.start_offset, c.end_offset) for c in chunks], len(self.text))
        self.assertEqual([c.section_title for c in chunks], ["Alpha", "Beta"])
        self.assertTrue(all(c.kind is ChunkKind.SECTION for c in chunks))

    def test_content_has_heading_and_no_preview_for_short_next_section(self) -> None:
        chunks = asyncio.run(SectionSplitter(overlap_tokens=100).split(self.text, self.sections))
        self.assertEqual(chunks[0].content, "# Alpha\n\nalpha body")

    def test_preview_of_next_section_when_it_exceeds_overlap(self) -> None:
        chunks = asyncio.run(SectionSplitter(overlap_tokens=1).split(self.text, self.sections))
        self.assertEqual(chunks[0].content, "# Alpha\n\nalpha body" + PREVIEW_MARKER + "beta...")
        self.assertNotIn(PREVIEW_MARKER, chunks[1].content)


class TestSemanticSplitter(unittest.TestCase):
    def _embedder(self) -> Embedder:
        cats, stocks = [1.0, 0.0], [0.0, 1.0]
        vectors = {
            "Cats purr.": cats,
            "Cats nap.": cats,
            "Cats eat.": cats,
            "Stocks fell.": stocks,
            "Stocks rose.": stocks,
        }
        return Embedder(FakeEmbeddingClient(vectors))

    def test_topic_shift_starts_new_chunk(self) -> None:
        text = "Cats purr. Cats nap. Cats eat. Stocks fell. Stocks rose."
        chunks = asyncio.run(SemanticSplitter(self._embedder(), threshold=0.5).split(text))
        self.assertEqual(len(chunks), 2)
        self.assertEqual(chunks[0].content, "Cats purr. Cats nap. Cats eat.")
        self.assertEqual(chunks[1].content, "Stocks fell. Stocks rose.")
        self.assertEqual(chunks[0].end_offset, text.index("Stocks"))
        _assert_tiles(self, [(c.start_offset, c.end_offset) for c in chunks], len(text))

    def test_single_sentence_is_one_chunk(self) -> None:
        chunks = asyncio.run(SemanticSplitter(self._embedder()).split("Just one sentence"))
        self.assertEqual(len(chunks), 1)
        self.assertEqual(chunks[0].kind, ChunkKind.SEMANTIC)


class TestChunkingEngine(unittest.TestCase):
    def test_sections_take_priority(self) -> None:
        text = "# A\nbody"
        engine = ChunkingEngine(Embedder(FakeEmbeddingClient()))
        chunks = asyncio.run(engine.chunk(text, [Section("A", "body", 1, 0, len(text))]))
        self.assertEqual(len(chunks), 1)
        self.assertIs(chunks[0].kind, ChunkKind.SECTION)

    def test_semantic_failure_falls_back_to_windows(self) -> None:
        embedder = MagicMock()
        embedder.embed_texts = AsyncMock(side_effect=RuntimeError("provider down"))
        engine = ChunkingEngine(embedder)
        chunks = asyncio.run(engine.chunk("One. Two. Three.", target_tokens=2, overlap_tokens=1))
        self.assertEqual(len(chunks), 3)
        self.assertTrue(all(c.kind is ChunkKind.FALLBACK for c in chunks))

    def test_failed_embedding_batch_does_not_abort(self) -> None:
        client = FakeEmbeddingClient()
        client.embed = AsyncMock(side_effect=RuntimeError("rate limited"))
        engine = ChunkingEngine(Embedder(client))
        chunks = asyncio.run(engine.chunk("First point. Second point."))
        self.assertTrue(chunks)
        self.assertTrue(all(c.kind is ChunkKind.SEMANTIC for c in chunks))

    def test_blank_content(self) -> None:
        engine = ChunkingEngine(Embedder(FakeEmbeddingClient()))
        self.assertEqual(asyncio.run(engine.chunk("  \n ")), [])


if __name__ == "__main__":
    unittest.main()
