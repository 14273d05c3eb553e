"""Unit tests for LLMReranker and score parsing."""
from __future__ import annotations

import asyncio
import unittest

from ragcore.rag.embedder import Embedder
from ragcore.rag.reranker import LLMReranker, keyword_overlap, parse_score
from ragcore.tests.fakes import FakeEmbeddingClient, FakeLLM


class TestParseScore(unittest.TestCase):
    def test_plain_number(self) -> None:
        self.assertEqual(parse_score("8"), 8.0)

    def test_strips_non_numeric_text(self) -> None:
        self.assertEqual(parse_score("Score: 7.5"), 7.5)

    def test_clamps_to_ten(self) -> None:
        self.assertEqual(parse_score("42"), 10.0)

    def test_unparseable_is_midpoint(self) -> None:
        self.assertEqual(parse_score("not relevant"), 5.0)
        self.assertEqual(parse_score("1.2.3"), 5.0)


class TestKeywordOverlap(unittest.TestCase):
    def test_fraction_of_query_tokens_present(self) -> None:
        self.assertEqual(keyword_overlap("vector index", "The Vector store"), 0.5)
        self.assertEqual(keyword_overlap("", "anything"), 0.0)


def _llm_scoring(keyword: str, high: str = "9", low: str = "2") -> FakeLLM:
    return FakeLLM(lambda prompt: high if keyword in prompt.split("Document:")[-1] else low)


class TestLLMReranker(unittest.TestCase):
    def test_orders_by_llm_score(self) -> None:
        reranker = LLMReranker(_llm_scoring("alpha"))
        ranked = asyncio.run(
            reranker.rerank("which one?", {"a": "beta text", "b": "alpha text", "c": "gamma"}, top_k=2)
        )
        self.assertEqual(ranked[0], "b")
        self.assertEqual(len(ranked), 2)

    def test_scores_are_normalised(self) -> None:
        reranker = LLMReranker(FakeLLM(lambda _: "7"))
        self.assertAlmostEqual(asyncio.run(reranker.score("q", "passage")), 0.7)

    def test_llm_failure_falls_back_to_keyword_overlap(self) -> None:
        def boom(_: str) -> str:
            raise RuntimeError("provider timeout")

        reranker = LLMReranker(FakeLLM(boom))
        self.assertEqual(asyncio.run(reranker.score("vector index", "a vector store")), 0.5)

    def test_without_llm_uses_keyword_overlap(self) -> None:
        reranker = LLMReranker(None)
        scores = asyncio.run(reranker.score_all("qdrant filters", {"x": "qdrant filters", "y": "other"}, top_k=2))
        self.assertEqual(scores, {"x": 1.0, "y": 0.0})

    def test_long_passages_are_truncated_in_prompt(self) -> None:
        llm = FakeLLM(lambda _: "5")
        asyncio.run(LLMReranker(llm, passage_chars=10).score("q", "x" * 50))
        self.assertIn("x" * 10 + "...", llm.prompts[0])
        self.assertNotIn("x" * 11, llm.prompts[0])

    def test_medium_pool_is_prefiltered_to_twice_top_k(self) -> None:
        llm = FakeLLM(lambda _: "5")
        candidates = {f"c{i}": ("match " if i < 3 else "") + f"doc {i}" for i in range(8)}
        scores = asyncio.run(LLMReranker(llm).score_all("match", candidates, top_k=2))
        self.assertEqual(len(scores), 4)
        self.assertEqual(len(llm.prompts), 4)
        self.assertTrue({"c0", "c1", "c2"} <= set(scores))

    def test_vector_prefilter_uses_embeddings(self) -> None:
        near, far = [1.0, 0.0], [0.0, 1.0]
        vectors = {"query": near, "close one": near, "close two": near}
        embedder = Embedder(FakeEmbeddingClient(vectors, default=far))
        candidates = {f"far{i}": f"far away {i}" for i in range(5)}
        candidates.update({"n1": "close one", "n2": "close two"})
        scores = asyncio.run(LLMReranker(None, embedder=embedder).score_all("query", candidates, top_k=1))
        self.assertEqual(set(scores), {"n1", "n2"})

    def test_empty_candidates(self) -> None:
        self.assertEqual(asyncio.run(LLMReranker(None).rerank("q", {}, top_k=3)), [])


if __name__ == "__main__":
    unittest.main()
