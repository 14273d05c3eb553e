"""Embedder: wraps BaseEmbeddingClient with batching, L2 normalisation and dimension checks."""
from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, List, Optional, Sequence

from ragcore.core.exceptions import ConfigurationError, EmbeddingError

if TYPE_CHECKING:
    from ragcore.clients.embedding import BaseEmbeddingClient

logger = logging.getLogger(__name__)

# Provider-side limit on inputs per request.
MAX_BATCH = 10


class Embedder:
    """Embed texts in sequential batches of at most ``batch_size``."""

    def __init__(
        self,
        client: "BaseEmbeddingClient",
        *,
        batch_size: int = MAX_BATCH,
        normalize: bool = True,
        expected_dimension: Optional[int] = None,
    ) -> None:
        if not 1 <= batch_size <= MAX_BATCH:
            raise ConfigurationError(f"embedding batch_size must be in [1, {MAX_BATCH}], got {batch_size}")
        self._client = client
        self._batch_size = batch_size
        self._normalize = normalize

        if expected_dimension is not None and client.dimension != expected_dimension:
            raise ConfigurationError(
                f"Embedding model '{client.model_name}' produces {client.dimension}-d vectors "
                f"but the vector store expects {expected_dimension}-d. "
                f"Change QDRANT_VECTOR_SIZE or use a matching embedding model.",
            )

    @property
    def model_name(self) -> str:
        return self._client.model_name

    @property
    def dimension(self) -> int:
        return self._client.dimension

    async def embed_texts(
        self,
        texts: Sequence[str],
        *,
        tolerate_failures: bool = False,
    ) -> List[List[float]]:
        """Return one vector per text.

        With ``tolerate_failures`` a failing batch contributes an empty vector
        for each of its texts instead of raising.
        """
        vectors: List[List[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = list(texts[start : start + self._batch_size])
            try:
                batch_vecs = await self._client.embed(batch)
                if len(batch_vecs) != len(batch):
                    raise EmbeddingError(
                        f"provider returned {len(batch_vecs)} vectors for {len(batch)} texts"
                    )
            except Exception as exc:
                if not tolerate_failures:
                    if isinstance(exc, EmbeddingError):
                        raise
                    raise EmbeddingError("Embedding batch failed", cause=exc) from exc
                logger.warning(
                    "Embedding batch [%d, %d) failed, using empty vectors: %s",
                    start, start + len(batch), exc,
                )
                batch_vecs = [[] for _ in batch]
            if self._normalize:
                batch_vecs = [_l2_normalize(v) for v in batch_vecs]
            vectors.extend(batch_vecs)
        return vectors

    async def embed_query(self, text: str) -> List[float]:
        vecs = await self.embed_texts([text])
        return vecs[0]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, mismatched or zero-norm vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a < 1e-12 or norm_b < 1e-12:
        return 0.0
    return dot / (norm_a * norm_b)


def _l2_normalize(vec: List[float]) -> List[float]:
    norm = math.sqrt(sum(x * x for x in vec))
    if norm < 1e-12:
        return vec
    return [x / norm for x in vec]
