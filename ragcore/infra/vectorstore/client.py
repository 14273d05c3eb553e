"""Async Qdrant client with retry."""
from __future__ import annotations

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple, TypeVar, Union, cast

from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import (
    Distance,
    Filter,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    Record,
    ScoredPoint,
    UpdateResult,
    VectorParams,
)

from ragcore.core.exceptions import VectorstoreError

if TYPE_CHECKING:
    from ragcore.config import QdrantConfig

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])
_RETRYABLE = (ResponseHandlingException, asyncio.TimeoutError)
_MAX_RETRIES = 3
_BASE_BACKOFF = 0.5

PointId = Union[str, int]


def _retry(func: _F) -> _F:
    """Retry transport errors and 5xx responses with exponential backoff."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        last_exc: Exception = RuntimeError("unreachable")
        for attempt in range(1, _MAX_RETRIES + 2):
            try:
                return await func(*args, **kwargs)
            except UnexpectedResponse as exc:
                if exc.status_code is not None and exc.status_code < 500:
                    raise VectorstoreError(f"Qdrant '{func.__name__}' rejected: {exc}", cause=exc) from exc
                last_exc = exc
            except _RETRYABLE as exc:
                last_exc = exc
            if attempt <= _MAX_RETRIES:
                delay = min(_BASE_BACKOFF * (2 ** (attempt - 1)), 4.0)
                logger.warning(
                    "Qdrant %s attempt %d/%d failed (%s), retry in %.1fs",
                    func.__name__, attempt, _MAX_RETRIES, last_exc, delay,
                )
                await asyncio.sleep(delay)
        raise VectorstoreError(
            f"Qdrant '{func.__name__}' failed after {_MAX_RETRIES} retries: {last_exc}", cause=last_exc
        )

    return cast(_F, wrapper)


class QdrantManager:
    """Async Qdrant wrapper. All methods raise VectorstoreError on failure."""

    def __init__(self, config: "QdrantConfig") -> None:
        self._url = config.url
        self._client = AsyncQdrantClient(url=config.url, api_key=config.api_key, timeout=config.timeout)
        logger.info("QdrantManager initialised url=%s", self._url)

    async def collection_exists(self, name: str) -> bool:
        try:
            return await self._client.collection_exists(name)
        except (UnexpectedResponse, ResponseHandlingException) as exc:
            raise VectorstoreError(f"Failed to check collection '{name}': {exc}", cause=exc) from exc

    async def create_collection(self, name: str, vector_size: int, distance: str = "Cosine") -> bool:
        """Return False when the collection already exists."""
        try:
            dist = Distance[distance.upper()]
        except KeyError:
            raise VectorstoreError(f"Invalid distance '{distance}'. Use Cosine, Dot, Euclid.")
        try:
            await self._client.create_collection(
                collection_name=name,
                vectors_config=VectorParams(size=vector_size, distance=dist),
                on_disk_payload=True,
            )
        except UnexpectedResponse as exc:
            if exc.status_code == 409:
                return False
            raise VectorstoreError(f"Failed to create collection '{name}': {exc}", cause=exc) from exc
        logger.info("Created collection name=%s vector_size=%d", name, vector_size)
        return True

    async def create_payload_index(self, collection: str, field_name: str, schema: PayloadSchemaType) -> None:
        try:
            await self._client.create_payload_index(
                collection_name=collection, field_name=field_name, field_schema=schema
            )
        except (UnexpectedResponse, ResponseHandlingException) as exc:
            raise VectorstoreError(f"Failed to index payload field '{field_name}': {exc}", cause=exc) from exc

    @_retry
    async def upsert_points(self, collection: str, points: List[PointStruct], wait: bool = True) -> Optional[UpdateResult]:
        if not points:
            return None
        result = await self._client.upsert(collection_name=collection, points=points, wait=wait)
        logger.debug("upsert_points collection=%s count=%d", collection, len(points))
        return result

    async def search(
        self,
        collection: str,
        query_vector: List[float],
        query_filter: Optional[Filter] = None,
        limit: int = 10,
        score_threshold: Optional[float] = None,
    ) -> List[ScoredPoint]:
        try:
            response = await self._client.query_points(
                collection_name=collection,
                query=query_vector,
                query_filter=query_filter,
                limit=limit,
                score_threshold=score_threshold,
                with_payload=True,
                with_vectors=False,
            )
        except UnexpectedResponse as exc:
            if exc.status_code == 404:
                raise VectorstoreError(f"Collection '{collection}' does not exist.", cause=exc) from exc
            raise VectorstoreError(f"Search failed in '{collection}': {exc}", cause=exc) from exc
        except (ResponseHandlingException, asyncio.TimeoutError) as exc:
            raise VectorstoreError(f"Search timeout/error in '{collection}': {exc}", cause=exc) from exc
        return list(response.points or [])

    async def scroll(
        self,
        collection: str,
        scroll_filter: Optional[Filter] = None,
        limit: int = 256,
        offset: Optional[PointId] = None,
    ) -> Tuple[List[Record], Optional[PointId]]:
        """One page of matching points (ids only) plus the next page offset."""
        try:
            points, next_offset = await self._client.scroll(
                collection_name=collection,
                scroll_filter=scroll_filter,
                limit=limit,
                offset=offset,
                with_payload=False,
                with_vectors=False,
            )
        except (UnexpectedResponse, ResponseHandlingException) as exc:
            raise VectorstoreError(f"Scroll failed in '{collection}': {exc}", cause=exc) from exc
        return list(points), next_offset

    @_retry
    async def delete_points(self, collection: str, point_ids: List[PointId], wait: bool = True) -> Optional[UpdateResult]:
        if not point_ids:
            return None
        return await self._client.delete(
            collection_name=collection,
            points_selector=PointIdsList(points=point_ids),
            wait=wait,
        )

    async def close(self) -> None:
        await self._client.close()
        logger.debug("QdrantManager: client closed.")
