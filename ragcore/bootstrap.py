"""
Composition root: builds every collaborator explicitly from env config.

    container = Container.from_env()
    await container.prepare()          # database, collection, queue recovery
    task = await container.ingestion.submit(document_id)
    ...
    await container.aclose()

Without REDIS_URL the progress cache and the queue are in-process.
Without LLM_PROVIDER the query path runs without an LLM (heuristic keyword
expansion, keyword-overlap rerank, no answer generation).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine

from ragcore.clients.embedding import EmbeddingConfig
from ragcore.clients.embedding import default_registry as embedding_registry
from ragcore.clients.llm import BaseLLMClient, LLMConfig
from ragcore.clients.llm import default_registry as llm_registry
from ragcore.config import (
    PostgresConfig,
    QdrantConfig,
    RAGConfig,
    RedisConfig,
    load_postgres_config,
    load_qdrant_config,
    load_rag_config,
    load_redis_config,
)
from ragcore.core.exceptions import ConfigurationError
from ragcore.infra.cache import BaseProgressCache, LocalProgressCache, RedisProgressCache
from ragcore.infra.database import (
    SqlChunkStore,
    SqlDocumentStore,
    SqlLexicalStore,
    SqlTaskStore,
    build_engine,
    build_session_factory,
    ensure_database_exists,
    init_db,
)
from ragcore.infra.queue import BaseChannel, InMemoryChannel, RedisChannel
from ragcore.infra.vectorstore import QdrantManager, QdrantVectorStore, ensure_collection_exists
from ragcore.rag.chunker import ChunkingEngine
from ragcore.rag.embedder import Embedder
from ragcore.rag.hybrid_search import HybridSearcher
from ragcore.rag.indexer import IndexingBatcher
from ragcore.rag.loaders import FileTextLoader, MarkdownStructureExtractor
from ragcore.rag.search import SemanticSearcher
from ragcore.services import IngestionService, RAGService, TaskService

logger = logging.getLogger(__name__)


@dataclass
class Container:
    postgres_config: PostgresConfig
    qdrant_config: QdrantConfig
    redis_config: RedisConfig
    rag_config: RAGConfig
    engine: AsyncEngine
    qdrant: QdrantManager
    redis: Optional[Redis]
    embedder: Embedder
    llm: Optional[BaseLLMClient]
    cache: BaseProgressCache
    channel: BaseChannel
    indexer: IndexingBatcher
    tasks: TaskService
    ingestion: IngestionService
    rag: RAGService

    @classmethod
    def from_env(cls, *, files_dir: Optional[str] = None) -> "Container":
        """Raises ConfigurationError for invalid settings or unknown providers."""
        try:
            pg = load_postgres_config()
            qcfg = load_qdrant_config()
            rcfg = load_redis_config()
            rag_cfg = load_rag_config()
        except ValueError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", cause=exc) from exc

        embedder = Embedder(
            _build_embedding_client(EmbeddingConfig.from_env()),
            batch_size=rag_cfg.embed_batch_size,
            expected_dimension=qcfg.vector_size,
        )
        llm = _build_llm_client(LLMConfig.from_env())

        engine = build_engine(pg)
        session_factory = build_session_factory(engine)
        qdrant = QdrantManager(qcfg)
        vector_store = QdrantVectorStore(qdrant, embedder, qcfg.collection_name)

        redis: Optional[Redis] = None
        cache: BaseProgressCache
        channel: BaseChannel
        if rcfg.enabled:
            redis = Redis.from_url(rcfg.url)
            cache = RedisProgressCache(redis, ttl_seconds=rcfg.task_ttl_seconds, key_prefix=rcfg.key_prefix)
            channel = RedisChannel(redis, rcfg.key_prefix + rcfg.queue_name, block_timeout=rcfg.block_timeout)
        else:
            logger.info("REDIS_URL not set; using in-process progress cache and queue")
            cache = LocalProgressCache(ttl_seconds=rcfg.task_ttl_seconds)
            channel = InMemoryChannel()

        documents = SqlDocumentStore(session_factory)
        indexer = IndexingBatcher(vector_store, SqlChunkStore(session_factory), batch_size=rag_cfg.index_batch_size)
        tasks = TaskService(
            SqlTaskStore(session_factory),
            cache,
            indexer,
            channel,
            document_store=documents,
            max_retries=rag_cfg.max_retries,
        )
        ingestion = IngestionService(
            tasks,
            documents,
            FileTextLoader(files_dir),
            ChunkingEngine(embedder, semantic_threshold=rag_cfg.semantic_threshold),
            indexer,
            channel,
            extractor=MarkdownStructureExtractor(),
            chunk_size=rag_cfg.chunk_size,
            chunk_overlap=rag_cfg.chunk_overlap,
        )
        hybrid = HybridSearcher(
            SemanticSearcher(vector_store),
            SqlLexicalStore(session_factory),
            vector_weight=rag_cfg.vector_weight,
            text_weight=rag_cfg.text_weight,
            lexical_limit=rag_cfg.lexical_limit,
        )
        rag = RAGService(hybrid, llm=llm, embedder=embedder, config=rag_cfg)

        return cls(
            postgres_config=pg,
            qdrant_config=qcfg,
            redis_config=rcfg,
            rag_config=rag_cfg,
            engine=engine,
            qdrant=qdrant,
            redis=redis,
            embedder=embedder,
            llm=llm,
            cache=cache,
            channel=channel,
            indexer=indexer,
            tasks=tasks,
            ingestion=ingestion,
            rag=rag,
        )

    async def prepare(self, *, create_tables: bool = True) -> None:
        """Create database/tables and the vector collection; requeue unacked messages."""
        await ensure_database_exists(self.postgres_config)
        if create_tables:
            await init_db(self.engine)
        await ensure_collection_exists(self.qdrant, self.qdrant_config)
        if isinstance(self.channel, RedisChannel):
            await self.channel.recover()

    async def aclose(self) -> None:
        await self.channel.close()
        await self.qdrant.close()
        if self.redis is not None:
            await self.redis.aclose()
        await self.engine.dispose()
        logger.info("Container closed")


def _build_embedding_client(cfg: EmbeddingConfig):
    try:
        return embedding_registry.build(cfg.provider, cfg.to_dict())
    except KeyError as exc:
        raise ConfigurationError(str(exc), cause=exc) from exc


def _build_llm_client(cfg: LLMConfig) -> Optional[BaseLLMClient]:
    if not cfg.provider:
        logger.info("LLM_PROVIDER empty; query path runs without an LLM")
        return None
    try:
        return llm_registry.build(cfg.provider, cfg.to_dict())
    except KeyError as exc:
        raise ConfigurationError(str(exc), cause=exc) from exc
