"""
ragcore config: frozen dataclasses loaded from env.

    load_postgres_config(), load_qdrant_config(), load_redis_config(), load_rag_config()
"""
from ragcore.config.postgres import PostgresConfig, load_postgres_config
from ragcore.config.qdrant import QdrantConfig, load_qdrant_config
from ragcore.config.rag import RAGConfig, load_rag_config
from ragcore.config.redis import RedisConfig, load_redis_config

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "QdrantConfig",
    "load_qdrant_config",
    "RAGConfig",
    "load_rag_config",
    "RedisConfig",
    "load_redis_config",
]
