"""
ragcore.infra.database – PostgreSQL async engine, models, repositories and stores.
"""
from ragcore.infra.database.engine import (
    build_engine,
    build_session_factory,
    ensure_database_exists,
    init_db,
)
from ragcore.infra.database.models import (
    Base,
    DocumentChunk,
    DocumentTask,
    KnowledgeDocument,
    VectorMapping,
)
from ragcore.infra.database.stores import (
    SqlChunkStore,
    SqlDocumentStore,
    SqlLexicalStore,
    SqlTaskStore,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "ensure_database_exists",
    "init_db",
    "Base",
    "KnowledgeDocument",
    "DocumentChunk",
    "VectorMapping",
    "DocumentTask",
    "SqlTaskStore",
    "SqlChunkStore",
    "SqlDocumentStore",
    "SqlLexicalStore",
]
