"""
ragcore – document ingestion and hybrid retrieval core.

Ingestion: submit → queue → consumer → chunk → index (vector store + mappings).
Query:     plan → hybrid search (vector + lexical) → rerank → context → LLM.

Usage:
    from ragcore.bootstrap import Container
    from ragcore.rag.types import SearchScope

    container = Container.from_env()
    ctx = await container.rag.retrieve("what is a vector index", SearchScope(user_id=uid))
"""

__version__ = "0.1.0"
