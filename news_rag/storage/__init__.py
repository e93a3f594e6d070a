"""
Persistent storage layer for news-rag.

Provides:
- EmbeddingCache: Document-embedding cache with SQLite and in-memory backends
"""

from news_rag.storage.embedding_cache import (
    EmbeddingCache,
    InMemoryEmbeddingCache,
    SQLiteEmbeddingCache,
    build_embedding_cache,
)

__all__ = [
    "EmbeddingCache",
    "InMemoryEmbeddingCache",
    "SQLiteEmbeddingCache",
    "build_embedding_cache",
]
