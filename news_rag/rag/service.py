"""
Composition point for the RAG core.

RAGService owns the provider, cache and vector store, wires them into the
Retriever and DocumentIngester, and releases them on close(). Nothing in
the core is a module-level singleton; tests build a RAGService around
their own doubles.

Usage::

    async with await RAGService.create(AppConfig.from_env()) as rag:
        await rag.ingest_batch(documents)
        docs = await rag.retrieve("What's new in AI?")
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from news_rag.config import AppConfig
from news_rag.errors import EmbeddingUnavailable
from news_rag.models import RAGStats, RetrievedDocument
from news_rag.rag.embedding_provider import EmbeddingProvider, JinaEmbeddingProvider
from news_rag.rag.ingest import DocumentIngester, DocumentLike
from news_rag.rag.search import Retriever
from news_rag.rag.vector_store import VectorStore, connect_vector_store
from news_rag.samples import sample_articles
from news_rag.storage.embedding_cache import EmbeddingCache, build_embedding_cache

LOG = logging.getLogger("rag.service")

SELF_TEST_TEXT = "This is a test sentence for embedding generation."
SELF_TEST_QUERY = "latest news about technology"


class RAGService:
    """Retrieval and ingestion over one provider, cache and vector store."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        cache: EmbeddingCache,
        vector_store: VectorStore,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.embedding_provider = embedding_provider
        self.cache = cache
        self.vector_store = vector_store

        emb = self.config.embedding
        self.retriever = Retriever(vector_store, embedding_provider, self.config.retrieval)
        self.ingester = DocumentIngester(
            vector_store,
            embedding_provider,
            cache,
            max_text_length=emb.max_text_length,
            max_content_length=emb.max_content_length,
            cache_ttl=self.config.cache.ttl_seconds,
            request_interval=self.config.retrieval.request_interval,
        )

    @classmethod
    async def create(
        cls,
        config: Optional[AppConfig] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        cache: Optional[EmbeddingCache] = None,
    ) -> "RAGService":
        """
        Build every component from configuration.

        The vector store falls back to memory when the networked backend is
        unreachable. Raises ConfigurationError when the provider credential
        is missing. Components built here are closed again if a later step
        fails; injected ones are left to the caller.
        """
        config = config or AppConfig.from_env()
        provider = embedding_provider or JinaEmbeddingProvider.from_config(config.embedding)
        built_cache: Optional[EmbeddingCache] = None
        try:
            if cache is None:
                cache = built_cache = build_embedding_cache(config.cache)
            store = await connect_vector_store(config.vector_store, provider.dimension())
        except Exception:
            if built_cache is not None:
                await built_cache.close()
            if embedding_provider is None:
                await provider.close()
            raise
        LOG.info(
            "RAG service ready (store=%s, cache=%s, model=%s)",
            store.backend,
            type(cache).__name__,
            provider.model_name,
        )
        return cls(provider, cache, store, config)

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
        score_threshold: Optional[float] = None,
    ) -> List[RetrievedDocument]:
        return await self.retriever.retrieve(query, top_k=top_k, score_threshold=score_threshold)

    async def ingest_one(self, document: DocumentLike) -> bool:
        return await self.ingester.ingest_one(document)

    async def ingest_batch(self, documents: Iterable[DocumentLike]) -> int:
        return await self.ingester.ingest_batch(documents)

    async def ingest_samples(self) -> int:
        """Store the built-in sample articles."""
        stored = await self.ingester.ingest_batch(sample_articles())
        LOG.info("Successfully stored %d sample articles", stored)
        return stored

    async def stats(self) -> RAGStats:
        """Collection statistics. Backend errors are reported in ``error``, not raised."""
        try:
            info = await self.vector_store.collection_info()
            count = await self.vector_store.count()
            cached = await self.cache.count()
        except Exception as exc:
            LOG.error("Error getting RAG stats: %s", exc)
            return RAGStats(documentCount=0, error=str(exc))

        return RAGStats(
            documentCount=count,
            collectionName=self.config.vector_store.collection_name,
            vectorSize=self.embedding_provider.dimension(),
            backend=self.vector_store.backend,
            collectionStatus=info.status,
            indexedVectors=info.indexedVectorsCount,
            cachedEmbeddings=cached,
        )

    async def clear_all(self) -> int:
        """
        Remove every stored document and every cached embedding.

        The two stores are independent, so both are cleared explicitly.
        Returns the number of cache entries removed.
        """
        LOG.info("Clearing all documents from RAG system...")
        await self.vector_store.clear()
        removed = await self.cache.clear_all()
        LOG.info("All documents cleared (%d cached embeddings removed)", removed)
        return removed

    async def self_test(self) -> int:
        """
        Embed a probe sentence and run a sample retrieval.

        Returns the number of documents found for the sample query.
        Raises EmbeddingUnavailable when the provider misbehaves.
        """
        vector = await self.embedding_provider.embed(SELF_TEST_TEXT)
        if not vector:
            raise EmbeddingUnavailable("Invalid embedding response")
        LOG.info("Embeddings service working. Vector dimension: %d", len(vector))

        results = await self.retriever.retrieve(SELF_TEST_QUERY, top_k=3, score_threshold=0.5)
        LOG.info("RAG system test completed. Found %d documents for test query.", len(results))
        return len(results)

    async def close(self) -> None:
        await self.embedding_provider.close()
        await self.vector_store.close()
        await self.cache.close()

    async def __aenter__(self) -> "RAGService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
