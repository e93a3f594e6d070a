"""
Retrieval pipeline: embed query -> vector top-k above threshold -> ranked documents.

Query embeddings are never cached. Provider failures propagate unchanged;
no partial or synthesized results are returned. Read-only with respect to
storage.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from news_rag.config import RetrievalConfig
from news_rag.models import RetrievedDocument
from news_rag.rag.embedding_provider import EmbeddingProvider
from news_rag.rag.vector_store import VectorStore

LOG = logging.getLogger("rag.search")


class Retriever:
    """
    Query-time retrieval over the vector store.

    Usage::

        retriever = Retriever(vector_store, embedding_provider)
        docs = await retriever.retrieve("What's new in AI?", top_k=3)
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider,
        config: Optional[RetrievalConfig] = None,
    ) -> None:
        self._vs = vector_store
        self._embed = embedding_provider
        self._config = config or RetrievalConfig()

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
        score_threshold: Optional[float] = None,
    ) -> List[RetrievedDocument]:
        """
        Return documents relevant to the query, best first.

        Args:
            query: Natural-language query
            top_k: Maximum number of results (default: config.top_k)
            score_threshold: Minimum cosine similarity (default: config.score_threshold)

        Raises:
            ValueError: Empty query or top_k < 1
            EmbeddingUnavailable: The query could not be embedded
        """
        if not isinstance(query, str) or not query.strip():
            raise ValueError("query must be a non-empty string")
        if top_k is None:
            top_k = self._config.top_k
        if score_threshold is None:
            score_threshold = self._config.score_threshold
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")

        LOG.info("Processing query: %r", query)
        query_vec = await self._embed.embed(query)
        LOG.debug("Query embedding generated (dimension: %d)", len(query_vec))

        hits = await self._vs.search(query_vec, top_k=top_k, score_threshold=score_threshold)

        results = [RetrievedDocument.from_payload(h.id, h.score, h.payload) for h in hits]
        LOG.info("Found %d relevant documents", len(results))
        for i, doc in enumerate(results, 1):
            LOG.debug("  %d. %s (score: %.3f)", i, doc.title or doc.id, doc.score)
        return results
