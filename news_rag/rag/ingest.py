"""
Document ingestion: validate -> embedding text -> cache or provider -> vector store.

Per document the embedding cache is checked first (keyed by document id,
guarded by a content fingerprint). On a miss the provider is called and
the vector is written through to the cache before the point is built.

Batch ingestion is best-effort: documents are processed one after another,
a document that fails validation or embedding is logged and left out, and
the survivors go to the store in a single upsert_batch call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from news_rag.errors import InvalidDocumentError
from news_rag.models import Document
from news_rag.rag.embedding_provider import EmbeddingProvider
from news_rag.rag.text import (
    DEFAULT_MAX_CONTENT_LENGTH,
    DEFAULT_MAX_LENGTH,
    create_embedding_text,
    text_fingerprint,
)
from news_rag.rag.vector_store import VectorPoint, VectorStore
from news_rag.storage.embedding_cache import EmbeddingCache

LOG = logging.getLogger("rag.ingest")

DocumentLike = Union[Document, Dict[str, Any]]


def validate_document(document: DocumentLike) -> Document:
    """Coerce a dict (or pass through a Document), requiring a non-empty id and content."""
    if isinstance(document, Document):
        return document
    try:
        return Document.model_validate(document)
    except ValidationError as exc:
        doc_id = document.get("id") if isinstance(document, dict) else None
        raise InvalidDocumentError(f"Invalid document {doc_id!r}: {exc}") from exc


class DocumentIngester:
    """
    Turns documents into stored vector points.

    Args:
        vector_store: Destination store.
        embedding_provider: Provider used on cache misses.
        cache: Document embedding cache.
        max_text_length: Hard cap on provider input length.
        max_content_length: Cap on the content part of the embedding text.
        cache_ttl: Seconds to keep cached vectors (None = cache default).
        request_interval: Minimum seconds between outbound provider calls.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider,
        cache: EmbeddingCache,
        max_text_length: int = DEFAULT_MAX_LENGTH,
        max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
        cache_ttl: Optional[int] = None,
        request_interval: float = 0.0,
    ) -> None:
        self._vs = vector_store
        self._embed = embedding_provider
        self._cache = cache
        self._max_text_length = max_text_length
        self._max_content_length = max_content_length
        self._cache_ttl = cache_ttl
        self._min_interval = request_interval
        self._last_request_time = 0.0

    async def embed_document(self, document: Document) -> List[float]:
        """Return the document's vector from cache, or from the provider with write-through."""
        text = create_embedding_text(
            document,
            max_length=self._max_text_length,
            max_content_length=self._max_content_length,
        )
        fingerprint = text_fingerprint(text, self._embed.model_name)

        cached = await self._cache.get(document.id, fingerprint=fingerprint)
        if cached is not None:
            LOG.debug("Using cached embedding for: %s", document.title or document.id)
            return cached

        await self._throttle()
        try:
            vector = await self._embed.embed(text)
        finally:
            self._last_request_time = time.monotonic()

        await self._cache.put(document.id, vector, ttl=self._cache_ttl, fingerprint=fingerprint)
        LOG.debug("Generated and cached embedding for: %s", document.title or document.id)
        return vector

    async def ingest_one(self, document: DocumentLike) -> bool:
        """
        Embed and store a single document.

        Raises:
            InvalidDocumentError: Missing id or content
            EmbeddingUnavailable: Provider failure
        """
        doc = validate_document(document)
        vector = await self.embed_document(doc)
        await self._vs.upsert(self._to_point(doc, vector))
        LOG.info("Document stored: %s", doc.title or doc.id)
        return True

    async def ingest_batch(self, documents: Iterable[DocumentLike]) -> int:
        """
        Embed documents one by one and store the successful ones in one call.

        Returns the number of documents embedded and queued for storage.
        A failure of the final store call propagates.
        """
        documents = list(documents)
        LOG.info("Processing %d documents...", len(documents))

        points: List[VectorPoint] = []
        for index, raw in enumerate(documents):
            label = self._label(raw, index)
            try:
                doc = validate_document(raw)
                vector = await self.embed_document(doc)
            except Exception as exc:
                LOG.error("Failed to process document %s: %s", label, exc)
                continue
            points.append(self._to_point(doc, vector))
            LOG.debug("Processed: %s", label)

        if points:
            await self._vs.upsert_batch(points)
            LOG.info("Successfully stored %d of %d documents", len(points), len(documents))
        return len(points)

    async def _throttle(self) -> None:
        if self._min_interval <= 0:
            return
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)

    @staticmethod
    def _to_point(document: Document, vector: List[float]) -> VectorPoint:
        created_at = datetime.now(timezone.utc).isoformat()
        return VectorPoint(id=document.id, vector=list(vector), payload=document.to_payload(created_at))

    @staticmethod
    def _label(document: DocumentLike, index: int) -> str:
        if isinstance(document, Document):
            return repr(document.title or document.id)
        if isinstance(document, dict):
            return repr(document.get("title") or document.get("id") or f"#{index}")
        return f"#{index}"
