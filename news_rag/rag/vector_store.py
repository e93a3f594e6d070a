"""
Abstract vector store interface with Qdrant, Chroma and in-memory backends.

Networked backends run a startup handshake in ``connect()``. When that
handshake fails, ``connect_vector_store`` hands back an InMemoryVectorStore
instead and the process keeps it for its whole lifetime; nothing re-probes
the networked service. Callers only ever see the VectorStore interface.

All backends share one contract: cosine similarity, ``score >= threshold``,
at most ``top_k`` results, scores non-increasing, and no hits for a
zero-norm query.
"""

from __future__ import annotations

import logging
import math
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from news_rag.config import VectorStoreConfig
from news_rag.errors import BackendUnavailable
from news_rag.models import CollectionInfo

LOG = logging.getLogger("rag.vector_store")

# Namespace for mapping opaque document ids onto Qdrant UUID point ids
POINT_ID_NAMESPACE = uuid.UUID("6ba7b811-9dad-11d1-80b4-00c04fd430c8")


@dataclass
class VectorPoint:
    """A (id, vector, payload) triple held by the store."""

    id: str
    vector: List[float]
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorSearchResult:
    """A single search hit. The stored vector is never part of the payload."""

    id: str
    score: float
    payload: Dict[str, Any] = field(default_factory=dict)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|).

    Returns 0.0 for a zero-norm vector or mismatched dimensions instead of
    raising.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.ndim != 1 or va.shape != vb.shape or va.size == 0:
        return 0.0
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0.0 or nb == 0.0:
        return 0.0
    score = float(np.dot(va, vb) / (na * nb))
    return max(-1.0, min(1.0, score))


class VectorStore(ABC):
    """
    Abstract interface for vector storage and similarity search.

    Upsert is idempotent by id: re-upserting replaces the vector and payload.
    """

    backend: str = "abstract"

    def __init__(self, dimension: Optional[int] = None) -> None:
        self._dim = dimension

    @property
    def dimension(self) -> Optional[int]:
        return self._dim

    async def connect(self) -> None:
        """Startup handshake. Raises BackendUnavailable on failure."""
        pass

    async def upsert(self, point: VectorPoint) -> None:
        """Insert or replace a single point."""
        await self.upsert_batch([point])

    @abstractmethod
    async def upsert_batch(self, points: List[VectorPoint]) -> None:
        """Insert or replace points. All-or-nothing for the given batch."""

    @abstractmethod
    async def search(
        self,
        query_vector: List[float],
        top_k: int = 5,
        score_threshold: float = 0.7,
    ) -> List[VectorSearchResult]:
        """Return up to top_k hits with score >= score_threshold, best first."""

    @abstractmethod
    async def delete_by_id(self, point_id: str) -> None:
        """Remove a point. Missing ids are ignored."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every point."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored points."""

    @abstractmethod
    async def collection_info(self) -> CollectionInfo:
        """Collection status and counters."""

    async def close(self) -> None:
        """Release resources. Override if needed."""
        pass

    @staticmethod
    def _is_zero_query(query_vector: Sequence[float]) -> bool:
        """A zero-norm query has no direction; every backend returns no hits for it."""
        return not any(float(x) for x in query_vector)

    def _check_dimensions(self, points: List[VectorPoint]) -> None:
        if self._dim is None:
            return
        for p in points:
            if len(p.vector) != self._dim:
                raise ValueError(
                    f"Vector for {p.id!r} has dimension {len(p.vector)}, expected {self._dim}"
                )


class InMemoryVectorStore(VectorStore):
    """
    Process-local fallback store with a linear-scan cosine search.

    Points live in an insertion-ordered dict, so equal scores keep
    insertion order. Data does not survive a restart.
    """

    backend = "memory"

    def __init__(self, dimension: Optional[int] = None) -> None:
        super().__init__(dimension)
        self._points: Dict[str, Tuple[List[float], Dict[str, Any]]] = {}

    async def upsert_batch(self, points: List[VectorPoint]) -> None:
        if not points:
            return
        self._check_dimensions(points)

        # Remove first, then insert: re-upserted ids move to the end and never duplicate
        for p in points:
            self._points.pop(p.id, None)
        for p in points:
            self._points[p.id] = ([float(x) for x in p.vector], dict(p.payload))
        LOG.debug("Stored %d point(s) in memory", len(points))

    async def search(
        self,
        query_vector: List[float],
        top_k: int = 5,
        score_threshold: float = 0.7,
    ) -> List[VectorSearchResult]:
        if top_k <= 0 or self._is_zero_query(query_vector):
            return []

        scored = []
        for point_id, (vector, payload) in self._points.items():
            score = cosine_similarity(query_vector, vector)
            if score >= score_threshold:
                scored.append(VectorSearchResult(id=point_id, score=score, payload=dict(payload)))

        # sorted() is stable: ties stay in insertion order
        scored = sorted(scored, key=lambda r: r.score, reverse=True)
        return scored[:top_k]

    async def delete_by_id(self, point_id: str) -> None:
        self._points.pop(point_id, None)

    async def clear(self) -> None:
        self._points.clear()

    async def count(self) -> int:
        return len(self._points)

    async def collection_info(self) -> CollectionInfo:
        n = len(self._points)
        return CollectionInfo(status="yellow", pointsCount=n, indexedVectorsCount=n, vectorsCount=n)


def _secure_url(url: str, api_key: Optional[str]) -> str:
    """Plain HTTP for localhost; HTTPS whenever an API key is sent elsewhere."""
    if "localhost" in url or "127.0.0.1" in url:
        if url.startswith("https://"):
            url = "http://" + url[len("https://"):]
        return url
    if api_key:
        if url.startswith("http://"):
            url = "https://" + url[len("http://"):]
        elif not url.startswith("https://"):
            url = f"https://{url}"
    return url


class QdrantVectorStore(VectorStore):
    """
    Qdrant-backed vector store (networked, ANN-indexed).

    Document ids are opaque strings; Qdrant needs int or UUID point ids, so
    each id maps to a deterministic UUIDv5 and the original id travels in
    the payload under ``doc_id``.

    Args:
        collection_name: Qdrant collection.
        dimension: Fixed vector size used when creating the collection.
        url: Server URL (ignored when ``location`` or ``client`` is given).
        api_key: Optional API key.
        timeout: Request timeout in seconds (connectivity probe included).
        location: ``":memory:"`` for qdrant-client's local mode.
        client: Pre-built ``AsyncQdrantClient``.
    """

    backend = "qdrant"

    def __init__(
        self,
        collection_name: str = "news_articles",
        dimension: int = 768,
        url: str = "http://localhost:6333",
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        location: Optional[str] = None,
        client: Any = None,
    ) -> None:
        super().__init__(dimension)
        from qdrant_client import AsyncQdrantClient

        self._collection = collection_name
        if client is not None:
            self._client = client
        elif location:
            self._client = AsyncQdrantClient(location=location)
        else:
            url = _secure_url(url, api_key)
            self._client = AsyncQdrantClient(url=url, api_key=api_key or None, timeout=math.ceil(timeout))
            LOG.info("Qdrant: client for %s (api key: %s)", url, "yes" if api_key else "no")

    @staticmethod
    def point_id(doc_id: str) -> str:
        return str(uuid.uuid5(POINT_ID_NAMESPACE, doc_id))

    async def connect(self) -> None:
        from qdrant_client.models import Distance, VectorParams

        try:
            response = await self._client.get_collections()
            existing = {c.name for c in response.collections}
            if self._collection not in existing:
                LOG.info("Creating collection: %s (dim=%d, cosine)", self._collection, self._dim)
                await self._client.create_collection(
                    collection_name=self._collection,
                    vectors_config=VectorParams(size=self._dim, distance=Distance.COSINE),
                )
            else:
                LOG.info("Collection %s already exists", self._collection)
        except Exception as exc:
            raise BackendUnavailable(f"Qdrant handshake failed: {exc}") from exc

    async def upsert_batch(self, points: List[VectorPoint]) -> None:
        from qdrant_client.models import PointStruct

        if not points:
            return
        self._check_dimensions(points)

        structs = [
            PointStruct(
                id=self.point_id(p.id),
                vector=[float(x) for x in p.vector],
                payload={**p.payload, "doc_id": p.id},
            )
            for p in points
        ]
        await self._client.upsert(collection_name=self._collection, points=structs, wait=True)
        LOG.debug("Stored %d point(s) in Qdrant", len(points))

    async def search(
        self,
        query_vector: List[float],
        top_k: int = 5,
        score_threshold: float = 0.7,
    ) -> List[VectorSearchResult]:
        if top_k <= 0 or self._is_zero_query(query_vector):
            return []

        response = await self._client.query_points(
            collection_name=self._collection,
            query=[float(x) for x in query_vector],
            limit=top_k,
            score_threshold=score_threshold,
            with_payload=True,
        )
        out: List[VectorSearchResult] = []
        for hit in response.points:
            payload = dict(hit.payload or {})
            doc_id = payload.pop("doc_id", str(hit.id))
            out.append(VectorSearchResult(id=doc_id, score=float(hit.score), payload=payload))
        return out

    async def delete_by_id(self, point_id: str) -> None:
        from qdrant_client.models import PointIdsList

        await self._client.delete(
            collection_name=self._collection,
            points_selector=PointIdsList(points=[self.point_id(point_id)]),
            wait=True,
        )

    async def clear(self) -> None:
        from qdrant_client.models import Distance, VectorParams

        await self._client.delete_collection(collection_name=self._collection)
        await self._client.create_collection(
            collection_name=self._collection,
            vectors_config=VectorParams(size=self._dim, distance=Distance.COSINE),
        )
        LOG.info("Collection %s cleared", self._collection)

    async def count(self) -> int:
        result = await self._client.count(collection_name=self._collection, exact=True)
        return result.count

    async def collection_info(self) -> CollectionInfo:
        info = await self._client.get_collection(collection_name=self._collection)
        points = info.points_count or 0
        status = getattr(info.status, "value", info.status)
        return CollectionInfo(
            status=str(status),
            pointsCount=points,
            indexedVectorsCount=info.indexed_vectors_count or 0,
            vectorsCount=getattr(info, "vectors_count", None) or points,
        )

    async def close(self) -> None:
        await self._client.close()


class ChromaVectorStore(VectorStore):
    """
    Chroma-backed vector store (client/server mode).

    Connects to a running Chroma service through ``chromadb.AsyncHttpClient``
    and keeps the collection in cosine space. Chroma reports distances;
    scores are ``1 - distance`` with threshold and top_k applied here.
    """

    backend = "chroma"

    def __init__(
        self,
        collection_name: str = "news_articles",
        dimension: Optional[int] = None,
        chroma_host: str = "localhost",
        chroma_port: int = 8000,
        client: Any = None,
    ) -> None:
        super().__init__(dimension)
        self._collection_name = collection_name
        self._host = chroma_host
        self._port = chroma_port
        self._client = client
        self._collection: Any = None

    async def connect(self) -> None:
        try:
            if self._client is None:
                import chromadb

                self._client = await chromadb.AsyncHttpClient(host=self._host, port=self._port)
            await self._client.heartbeat()
            self._collection = await self._get_collection()
            LOG.info("Chroma: connected to %s:%d", self._host, self._port)
        except Exception as exc:
            raise BackendUnavailable(f"Chroma handshake failed: {exc}") from exc

    async def _get_collection(self) -> Any:
        return await self._client.get_or_create_collection(
            name=self._collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    async def upsert_batch(self, points: List[VectorPoint]) -> None:
        if not points:
            return
        self._check_dimensions(points)

        # Chroma rejects duplicate ids within one call; last occurrence wins
        latest: Dict[str, VectorPoint] = {}
        for p in points:
            latest[p.id] = p
        await self._collection.upsert(
            ids=list(latest),
            embeddings=[[float(x) for x in p.vector] for p in latest.values()],
            metadatas=[self._sanitize_metadata(p.payload) for p in latest.values()],
        )

    async def search(
        self,
        query_vector: List[float],
        top_k: int = 5,
        score_threshold: float = 0.7,
    ) -> List[VectorSearchResult]:
        if self._is_zero_query(query_vector):
            return []
        n = min(top_k, await self._collection.count())
        if n <= 0:
            return []

        results = await self._collection.query(
            query_embeddings=[[float(x) for x in query_vector]],
            n_results=n,
            include=["metadatas", "distances"],
        )
        out: List[VectorSearchResult] = []
        if results and results["ids"]:
            ids = results["ids"][0]
            distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)
            metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
            for rid, dist, meta in zip(ids, distances, metadatas):
                score = 1.0 - float(dist)  # cosine distance -> cosine similarity
                if score >= score_threshold:
                    out.append(VectorSearchResult(id=rid, score=score, payload=dict(meta or {})))
        return sorted(out, key=lambda r: r.score, reverse=True)[:top_k]

    async def delete_by_id(self, point_id: str) -> None:
        await self._collection.delete(ids=[point_id])

    async def clear(self) -> None:
        await self._client.delete_collection(name=self._collection_name)
        self._collection = await self._get_collection()
        LOG.info("Collection %s cleared", self._collection_name)

    async def count(self) -> int:
        return await self._collection.count()

    async def collection_info(self) -> CollectionInfo:
        n = await self._collection.count()
        return CollectionInfo(status="green", pointsCount=n, indexedVectorsCount=n, vectorsCount=n)

    @staticmethod
    def _sanitize_metadata(meta: Dict[str, Any]) -> Dict[str, Any]:
        """Ensure metadata values are Chroma-compatible (str/int/float/bool)."""
        clean = {}
        for k, v in meta.items():
            if isinstance(v, (str, int, float, bool)):
                clean[k] = v
            elif v is None:
                continue
            else:
                clean[k] = str(v)
        return clean


def build_vector_store(
    backend: str = "qdrant",
    **kwargs: Any,
) -> VectorStore:
    """
    Factory: create a VectorStore of the requested type (not yet connected).

    Args:
        backend: "qdrant", "chroma" or "memory"
        **kwargs: Backend-specific configuration

    Raises:
        ValueError: Unknown backend
    """
    if backend == "qdrant":
        return QdrantVectorStore(**kwargs)
    elif backend == "chroma":
        return ChromaVectorStore(**kwargs)
    elif backend == "memory":
        return InMemoryVectorStore(**kwargs)
    else:
        raise ValueError(
            f"Unknown vector store backend: {backend!r}. "
            f"Supported: 'qdrant', 'chroma', 'memory'"
        )


def _backend_kwargs(config: VectorStoreConfig, dimension: int) -> Dict[str, Any]:
    if config.backend == "qdrant":
        return {
            "collection_name": config.collection_name,
            "dimension": dimension,
            "url": config.qdrant_url,
            "api_key": config.qdrant_api_key or None,
            "timeout": config.probe_timeout,
        }
    if config.backend == "chroma":
        return {
            "collection_name": config.collection_name,
            "dimension": dimension,
            "chroma_host": config.chroma_host,
            "chroma_port": config.chroma_port,
        }
    return {"dimension": dimension}


async def connect_vector_store(config: VectorStoreConfig, dimension: int) -> VectorStore:
    """
    Build the configured backend and run its handshake.

    Any handshake failure (connection refused, auth failure, timeout) yields
    an InMemoryVectorStore instead. The choice is final for the process.

    Raises:
        ValueError: Unknown backend
    """
    if config.backend == "memory":
        return InMemoryVectorStore(dimension=dimension)
    if config.backend not in ("qdrant", "chroma"):
        raise ValueError(
            f"Unknown vector store backend: {config.backend!r}. "
            f"Supported: 'qdrant', 'chroma', 'memory'"
        )

    store: Optional[VectorStore] = None
    try:
        store = build_vector_store(config.backend, **_backend_kwargs(config, dimension))
        await store.connect()
    except Exception as exc:
        LOG.warning(
            "Failed to initialize %s vector store: %s. "
            "Switching to in-memory fallback mode. Data will not persist after restart.",
            config.backend,
            exc,
        )
        if store is not None:
            try:
                await store.close()
            except Exception as close_exc:
                LOG.debug("Ignoring error while closing %s client: %s", config.backend, close_exc)
        return InMemoryVectorStore(dimension=dimension)

    LOG.info("Vector store ready: %s (%s)", config.backend, config.collection_name)
    return store
