"""
Document embedding cache.

Maps a document id to its previously computed vector with a time-to-live.
Two backends:
- SQLiteEmbeddingCache (persistent, stdlib sqlite3, WAL mode)
- InMemoryEmbeddingCache (process-local)

Entries carry an optional content fingerprint. A lookup with a fingerprint
that differs from the stored one is a miss, so a document whose content
changed under the same id is re-embedded instead of served stale.

The cache is never consulted for query embeddings and is independent of
the vector store: clearing one leaves the other untouched.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from news_rag.config import SEVEN_DAYS, CacheConfig

LOG = logging.getLogger("storage.embedding_cache")

Clock = Callable[[], float]


class EmbeddingCache(ABC):
    """Abstract key-value store: document id -> embedding vector, with expiry."""

    def __init__(self, default_ttl: int = SEVEN_DAYS, clock: Clock = time.time) -> None:
        self._default_ttl = default_ttl
        self._clock = clock

    @abstractmethod
    async def get(self, document_id: str, fingerprint: Optional[str] = None) -> Optional[List[float]]:
        """Return the cached vector, or None when absent, expired or stale. Never raises."""

    @abstractmethod
    async def put(
        self,
        document_id: str,
        vector: List[float],
        ttl: Optional[int] = None,
        fingerprint: Optional[str] = None,
    ) -> None:
        """Store a vector, overwriting any entry for the id and resetting its expiry."""

    @abstractmethod
    async def clear_all(self) -> int:
        """Remove every entry. Returns the number removed."""

    @abstractmethod
    async def count(self) -> int:
        """Number of live (unexpired) entries."""

    async def close(self) -> None:
        """Release resources. Override if needed."""
        pass

    def _expiry(self, ttl: Optional[int]) -> float:
        return self._clock() + (ttl if ttl is not None else self._default_ttl)

    @staticmethod
    def _is_stale(stored: Optional[str], requested: Optional[str]) -> bool:
        return requested is not None and stored != requested


@dataclass
class _Entry:
    vector: List[float]
    fingerprint: Optional[str]
    expires_at: float


class InMemoryEmbeddingCache(EmbeddingCache):
    """Process-local cache. Contents are lost on restart."""

    def __init__(self, default_ttl: int = SEVEN_DAYS, clock: Clock = time.time) -> None:
        super().__init__(default_ttl, clock)
        self._entries: Dict[str, _Entry] = {}

    async def get(self, document_id: str, fingerprint: Optional[str] = None) -> Optional[List[float]]:
        entry = self._entries.get(document_id)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[document_id]
            return None
        if self._is_stale(entry.fingerprint, fingerprint):
            return None
        return list(entry.vector)

    async def put(
        self,
        document_id: str,
        vector: List[float],
        ttl: Optional[int] = None,
        fingerprint: Optional[str] = None,
    ) -> None:
        self._entries[document_id] = _Entry(list(vector), fingerprint, self._expiry(ttl))

    async def clear_all(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        LOG.info("Cleared %d cached embeddings", removed)
        return removed

    async def count(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if e.expires_at > now)


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS embeddings (
    document_id TEXT PRIMARY KEY,
    vector_json TEXT NOT NULL,
    fingerprint TEXT,
    expires_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_embeddings_expiry ON embeddings(expires_at);
"""


class SQLiteEmbeddingCache(EmbeddingCache):
    """
    SQLite-backed persistent cache.

    Vectors are stored as JSON text. Expired rows are ignored on read and
    purged opportunistically on write.
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        default_ttl: int = SEVEN_DAYS,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(default_ttl, clock)
        db_path = str(db_path)
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA_SQL)
        self._conn.commit()
        LOG.info("Embedding cache: sqlite at %s", db_path)

    async def get(self, document_id: str, fingerprint: Optional[str] = None) -> Optional[List[float]]:
        try:
            row = self._conn.execute(
                "SELECT vector_json, fingerprint FROM embeddings WHERE document_id = ? AND expires_at > ?",
                (document_id, self._clock()),
            ).fetchone()
        except sqlite3.Error as exc:
            LOG.error("Error getting cached embedding for %s: %s", document_id, exc)
            return None

        if row is None:
            return None
        vector_json, stored_fp = row
        if self._is_stale(stored_fp, fingerprint):
            LOG.debug("Cached embedding for %s is stale (content changed)", document_id)
            return None
        try:
            return [float(x) for x in json.loads(vector_json)]
        except (ValueError, TypeError) as exc:
            LOG.warning("Discarding malformed cached embedding for %s: %s", document_id, exc)
            return None

    async def put(
        self,
        document_id: str,
        vector: List[float],
        ttl: Optional[int] = None,
        fingerprint: Optional[str] = None,
    ) -> None:
        now = self._clock()
        with self._conn:
            self._conn.execute("DELETE FROM embeddings WHERE expires_at <= ?", (now,))
            self._conn.execute(
                "INSERT OR REPLACE INTO embeddings (document_id, vector_json, fingerprint, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (document_id, json.dumps(list(vector)), fingerprint, self._expiry(ttl)),
            )

    async def clear_all(self) -> int:
        with self._conn:
            cur = self._conn.execute("DELETE FROM embeddings")
        removed = cur.rowcount
        LOG.info("Cleared %d cached embeddings", removed)
        return removed

    async def count(self) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM embeddings WHERE expires_at > ?", (self._clock(),)
        ).fetchone()
        return int(row[0])

    async def close(self) -> None:
        self._conn.close()


def build_embedding_cache(config: CacheConfig) -> EmbeddingCache:
    """
    Factory: create an EmbeddingCache from configuration.

    Raises:
        ValueError: Unknown backend
    """
    if config.backend == "sqlite":
        return SQLiteEmbeddingCache(config.path, default_ttl=config.ttl_seconds)
    elif config.backend == "memory":
        return InMemoryEmbeddingCache(default_ttl=config.ttl_seconds)
    else:
        raise ValueError(
            f"Unknown embedding cache backend: {config.backend!r}. "
            f"Supported: 'sqlite', 'memory'"
        )
