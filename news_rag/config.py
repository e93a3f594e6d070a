"""Configuration management for news-rag.

Loads settings from environment variables with sensible defaults.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from news_rag.errors import ConfigurationError

SEVEN_DAYS = 7 * 24 * 60 * 60


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration."""
    api_key: str = ""
    model: str = "jina-embeddings-v3"
    api_url: str = "https://api.jina.ai/v1/embeddings"
    dimension: int = 768
    timeout: float = 30.0
    max_text_length: int = 8192
    max_content_length: int = 6000

    @classmethod
    def from_env(cls) -> "EmbeddingConfig":
        return cls(
            api_key=os.getenv("JINA_API_KEY", ""),
            model=os.getenv("JINA_MODEL", "jina-embeddings-v3"),
            api_url=os.getenv("JINA_API_URL", "https://api.jina.ai/v1/embeddings"),
            dimension=_env_int("EMBEDDING_DIMENSION", 768),
            timeout=_env_float("EMBEDDING_TIMEOUT", 30.0),
            max_text_length=_env_int("MAX_EMBEDDING_TEXT_LENGTH", 8192),
            max_content_length=_env_int("MAX_CONTENT_LENGTH", 6000),
        )


@dataclass
class VectorStoreConfig:
    """Vector store configuration."""
    backend: str = "qdrant"  # "qdrant", "chroma", "memory"
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str = ""
    collection_name: str = "news_articles"
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    probe_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> "VectorStoreConfig":
        return cls(
            backend=os.getenv("VECTOR_STORE_BACKEND", "qdrant"),
            qdrant_url=os.getenv("QDRANT_URL", "http://localhost:6333"),
            qdrant_api_key=os.getenv("QDRANT_API_KEY", ""),
            collection_name=os.getenv("QDRANT_COLLECTION_NAME", "news_articles"),
            chroma_host=os.getenv("CHROMA_HOST", "localhost"),
            chroma_port=_env_int("CHROMA_PORT", 8000),
            probe_timeout=_env_float("VECTOR_STORE_PROBE_TIMEOUT", 5.0),
        )


@dataclass
class CacheConfig:
    """Embedding cache configuration."""
    backend: str = "sqlite"  # "sqlite", "memory"
    path: str = "./data/embedding_cache.db"
    ttl_seconds: int = SEVEN_DAYS

    @classmethod
    def from_env(cls) -> "CacheConfig":
        return cls(
            backend=os.getenv("EMBEDDING_CACHE_BACKEND", "sqlite"),
            path=os.getenv("EMBEDDING_CACHE_PATH", "./data/embedding_cache.db"),
            ttl_seconds=_env_int("EMBEDDING_CACHE_TTL", SEVEN_DAYS),
        )


@dataclass
class RetrievalConfig:
    """Ranking defaults and ingestion pacing."""
    top_k: int = 5
    score_threshold: float = 0.7
    request_interval: float = 0.0  # seconds between provider calls during ingestion

    @classmethod
    def from_env(cls) -> "RetrievalConfig":
        return cls(
            top_k=_env_int("RAG_TOP_K", 5),
            score_threshold=_env_float("RAG_SCORE_THRESHOLD", 0.7),
            request_interval=_env_float("INGEST_REQUEST_INTERVAL", 0.0),
        )


@dataclass
class AppConfig:
    """Top-level application configuration."""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            embedding=EmbeddingConfig.from_env(),
            vector_store=VectorStoreConfig.from_env(),
            cache=CacheConfig.from_env(),
            retrieval=RetrievalConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        errors = []
        if not self.embedding.api_key:
            errors.append("JINA_API_KEY is required")
        if self.embedding.dimension <= 0:
            errors.append("EMBEDDING_DIMENSION must be positive")
        if self.embedding.max_text_length <= 0:
            errors.append("MAX_EMBEDDING_TEXT_LENGTH must be positive")
        if self.vector_store.backend not in ("qdrant", "chroma", "memory"):
            errors.append(f"Unknown VECTOR_STORE_BACKEND: {self.vector_store.backend!r}")
        if self.cache.backend not in ("sqlite", "memory"):
            errors.append(f"Unknown EMBEDDING_CACHE_BACKEND: {self.cache.backend!r}")
        if self.cache.ttl_seconds <= 0:
            errors.append("EMBEDDING_CACHE_TTL must be positive")
        if self.retrieval.top_k < 1:
            errors.append("RAG_TOP_K must be at least 1")
        if not -1.0 <= self.retrieval.score_threshold <= 1.0:
            errors.append("RAG_SCORE_THRESHOLD must be within [-1, 1]")
        return errors
