"""
Shared test fixtures and pytest configuration.

Markers:
    @pytest.mark.integration: requires a real networked service (Chroma/Qdrant server)

Run:
    pytest -m "not integration"       # skip all integration tests (fast CI)
"""

from typing import Any, Dict

import pytest

from news_rag.config import AppConfig, CacheConfig, VectorStoreConfig
from news_rag.rag.embedding_provider import MockEmbeddingProvider
from news_rag.rag.ingest import DocumentIngester
from news_rag.rag.search import Retriever
from news_rag.rag.vector_store import InMemoryVectorStore
from news_rag.storage.embedding_cache import InMemoryEmbeddingCache

DIM = 64

AI_CONTENT = (
    "Artificial intelligence researchers announced a breakthrough in large language models this week. "
    "The new AI system learns from fewer examples, reasons over long documents and runs on modest "
    "hardware. Industry analysts say the AI advance could change how machine learning products are "
    "built, from search engines to medical diagnosis tools. The team published its model weights and "
    "evaluation code so other AI labs can reproduce the results and extend the work to new languages."
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: requires external services (Chroma/Qdrant server)")


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_document(doc_id: str, title: str = "", content: str = "", **extra: Any) -> Dict[str, Any]:
    return {
        "id": doc_id,
        "title": title or f"Article {doc_id}",
        "content": content or f"News content for article {doc_id} about markets and technology.",
        "url": f"https://example.com/{doc_id}",
        "publishedAt": "2025-01-01T00:00:00+00:00",
        "source": "Test Wire",
        "summary": extra.pop("summary", ""),
        **extra,
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_provider():
    return MockEmbeddingProvider(dim=DIM)


@pytest.fixture
def memory_cache(clock):
    return InMemoryEmbeddingCache(clock=clock)


@pytest.fixture
def memory_store():
    return InMemoryVectorStore(dimension=DIM)


@pytest.fixture
def ingester(memory_store, mock_provider, memory_cache):
    return DocumentIngester(memory_store, mock_provider, memory_cache)


@pytest.fixture
def retriever(memory_store, mock_provider):
    return Retriever(memory_store, mock_provider)


@pytest.fixture
def memory_config():
    return AppConfig(
        vector_store=VectorStoreConfig(backend="memory"),
        cache=CacheConfig(backend="memory"),
    )
