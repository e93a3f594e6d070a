"""Tests for document ingestion: validation, embedding cache use, best-effort batches."""

import pytest

from news_rag.errors import InvalidDocumentError, UpstreamError
from news_rag.models import Document
from news_rag.rag import ingest as ingest_module
from news_rag.rag.embedding_provider import MockEmbeddingProvider
from news_rag.rag.ingest import DocumentIngester, validate_document
from news_rag.rag.text import create_embedding_text, text_fingerprint
from news_rag.rag.vector_store import InMemoryVectorStore

from conftest import DIM, make_document


class CountingStore(InMemoryVectorStore):
    def __init__(self):
        super().__init__(dimension=DIM)
        self.batch_calls = []

    async def upsert_batch(self, points):
        self.batch_calls.append([p.id for p in points])
        await super().upsert_batch(points)


class TestValidateDocument:
    def test_dict_becomes_document(self):
        doc = validate_document(make_document("d1"))
        assert isinstance(doc, Document)
        assert doc.id == "d1"

    def test_null_optional_fields_accepted(self):
        doc = validate_document(
            {"id": "n1", "content": "Some news body", "title": None, "summary": None, "url": None, "source": None}
        )
        assert (doc.title, doc.summary, doc.url, doc.source) == ("", "", "", "")
        payload = doc.to_payload("2025-01-01T00:00:00+00:00")
        assert payload["title"] == "" and payload["url"] == ""

    @pytest.mark.asyncio
    async def test_null_optional_fields_are_stored(self, ingester, memory_store):
        stored = await ingester.ingest_batch([
            {"id": "n1", "content": "Some news body", "title": None, "summary": None, "url": None, "source": None},
            {"id": "n2", "content": "Other news body"},
        ])
        assert stored == 2
        assert await memory_store.count() == 2
        assert await ingester.ingest_one({"id": "n3", "content": "Third body", "title": None}) is True

    def test_document_passes_through(self):
        doc = Document(id="d1", content="body")
        assert validate_document(doc) is doc

    @pytest.mark.parametrize(
        "raw",
        [
            {"id": "", "content": "body"},
            {"id": "d1", "content": "   "},
            {"content": "no id"},
            {"id": "d1"},
        ],
    )
    def test_invalid_raises(self, raw):
        with pytest.raises(InvalidDocumentError):
            validate_document(raw)


class TestIngestOne:
    @pytest.mark.asyncio
    async def test_stores_document(self, ingester, memory_store):
        assert await ingester.ingest_one(make_document("d1")) is True
        assert await memory_store.count() == 1

    @pytest.mark.asyncio
    async def test_payload_has_metadata_and_no_vector(self, ingester, memory_store):
        await ingester.ingest_one(make_document("d1", title="Headline", summary="Short"))
        hits = await memory_store.search([1.0] * DIM, top_k=1, score_threshold=-1.0)
        payload = hits[0].payload
        assert payload["title"] == "Headline"
        assert payload["summary"] == "Short"
        assert payload["url"] == "https://example.com/d1"
        assert payload["publishedAt"] == "2025-01-01T00:00:00+00:00"
        assert payload["createdAt"]
        assert "vector" not in payload
        assert "id" not in payload

    @pytest.mark.asyncio
    async def test_invalid_document_raises(self, ingester, memory_store):
        with pytest.raises(InvalidDocumentError):
            await ingester.ingest_one({"id": "d1", "content": ""})
        assert await memory_store.count() == 0

    @pytest.mark.asyncio
    async def test_provider_failure_raises_and_stores_nothing(self, memory_store, memory_cache):
        provider = MockEmbeddingProvider(dim=DIM, fail_on=lambda t: True)
        ingester = DocumentIngester(memory_store, provider, memory_cache)
        with pytest.raises(UpstreamError):
            await ingester.ingest_one(make_document("d1"))
        assert await memory_store.count() == 0
        assert await memory_cache.count() == 0

    @pytest.mark.asyncio
    async def test_reingest_is_idempotent(self, ingester, memory_store):
        await ingester.ingest_one(make_document("d1"))
        await ingester.ingest_one(make_document("d1"))
        assert await memory_store.count() == 1


class TestEmbeddingCacheUse:
    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider(self, ingester, mock_provider):
        await ingester.ingest_one(make_document("d1"))
        await ingester.ingest_one(make_document("d1"))
        assert mock_provider.call_count == 1

    @pytest.mark.asyncio
    async def test_vector_written_through_with_fingerprint(self, ingester, mock_provider, memory_cache):
        raw = make_document("d1")
        await ingester.ingest_one(raw)

        text = create_embedding_text(Document(**raw))
        fingerprint = text_fingerprint(text, mock_provider.model_name)
        cached = await memory_cache.get("d1", fingerprint=fingerprint)
        assert cached == await mock_provider.embed(text)

    @pytest.mark.asyncio
    async def test_changed_content_reembeds(self, ingester, mock_provider, memory_store):
        await ingester.ingest_one(make_document("d1", content="Original story text."))
        await ingester.ingest_one(make_document("d1", content="Corrected story text with new facts."))
        assert mock_provider.call_count == 2
        assert await memory_store.count() == 1

    @pytest.mark.asyncio
    async def test_expired_entry_reembeds(self, ingester, mock_provider, clock):
        await ingester.ingest_one(make_document("d1"))
        clock.advance(7 * 24 * 3600 + 1)
        await ingester.ingest_one(make_document("d1"))
        assert mock_provider.call_count == 2

    @pytest.mark.asyncio
    async def test_custom_ttl(self, memory_store, mock_provider, memory_cache, clock):
        ingester = DocumentIngester(memory_store, mock_provider, memory_cache, cache_ttl=60)
        await ingester.ingest_one(make_document("d1"))
        clock.advance(61)
        await ingester.ingest_one(make_document("d1"))
        assert mock_provider.call_count == 2


class TestIngestBatch:
    @pytest.mark.asyncio
    async def test_failed_document_is_skipped(self, memory_cache):
        store = CountingStore()
        provider = MockEmbeddingProvider(dim=DIM, fail_on=lambda t: "failme" in t.lower())
        ingester = DocumentIngester(store, provider, memory_cache)

        docs = [make_document(f"d{i}") for i in range(1, 6)]
        docs[2]["content"] = "FAILME this document breaks the embedding service"

        stored = await ingester.ingest_batch(docs)

        assert stored == 4
        assert await store.count() == 4
        assert store.batch_calls == [["d1", "d2", "d4", "d5"]]

    @pytest.mark.asyncio
    async def test_invalid_document_is_skipped(self, memory_cache):
        store = CountingStore()
        ingester = DocumentIngester(store, MockEmbeddingProvider(dim=DIM), memory_cache)
        docs = [make_document("d1"), {"id": "bad", "content": ""}, "not a document", make_document("d2")]
        assert await ingester.ingest_batch(docs) == 2
        assert store.batch_calls == [["d1", "d2"]]

    @pytest.mark.asyncio
    async def test_all_failures_store_nothing(self, memory_cache):
        store = CountingStore()
        provider = MockEmbeddingProvider(dim=DIM, fail_on=lambda t: True)
        ingester = DocumentIngester(store, provider, memory_cache)
        assert await ingester.ingest_batch([make_document("d1"), make_document("d2")]) == 0
        assert store.batch_calls == []

    @pytest.mark.asyncio
    async def test_empty_batch(self, ingester, mock_provider):
        assert await ingester.ingest_batch([]) == 0
        assert mock_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_accepts_document_models(self, ingester, memory_store):
        docs = [Document(id="m1", content="model body"), Document(id="m2", content="second body")]
        assert await ingester.ingest_batch(docs) == 2
        assert await memory_store.count() == 2

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, memory_cache):
        class BrokenStore(InMemoryVectorStore):
            async def upsert_batch(self, points):
                raise RuntimeError("store offline")

        ingester = DocumentIngester(BrokenStore(), MockEmbeddingProvider(dim=DIM), memory_cache)
        with pytest.raises(RuntimeError, match="store offline"):
            await ingester.ingest_batch([make_document("d1")])


class TestThrottle:
    @pytest.mark.asyncio
    async def test_sleeps_between_provider_calls(self, memory_store, mock_provider, memory_cache, monkeypatch):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr(ingest_module.asyncio, "sleep", fake_sleep)
        ingester = DocumentIngester(memory_store, mock_provider, memory_cache, request_interval=10.0)
        await ingester.ingest_batch([make_document("d1"), make_document("d2"), make_document("d3")])

        assert len(sleeps) == 2
        assert all(0 < s <= 10.0 for s in sleeps)

    @pytest.mark.asyncio
    async def test_cache_hits_do_not_sleep(self, memory_store, mock_provider, memory_cache, monkeypatch):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr(ingest_module.asyncio, "sleep", fake_sleep)
        ingester = DocumentIngester(memory_store, mock_provider, memory_cache, request_interval=10.0)
        await ingester.ingest_one(make_document("d1"))
        await ingester.ingest_one(make_document("d1"))
        assert sleeps == []
