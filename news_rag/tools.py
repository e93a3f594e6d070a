"""
Tool implementations behind the MCP server.

Each tool takes a RAGService and plain JSON-friendly arguments and returns
a JSON-serializable dict. server.py only validates inputs and wires these
to FastMCP.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from news_rag.rag.service import RAGService

LOG = logging.getLogger("news_rag.tools")


def _json_payload(model) -> dict:
    return model.model_dump(mode="json")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def search_news_tool(
    service: RAGService,
    query: str,
    topK: Optional[int] = None,
    scoreThreshold: Optional[float] = None,
) -> Dict[str, Any]:
    docs = await service.retrieve(query, top_k=topK, score_threshold=scoreThreshold)
    return {
        "query": query,
        "results": [_json_payload(d) for d in docs],
        "count": len(docs),
    }


async def ingest_documents_tool(service: RAGService, documents: List[Dict[str, Any]]) -> Dict[str, Any]:
    stored = await service.ingest_batch(documents)
    stats = await service.stats()
    return {
        "message": "Ingestion completed",
        "articlesSubmitted": len(documents),
        "articlesStored": stored,
        "stats": _json_payload(stats),
        "timestamp": _timestamp(),
    }


async def ingest_sample_articles_tool(service: RAGService) -> Dict[str, Any]:
    stored = await service.ingest_samples()
    stats = await service.stats()
    return {
        "message": "Sample ingestion completed",
        "articlesStored": stored,
        "stats": _json_payload(stats),
        "timestamp": _timestamp(),
    }


async def rag_stats_tool(service: RAGService) -> Dict[str, Any]:
    stats = await service.stats()
    return {"rag": _json_payload(stats), "timestamp": _timestamp()}


async def clear_documents_tool(service: RAGService) -> Dict[str, Any]:
    removed = await service.clear_all()
    return {
        "message": "All documents cleared",
        "cachedEmbeddingsRemoved": removed,
        "timestamp": _timestamp(),
    }


async def self_test_tool(service: RAGService) -> Dict[str, Any]:
    found = await service.self_test()
    return {"message": "RAG system test completed", "documentsFound": found, "timestamp": _timestamp()}
