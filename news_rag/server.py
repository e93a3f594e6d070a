from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from news_rag.config import AppConfig
from news_rag.rag.service import RAGService
from news_rag.tools import (
    clear_documents_tool,
    ingest_documents_tool,
    ingest_sample_articles_tool,
    rag_stats_tool,
    search_news_tool,
    self_test_tool,
)

LOG = logging.getLogger("news_rag.server")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

try:
    from mcp.server.fastmcp import FastMCP
except ImportError as exc:  # pragma: no cover - dependency is optional at import time
    FastMCP = None
    _IMPORT_ERROR = exc
else:
    _IMPORT_ERROR = None


def _require_server(lifespan: Any = None) -> "FastMCP":
    if FastMCP is None:
        raise SystemExit(
            "The mcp package is required to run the server. "
            "Install it with `pip install 'news-rag[server]'`."
        ) from _IMPORT_ERROR
    return FastMCP("news-rag-server", lifespan=lifespan)


def _validate_required(name: str, value: Optional[str]) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"Missing required field: {name}")


def build_server(config: Optional[AppConfig] = None, service: Optional[RAGService] = None) -> "FastMCP":
    state: Dict[str, Any] = {"service": service, "owned": False, "lock": None}

    async def _service() -> RAGService:
        # Built on first use so the vector-store handshake runs inside the server's event loop
        if state["service"] is not None:
            return state["service"]
        if state["lock"] is None:
            state["lock"] = asyncio.Lock()
        async with state["lock"]:
            # Concurrent first calls wait here and share one service
            if state["service"] is None:
                state["service"] = await RAGService.create(config or AppConfig.from_env())
                state["owned"] = True
        return state["service"]

    @asynccontextmanager
    async def _lifespan(_server: Any) -> AsyncIterator[Dict[str, Any]]:
        try:
            yield {}
        finally:
            if state["owned"] and state["service"] is not None:
                LOG.info("Closing RAG service")
                await state["service"].close()
                state["service"] = None
                state["owned"] = False

    server = _require_server(_lifespan)

    @server.tool(
        description="Retrieve news articles relevant to a natural-language query, ranked by cosine similarity."
    )
    async def search_news(
        query: str,
        topK: Optional[int] = None,
        scoreThreshold: Optional[float] = None,
    ) -> dict:
        _validate_required("query", query)
        return await search_news_tool(await _service(), query, topK=topK, scoreThreshold=scoreThreshold)

    @server.tool(
        description="Embed and store news documents. Each needs an id and non-empty content."
    )
    async def ingest_documents(documents: List[Dict[str, Any]]) -> dict:
        if not documents:
            raise ValueError("Missing required field: documents")
        return await ingest_documents_tool(await _service(), documents)

    @server.tool(description="Store the built-in sample news articles.")
    async def ingest_sample_articles() -> dict:
        return await ingest_sample_articles_tool(await _service())

    @server.tool(description="Return vector store and embedding cache statistics.")
    async def rag_stats() -> dict:
        return await rag_stats_tool(await _service())

    @server.tool(description="Remove every stored document and every cached embedding.")
    async def clear_documents() -> dict:
        return await clear_documents_tool(await _service())

    @server.tool(description="Run the RAG self-test: embed a probe sentence and run a sample query.")
    async def self_test() -> dict:
        return await self_test_tool(await _service())

    return server


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    config = AppConfig.from_env()
    for problem in config.validate():
        LOG.warning("Configuration: %s", problem)
    server = build_server(config)
    server.run()


if __name__ == "__main__":
    main()
