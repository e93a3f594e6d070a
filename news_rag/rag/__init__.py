"""
RAG (Retrieval-Augmented Generation) subsystem for news context.

Provides the embedding provider abstraction, a vector store with Qdrant,
Chroma and in-memory backends, and the retrieval and ingestion pipelines
wired together by RAGService.
"""

from __future__ import annotations
