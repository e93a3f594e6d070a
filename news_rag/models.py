from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator


class Document(BaseModel):
    id: str
    content: str
    title: str = ""
    url: str = ""
    publishedAt: Optional[str] = None
    source: str = ""
    summary: str = ""

    @field_validator("id", "content")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("title", "url", "source", "summary", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        # Feed records often carry explicit nulls for optional fields
        return "" if value is None else value

    @field_validator("publishedAt", mode="before")
    @classmethod
    def _published_iso(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def to_payload(self, created_at: str) -> Dict[str, Any]:
        """Metadata stored next to the vector; the id and vector live outside it."""
        return {
            "title": self.title,
            "content": self.content,
            "url": self.url,
            "publishedAt": self.publishedAt,
            "source": self.source,
            "summary": self.summary,
            "createdAt": created_at,
        }


class RetrievedDocument(BaseModel):
    id: str
    score: float
    title: str = ""
    content: str = ""
    url: str = ""
    publishedAt: Optional[str] = None
    source: str = ""
    summary: str = ""

    @classmethod
    def from_payload(cls, doc_id: str, score: float, payload: Dict[str, Any]) -> "RetrievedDocument":
        return cls(
            id=doc_id,
            score=score,
            title=payload.get("title") or "",
            content=payload.get("content") or "",
            url=payload.get("url") or "",
            publishedAt=payload.get("publishedAt"),
            source=payload.get("source") or "",
            summary=payload.get("summary") or "",
        )


class CollectionInfo(BaseModel):
    status: str
    pointsCount: int = 0
    indexedVectorsCount: int = 0
    vectorsCount: int = 0


class RAGStats(BaseModel):
    documentCount: int = 0
    collectionName: str = ""
    vectorSize: int = 0
    backend: str = ""
    collectionStatus: Optional[str] = None
    indexedVectors: int = 0
    cachedEmbeddings: int = 0
    error: Optional[str] = None
