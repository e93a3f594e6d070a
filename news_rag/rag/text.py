"""
Text preparation for embedding calls.

Embedding text is derived deterministically from a document so the same
document always maps to the same provider input (and the same cache
fingerprint).
"""

from __future__ import annotations

import hashlib
import re

from news_rag.models import Document

TRUNCATION_MARKER = "..."
DEFAULT_MAX_LENGTH = 8192
DEFAULT_MAX_CONTENT_LENGTH = 6000

_WHITESPACE_RE = re.compile(r"\s+")


def prepare_text(text: object, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Collapse whitespace, drop non-printable characters, truncate to max_length."""
    if not isinstance(text, str) or not text:
        return ""

    clean = _WHITESPACE_RE.sub(" ", text)
    clean = "".join(ch for ch in clean if ch.isprintable()).strip()

    if len(clean) > max_length:
        clean = clean[:max_length] + TRUNCATION_MARKER
    return clean


def create_embedding_text(
    document: Document,
    max_length: int = DEFAULT_MAX_LENGTH,
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
) -> str:
    """Build the provider input for a document from its title, summary and content."""
    parts = []
    if document.title:
        parts.append(f"Title: {document.title}")
    if document.summary:
        parts.append(f"Summary: {document.summary}")
    if document.content:
        content = document.content
        if len(content) > max_content_length:
            content = content[:max_content_length] + TRUNCATION_MARKER
        parts.append(f"Content: {content}")

    return prepare_text("\n\n".join(parts), max_length=max_length)


def text_fingerprint(text: str, model: str = "") -> str:
    """Stable hash of (model, text) used to detect stale cached embeddings."""
    h = hashlib.sha256()
    h.update(model.encode("utf-8"))
    h.update(b"\0")
    h.update(text.encode("utf-8"))
    return h.hexdigest()
