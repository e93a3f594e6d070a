"""
Error taxonomy for the news RAG core.

Every error raised across a component boundary derives from NewsRAGError.
Provider call failures share the EmbeddingUnavailable base so retrieval
callers can catch one type and still match the concrete cause.
"""

from __future__ import annotations


class NewsRAGError(Exception):
    """Base exception for the news RAG core."""

    pass


class ConfigurationError(NewsRAGError):
    """Missing credential, malformed setting, or no usable input."""

    pass


class InvalidDocumentError(NewsRAGError):
    """A document failed validation at the ingestion boundary."""

    pass


class BackendUnavailable(NewsRAGError):
    """The networked vector backend failed its startup handshake."""

    pass


class EmbeddingUnavailable(NewsRAGError):
    """The embedding provider could not produce vectors."""

    pass


class AuthError(EmbeddingUnavailable):
    """The embedding provider rejected the credential."""

    pass


class UpstreamError(EmbeddingUnavailable):
    """The embedding provider answered with a non-2xx status or a malformed body."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"Embedding API error: {status} - {message}")


class NetworkError(EmbeddingUnavailable):
    """No response was received from the embedding provider."""

    pass


class EmbeddingTimeoutError(EmbeddingUnavailable):
    """The embedding call exceeded its bounded wait."""

    pass
