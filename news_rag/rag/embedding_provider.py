"""
Embedding provider abstraction with a Jina HTTP backend.

Uses httpx for async HTTP. One outbound call per embed() invocation;
batches of texts go out in a single request. Retry policy belongs to the
caller: the provider maps transport and HTTP failures onto the typed
EmbeddingUnavailable family and raises.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Union

import httpx

from news_rag.config import EmbeddingConfig
from news_rag.errors import (
    AuthError,
    ConfigurationError,
    EmbeddingTimeoutError,
    NetworkError,
    UpstreamError,
)

LOG = logging.getLogger("rag.embedding_provider")

Vector = List[float]
TextInput = Union[str, Sequence[str]]


def _valid_texts(texts: TextInput) -> List[str]:
    items = [texts] if isinstance(texts, str) else list(texts)
    valid = [t for t in items if isinstance(t, str) and t.strip()]
    if not valid:
        raise ConfigurationError("No valid text inputs provided for embedding generation")
    if len(valid) != len(items):
        LOG.warning("Dropped %d empty or non-text embedding inputs", len(items) - len(valid))
    return valid


class EmbeddingProvider(ABC):
    """Abstract interface for text -> embedding vector conversion."""

    async def embed(self, texts: TextInput) -> Union[Vector, List[Vector]]:
        """
        Embed one text or a batch of texts.

        A single string returns a single vector; a sequence returns one
        vector per valid (non-empty) input. Raises ConfigurationError when
        no valid input remains.
        """
        valid = _valid_texts(texts)
        vectors = await self._embed_batch(valid)
        if isinstance(texts, str):
            return vectors[0]
        return vectors

    @abstractmethod
    async def _embed_batch(self, texts: List[str]) -> List[Vector]:
        """Embed a non-empty list of validated texts in one call."""
        ...

    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimensionality."""
        ...

    @property
    def model_name(self) -> str:
        return type(self).__name__

    async def close(self) -> None:
        """Release resources (e.g., HTTP clients). Override if needed."""
        pass


class JinaEmbeddingProvider(EmbeddingProvider):
    """
    Jina embeddings API backend.

    Sends ``{"model", "input", "dimensions"}`` to ``POST /v1/embeddings``
    with a bearer token and a bounded timeout (30s by default).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "jina-embeddings-v3",
        api_url: str = "https://api.jina.ai/v1/embeddings",
        dimension: int = 768,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("JINA_API_KEY is not configured")

        self._api_key = api_key
        self._model = model
        self._api_url = api_url
        self._dim = dimension
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls, config: EmbeddingConfig) -> "JinaEmbeddingProvider":
        return cls(
            api_key=config.api_key,
            model=config.model,
            api_url=config.api_url,
            dimension=config.dimension,
            timeout=config.timeout,
        )

    @property
    def model_name(self) -> str:
        return self._model

    def dimension(self) -> int:
        return self._dim

    async def _embed_batch(self, texts: List[str]) -> List[Vector]:
        LOG.debug("Requesting %d embedding(s) from %s", len(texts), self._model)
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        body = {"model": self._model, "input": texts, "dimensions": self._dim}

        try:
            resp = await self._client.post(self._api_url, headers=headers, json=body)
        except httpx.TimeoutException as exc:
            raise EmbeddingTimeoutError(f"Embedding request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(
                f"No response received from embedding API - check network connection: {exc}"
            ) from exc

        if resp.status_code in (401, 403):
            raise AuthError(f"Embedding API rejected credential: {resp.status_code} - {self._error_message(resp)}")
        if not resp.is_success:
            raise UpstreamError(resp.status_code, self._error_message(resp))

        try:
            data = resp.json()
            items = data["data"]
            if any("index" in item for item in items):
                items = sorted(items, key=lambda item: item.get("index", 0))
            vectors = [[float(x) for x in item["embedding"]] for item in items]
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamError(resp.status_code, f"Invalid response from embedding API: {exc}") from exc

        if len(vectors) != len(texts):
            raise UpstreamError(
                resp.status_code,
                f"Expected {len(texts)} embeddings, received {len(vectors)}",
            )
        LOG.debug("Received %d embedding(s), dim=%d", len(vectors), len(vectors[0]) if vectors else 0)
        return vectors

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        """Pull the most descriptive message out of an error body."""
        try:
            payload = resp.json()
        except ValueError:
            return resp.text or resp.reason_phrase
        if isinstance(payload, dict):
            for key in ("message", "detail", "error"):
                if payload.get(key):
                    return str(payload[key])
        return str(payload)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_TOKEN_RE = re.compile(r"[a-z0-9]+")


class MockEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic embedding provider for tests and offline demos.

    Hashes lowercase word tokens into ``dim`` buckets, so texts sharing
    words get similar (non-negative) vectors. Counts calls, records inputs,
    and raises on any text matched by ``fail_on``.
    """

    def __init__(
        self,
        dim: int = 768,
        fail_on: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self._dim = dim
        self._fail_on = fail_on
        self.call_count = 0
        self.inputs: List[str] = []

    def dimension(self) -> int:
        return self._dim

    async def _embed_batch(self, texts: List[str]) -> List[Vector]:
        self.call_count += 1
        self.inputs.extend(texts)
        for text in texts:
            if self._fail_on is not None and self._fail_on(text):
                raise UpstreamError(500, f"mock failure for input {text[:40]!r}")
        return [self._text_to_vec(t) for t in texts]

    def _text_to_vec(self, text: str) -> Vector:
        vec = [0.0] * self._dim
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            vec[int.from_bytes(digest[:4], "big") % self._dim] += 1.0
        norm = math.sqrt(sum(x * x for x in vec))
        if norm > 0:
            vec = [x / norm for x in vec]
        return vec
