"""Nomic embedding provider adapter (local/free via Ollama).

Calls Ollama's native ``/api/embeddings`` endpoint over httpx, which
answers with ``{"embedding": [...]}``.  Fully free, runs locally with no
API key required.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_TIMEOUT = 60.0


class NomicEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by ``nomic-embed-text`` served via Ollama.

    Produces 768-dimensional vectors.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._model = settings.ollama_embedding_model or "nomic-embed-text"
        self._dimension = 768 if self._model.startswith("nomic-embed-text") else 0
        self._http_client = http_client

    async def embed_raw(self, text: str) -> Any:
        """POST *text* to Ollama and return the decoded JSON body."""
        payload = {"model": self._model, "prompt": text}
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    f"{self._base_url}/api/embeddings", json=payload, timeout=_TIMEOUT
                )
            else:
                async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
                    response = await client.post(f"{self._base_url}/api/embeddings", json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingError(
                message=f"Ollama embedding HTTP {exc.response.status_code}",
                provider_name=self.get_provider_name(),
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise EmbeddingError(
                message=f"Ollama embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_dimension(self) -> int:
        """Return 768 for nomic-embed-text, 0 for unknown models."""
        return self._dimension

    def get_provider_name(self) -> str:
        return "nomic_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server is reachable."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
