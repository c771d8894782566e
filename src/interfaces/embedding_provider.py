"""Abstract base class for text-embedding service providers.

Embedding backends do not agree on a response shape: the OpenAI SDK
returns a list of objects with an ``embedding`` attribute, the Ollama
native API returns ``{"embedding": [...]}``, and other clients return a
bare vector.  Providers therefore hand back the *raw* response and
:func:`src.services.ingestion.embedding_client.extract_embedding`
normalizes it in one place.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


# Concrete implementations:
#   OpenAIEmbeddingProvider  -- text-embedding-3-small (requires API key)
#   NomicEmbeddingProvider   -- nomic-embed-text via Ollama (local)
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline."""

    @abstractmethod
    async def embed_raw(self, text: str) -> Any:
        """Request an embedding for *text* and return the service's response as-is.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the expected vector length, or ``0`` when unknown.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``),
        ``768`` (Nomic ``nomic-embed-text``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"nomic-embed-text"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Must not generate an embedding.
        """
