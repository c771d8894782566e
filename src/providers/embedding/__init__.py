"""Embedding provider implementations.

Two implementations of IEmbeddingProvider (listed in selection order):
    1. OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims).
       Requires an API key; also serves OpenAI-compatible endpoints.
    2. NomicEmbeddingProvider  -- nomic-embed-text via Ollama (768 dims).
       Free and local, but requires a running Ollama server.
"""

from src.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider", "NomicEmbeddingProvider"]
