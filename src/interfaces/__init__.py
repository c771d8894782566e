"""Public interface definitions for all external collaborators.

Every external service the ingestion engine touches is reached through
the abstract base classes in this package.  Concrete adapters live in
``src/providers/`` and are wired together in ``src/main.py``; tests
inject in-memory fakes instead.

    Interface            ->  Concrete implementations (in src/providers/)
    ------------------------------------------------------------------
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    ILLMProvider         ->  OpenAILLMProvider, AnthropicLLMProvider
    IImageDescriber      ->  LLMImageDescriber
    IPageFetcher         ->  HttpPageFetcher
    IChunkStore          ->  SQLiteChunkStore
"""

from src.interfaces.chunk_store import IChunkStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.image_describer import IImageDescriber
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.page_fetcher import IPageFetcher

__all__ = [
    "IChunkStore",
    "IEmbeddingProvider",
    "IImageDescriber",
    "ILLMProvider",
    "IPageFetcher",
]
