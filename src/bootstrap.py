"""Provider selection and dependency assembly.

Shared by the FastAPI application (``src/main.py``) and the CLI
(``src/cli/ingest.py``) so both index with the same embedding model.
A corpus embedded with one model cannot be searched with another, so
selection order matters and must not differ between entry points.

Selection order:
    Embedding:  OpenAI / OpenAI-compatible (API key set) -> Nomic via Ollama
    Vision LLM: Anthropic -> OpenAI -> none (post images are not described)
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.config.loader import resolve_crawl_urls
from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.providers.chunk_store.sqlite_chunk_store import SQLiteChunkStore
from src.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.fetch.http_page_fetcher import HttpPageFetcher
from src.providers.image.llm_image_describer import LLMImageDescriber
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.content_normalizer import ContentNormalizer
from src.services.ingestion.crawl_scheduler import CrawlScheduler
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.index_writer import IndexWriter
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.post_trigger import PostChangeHandler
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the first available embedding provider.

    Raises
    ------
    ConfigurationError
        If neither an OpenAI key nor a reachable Ollama server is configured.
    """
    if app_settings.openai_api_key:
        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    provider = NomicEmbeddingProvider(settings=app_settings)
    if provider.is_available():
        return provider

    raise ConfigurationError(
        message="No embedding provider available: set OPENAI_API_KEY or run Ollama",
    )


def build_vision_llm(app_settings: Settings) -> ILLMProvider | None:
    """Return the first vision-capable LLM with credentials, or ``None``."""
    for name in app_settings.get_available_vision_providers():
        llm: ILLMProvider
        if name == "anthropic":
            llm = AnthropicLLMProvider(settings=app_settings)
        else:
            llm = OpenAILLMProvider(settings=app_settings)
        if llm.is_available() and llm.supports_vision():
            return llm
    return None


def build_components(
    app_settings: Settings,
    embedding_provider: IEmbeddingProvider | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components; the web app stores them on
    ``app.state`` and the CLI uses them directly.  The chunk store still
    needs ``await store.initialize()`` before first use.
    """
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(app_settings.fetch_timeout_seconds),
        headers={"User-Agent": app_settings.fetch_user_agent},
        follow_redirects=True,
    )

    # -- Embedding --
    embedding_provider = embedding_provider or build_embedding_provider(app_settings)
    embedding_client = EmbeddingClient(
        embedding_provider,
        dimension=app_settings.embedding_dimension or None,
    )

    # -- Image description (optional) --
    vision_llm = build_vision_llm(app_settings) if app_settings.describe_post_images else None
    image_describer = (
        LLMImageDescriber(llm=vision_llm, http_client=http_client) if vision_llm else None
    )

    # -- Normalize / chunk / write --
    fetcher = HttpPageFetcher(http_client=http_client)
    normalizer = ContentNormalizer(
        fetcher=fetcher,
        image_describer=image_describer,
        post_url_template=app_settings.post_url_template,
    )
    chunker = TextChunker(
        chunk_size=app_settings.chunk_size,
        overlap=app_settings.chunk_overlap,
        boundary=app_settings.chunk_boundary.lower(),
    )
    store = SQLiteChunkStore(
        db_path=app_settings.chunk_db_path,
        table=app_settings.chunk_table,
        batch_limit=app_settings.store_batch_limit,
    )
    index_writer = IndexWriter(store)

    ingestion_service = IngestionService(
        normalizer=normalizer,
        chunker=chunker,
        embedding_client=embedding_client,
        index_writer=index_writer,
        store=store,
    )

    # -- Triggers --
    crawl_scheduler = CrawlScheduler(
        ingestion_service,
        urls=resolve_crawl_urls(app_settings),
        interval_hours=app_settings.crawl_interval_hours,
    )
    post_handler = PostChangeHandler(ingestion_service)

    provider_registry: dict[str, Any] = {
        "embedding": embedding_provider.get_provider_name(),
        "vision_llm": vision_llm.get_provider_name() if vision_llm else None,
        "chunk_store": store.get_provider_name(),
        "fetcher": fetcher.get_provider_name(),
    }

    logger.debug("components_built", **provider_registry)

    return {
        "settings": app_settings,
        "http_client": http_client,
        "chunk_store": store,
        "embedding_provider": embedding_provider,
        "index_writer": index_writer,
        "ingestion_service": ingestion_service,
        "crawl_scheduler": crawl_scheduler,
        "post_handler": post_handler,
        "provider_registry": provider_registry,
    }
