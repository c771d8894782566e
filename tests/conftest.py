"""Shared pytest fixtures for the knowledge-base test suite.

The fakes below implement the provider interfaces in memory so the
ingestion pipeline can be exercised end to end without network access,
API keys, or a database file.
"""

from __future__ import annotations

import hashlib
import io
from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from src.interfaces.chunk_store import IChunkStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.image_describer import IImageDescriber
from src.interfaces.page_fetcher import IPageFetcher
from src.models.knowledge import ChunkRecord, IndexStats, WriteBatch
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.content_normalizer import ContentNormalizer
from src.services.ingestion.embedding_client import EmbeddingClient
from src.services.ingestion.index_writer import IndexWriter
from src.services.ingestion.ingestion_service import IngestionService
from src.utils.errors import FetchError, ImageAnalysisError, IndexWriteError

EMBEDDING_DIM = 8


# ---------------------------------------------------------------------------
# In-memory fakes
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic hash-based embeddings in Ollama's ``{"embedding": [...]}`` shape.

    Any text containing one of ``fail_on`` raises, simulating a transient
    embedding service error for that chunk.
    """

    def __init__(self, dimension: int = EMBEDDING_DIM, fail_on: tuple[str, ...] = ()) -> None:
        self._dimension = dimension
        self.fail_on = fail_on
        self.calls: list[str] = []

    async def embed_raw(self, text: str) -> Any:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise RuntimeError("embedding service unavailable")
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return {"embedding": [b / 255.0 for b in digest[: self._dimension]]}

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return True


class FakePageFetcher(IPageFetcher):
    """Serves HTML from a dict; unknown URLs raise :class:`FetchError`."""

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages: dict[str, str] = dict(pages or {})
        self.fetched: list[str] = []

    async def fetch(self, url: str) -> str:
        self.fetched.append(url)
        if url not in self.pages:
            raise FetchError(message=f"Failed to fetch {url}: HTTP 404", status_code=404)
        return self.pages[url]

    def get_provider_name(self) -> str:
        return "fake-fetcher"


class FakeImageDescriber(IImageDescriber):
    """Returns a canned description, or raises when ``fail`` is set."""

    def __init__(self, description: str = "A crowd gathered in a sanctuary.", fail: bool = False) -> None:
        self.description = description
        self.fail = fail
        self.described: list[str] = []

    async def describe(self, image_url: str) -> str:
        self.described.append(image_url)
        if self.fail:
            raise ImageAnalysisError(message="vision model unavailable")
        return self.description

    def get_provider_name(self) -> str:
        return "fake-describer"


class MemoryChunkStore(IChunkStore):
    """Dict-backed chunk store with atomic, size-limited commits."""

    def __init__(self, batch_limit: int = 500) -> None:
        self.records: dict[str, ChunkRecord] = {}
        self.batch_limit = batch_limit
        self.commits: list[WriteBatch] = []
        self.fail_commits = False

    @property
    def max_batch_operations(self) -> int:
        return self.batch_limit

    async def initialize(self) -> None:
        return None

    async def find_ids_by_url(self, url: str) -> list[str]:
        return [rid for rid, rec in self.records.items() if rec.url == url]

    async def get(self, record_id: str) -> ChunkRecord | None:
        return self.records.get(record_id)

    async def count_by_url(self, url: str) -> int:
        return len(await self.find_ids_by_url(url))

    async def commit(self, batch: WriteBatch) -> None:
        if self.fail_commits:
            raise IndexWriteError(message="store unavailable")
        if batch.operation_count > self.batch_limit:
            raise IndexWriteError(message="batch too large")
        staged = dict(self.records)
        for rid in batch.delete_ids:
            staged.pop(rid, None)
        for record in batch.records:
            staged[record.id] = record
        self.records = staged
        self.commits.append(batch)

    async def get_stats(self) -> IndexStats:
        by_type: dict[str, int] = {}
        for rec in self.records.values():
            by_type[rec.doc_type] = by_type.get(rec.doc_type, 0) + 1
        urls = {rec.url for rec in self.records.values() if rec.url}
        return IndexStats(
            total_chunks=len(self.records),
            total_urls=len(urls),
            chunks_by_doc_type=by_type,
        )

    def get_provider_name(self) -> str:
        return "memory"

    def by_url(self, url: str) -> list[ChunkRecord]:
        return sorted(
            (rec for rec in self.records.values() if rec.url == url),
            key=lambda rec: rec.chunk_index,
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_html() -> str:
    """A small church webpage with navigation, scripts and a footer."""
    return (
        "<html><head><title>About Us | Bethel Metro</title>"
        "<style>body { color: red; }</style></head>"
        "<body>"
        "<nav><a href='/'>Home</a><a href='/give'>Give</a></nav>"
        "<script>var tracking = 1;</script>"
        "<h1>About   Us</h1>\n"
        "<p>We gather every Sunday at 10am.</p>\n\n"
        "<p>Everyone is welcome.</p>"
        "<footer>Copyright 2024</footer>"
        "</body></html>"
    )


@pytest.fixture
def jpeg_bytes() -> bytes:
    """Create a minimal JPEG image in memory."""
    img = Image.new("RGB", (64, 48), color=(200, 10, 10))
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def page_fetcher() -> FakePageFetcher:
    return FakePageFetcher()


@pytest.fixture
def image_describer() -> FakeImageDescriber:
    return FakeImageDescriber()


@pytest.fixture
def chunk_store() -> MemoryChunkStore:
    return MemoryChunkStore()


@pytest.fixture
def ingestion_service(
    embedding_provider: FakeEmbeddingProvider,
    page_fetcher: FakePageFetcher,
    image_describer: FakeImageDescriber,
    chunk_store: MemoryChunkStore,
) -> IngestionService:
    """Fully wired service: small chunks so short test pages produce several."""
    return IngestionService(
        normalizer=ContentNormalizer(fetcher=page_fetcher, image_describer=image_describer),
        chunker=TextChunker(chunk_size=40, overlap=10),
        embedding_client=EmbeddingClient(embedding_provider),
        index_writer=IndexWriter(chunk_store),
        store=chunk_store,
    )
