"""Orchestrator for the content ingestion pipeline.

Pipeline stages: **normalize -> chunk -> embed -> write**.

The :class:`IngestionService` coordinates four collaborators (content
normalizer, chunker, embedding client, index writer) without any of them
knowing about each other.  All dependencies are injected via constructor,
so providers can be swapped (e.g. OpenAI -> Ollama) without changing this
class.

Failure handling per stage:

    normalize   ValidationError / FetchError abort the source (re-raised)
    chunk       empty text -> skipped, nothing written; a webpage that
                became empty has its previous chunks removed instead
    embed       EmbeddingError drops that chunk only; the survivors keep
                their original chunk_index, so gaps mark dropped chunks
    write       errors propagate; nothing is written before this point

If every chunk fails to embed, nothing is written and the previous
generation of the source stays in the index.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from src.models.knowledge import (
    DOC_TYPE_SOCIAL_POST,
    BatchIngestionResult,
    ChunkRecord,
    IndexStats,
    IngestionResult,
    IngestionStage,
    NormalizedContent,
    SourceDescriptor,
    SourceKind,
)
from src.utils.errors import EmbeddingError, FetchError, ValidationError

if TYPE_CHECKING:
    from src.interfaces.chunk_store import IChunkStore
    from src.services.ingestion.chunker import TextChunker
    from src.services.ingestion.content_normalizer import ContentNormalizer
    from src.services.ingestion.embedding_client import EmbeddingClient
    from src.services.ingestion.index_writer import IndexWriter

logger = structlog.get_logger(logger_name=__name__)


def post_record_id(post_id: str) -> str:
    """Deterministic store id for a social post's single chunk."""
    return f"post_{post_id}"


class IngestionService:
    """Runs one source at a time through normalize -> chunk -> embed -> write.

    Parameters
    ----------
    normalizer:
        Produces plain text and provenance from a source descriptor.
    chunker:
        Splits normalized text into overlapping windows.
    embedding_client:
        Embeds one chunk at a time.
    index_writer:
        Persists chunk records with replace-all / upsert semantics.
    store:
        The document store, used for statistics.
    """

    def __init__(
        self,
        normalizer: ContentNormalizer,
        chunker: TextChunker,
        embedding_client: EmbeddingClient,
        index_writer: IndexWriter,
        store: IChunkStore,
    ) -> None:
        self._normalizer = normalizer
        self._chunker = chunker
        self._embedding_client = embedding_client
        self._index_writer = index_writer
        self._store = store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(self, source: SourceDescriptor) -> IngestionResult:
        """Ingest a single source and report what was written.

        Raises
        ------
        ValidationError, FetchError
            When the source cannot be normalized.
        IndexWriteError
            When the final write fails.
        """
        start = time.monotonic()
        log = logger.bind(kind=source.kind.value, url=source.url, post_id=source.post_id)
        log.debug("ingestion_stage", stage=IngestionStage.RECEIVED.value)

        try:
            content = await self._normalizer.normalize(source)
        except (ValidationError, FetchError) as exc:
            log.error("ingestion_failed", stage=IngestionStage.NORMALIZED.value, error=str(exc))
            raise

        if content is None:
            if source.kind is SourceKind.WEBPAGE and source.url:
                return await self._clear_document(source, source.url, start)
            log.info("ingestion_skipped", reason="no_text")
            return self._empty_result(source, stage=IngestionStage.SKIPPED, start=start)

        log.debug("ingestion_stage", stage=IngestionStage.NORMALIZED.value, length=len(content.text))

        if source.kind is SourceKind.SOCIAL_POST:
            return await self._ingest_post(source, content, start)
        return await self._ingest_document(source, content, start)

    async def ingest_url(self, url: str) -> IngestionResult:
        """Fetch and re-index one webpage (the scheduled-sweep unit of work)."""
        return await self.ingest(SourceDescriptor.webpage(url))

    async def ingest_batch(self, urls: list[str]) -> BatchIngestionResult:
        """Re-index *urls* one after another.  Never raises.

        A URL that raises, or whose chunks all failed to embed, is
        recorded in ``failed_urls``; the sweep continues with the next.
        """
        results: list[IngestionResult] = []
        failed: list[str] = []
        for url in urls:
            try:
                result = await self.ingest_url(url)
            except Exception as exc:  # noqa: BLE001 -- one bad page must not stop the sweep
                logger.error("batch_url_failed", url=url, error=str(exc))
                failed.append(url)
                continue
            results.append(result)
            if result.stage is IngestionStage.FAILED:
                failed.append(url)

        batch = BatchIngestionResult(results=results, failed_urls=failed)
        logger.info(
            "batch_ingestion_complete",
            urls=len(urls),
            failed=len(failed),
            chunks=batch.total_chunks,
        )
        return batch

    async def get_stats(self) -> IndexStats:
        return await self._store.get_stats()

    # ------------------------------------------------------------------
    # Per-kind pipelines
    # ------------------------------------------------------------------

    async def _ingest_document(
        self, source: SourceDescriptor, content: NormalizedContent, start: float
    ) -> IngestionResult:
        spans = self._chunker.chunk(content.text)
        if not spans:
            if content.url:
                return await self._clear_document(source, content.url, start)
            return self._empty_result(
                source, stage=IngestionStage.SKIPPED, start=start, content=content
            )

        records: list[ChunkRecord] = []
        dropped = 0
        for span in spans:
            try:
                vector = await self._embedding_client.embed(span.text)
            except EmbeddingError as exc:
                dropped += 1
                logger.warning(
                    "chunk_embedding_failed",
                    url=content.url,
                    chunk_index=span.index,
                    error=str(exc),
                )
                continue
            records.append(
                ChunkRecord(
                    id=uuid.uuid4().hex,
                    doc_type=source.doc_type,
                    title=content.title,
                    url=content.url,
                    text=span.text,
                    embedding=vector,
                    chunk_index=span.index,
                    metadata=dict(source.metadata),
                )
            )

        if not records:
            logger.error("all_chunks_failed", url=content.url, attempted=len(spans))
            return self._build_result(
                source, content, IngestionStage.FAILED, start,
                written=0, attempted=len(spans), dropped=dropped,
            )

        await self._index_writer.replace_all(content.url, records)

        result = self._build_result(
            source, content, IngestionStage.DONE, start,
            written=len(records), attempted=len(spans), dropped=dropped,
        )
        logger.info(
            "ingestion_complete",
            url=content.url,
            title=content.title,
            chunks=result.chunk_count,
            dropped=dropped,
            time_s=result.ingestion_time,
        )
        return result

    async def _ingest_post(
        self, source: SourceDescriptor, content: NormalizedContent, start: float
    ) -> IngestionResult:
        post = source.post
        post_id = source.post_id or ""
        try:
            vector = await self._embedding_client.embed(content.text)
        except EmbeddingError as exc:
            logger.error("post_embedding_failed", post_id=post_id, error=str(exc))
            return self._build_result(
                source, content, IngestionStage.FAILED, start, written=0, attempted=1, dropped=1
            )

        metadata: dict[str, Any] = {
            **source.metadata,
            "author": (post.author.name if post else None) or "Unknown",
            "platform": (post.type if post else None) or "unknown",
            "has_image": content.has_image,
        }
        if content.image_described:
            metadata["image_described"] = True

        record = ChunkRecord(
            id=post_record_id(post_id),
            doc_type=DOC_TYPE_SOCIAL_POST,
            title=content.title,
            url=content.url,
            text=content.text,
            embedding=vector,
            chunk_index=0,
            metadata=metadata,
            original_post_id=post_id,
        )
        await self._index_writer.upsert_single(record)

        result = self._build_result(
            source, content, IngestionStage.DONE, start, written=1, attempted=1, dropped=0
        )
        logger.info("post_ingested", post_id=post_id, url=content.url, time_s=result.ingestion_time)
        return result

    async def _clear_document(
        self, source: SourceDescriptor, url: str, start: float
    ) -> IngestionResult:
        """Replace the chunks stored under *url* with nothing."""
        deleted = await self._index_writer.replace_all(url, [])
        logger.info("ingestion_emptied", url=url, deleted=deleted)
        return IngestionResult(
            source_url=url,
            title=source.title or url,
            doc_type=source.doc_type,
            stage=IngestionStage.DONE,
            ingestion_time=round(time.monotonic() - start, 3),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_result(
        source: SourceDescriptor,
        content: NormalizedContent,
        stage: IngestionStage,
        start: float,
        *,
        written: int,
        attempted: int,
        dropped: int,
    ) -> IngestionResult:
        return IngestionResult(
            source_url=content.url,
            title=content.title,
            doc_type=source.doc_type,
            chunk_count=written,
            chunks_attempted=attempted,
            chunks_dropped=dropped,
            stage=stage,
            ingestion_time=round(time.monotonic() - start, 3),
        )

    @staticmethod
    def _empty_result(
        source: SourceDescriptor,
        stage: IngestionStage,
        start: float,
        content: NormalizedContent | None = None,
    ) -> IngestionResult:
        """Return a zero-chunk result for a source that produced nothing to write."""
        return IngestionResult(
            source_url=content.url if content else (source.url or ""),
            title=content.title if content else (source.title or "Untitled"),
            doc_type=source.doc_type,
            stage=stage,
            ingestion_time=round(time.monotonic() - start, 3),
        )
