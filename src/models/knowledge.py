"""Knowledge-base data models for the content ingestion engine.

Defines Pydantic v2 models for the indexed chunk record, the descriptors
that trigger adapters hand to the orchestrator, the social-post snapshot
delivered by change hooks, and the results reported back to callers.
All models use frozen config; state changes produce new instances via
``model_copy(update={...})``.

Flow through the models:

    SourceDescriptor --normalize--> NormalizedContent --chunk/embed-->
    ChunkRecord[] --WriteBatch--> document store --> IngestionResult
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DOC_TYPE_WEBPAGE = "webpage"
DOC_TYPE_SOCIAL_POST = "social_post"


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class SourceKind(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Shape of the content handed to the normalizer."""

    WEBPAGE = "webpage"          # URL fetched and stripped of markup
    SOCIAL_POST = "social_post"  # post record, optionally with an image
    MANUAL = "manual"            # caller-supplied text (or a URL to fetch)


class IngestionStage(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Stages of a single ingestion run.

    received -> normalized -> chunked -> embedding -> writing -> done,
    with ``failed`` reachable from any stage and ``skipped`` when the
    normalizer produced no text.
    """

    RECEIVED = "received"
    NORMALIZED = "normalized"
    CHUNKED = "chunked"
    EMBEDDING = "embedding"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class ChunkBoundary(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """How the chunker picks the end of each window."""

    CHARACTER = "character"
    WORD = "word"


# ---------------------------------------------------------------------------
# ChunkRecord — the atomic indexed unit.
# ---------------------------------------------------------------------------
class ChunkRecord(BaseModel):
    """One embedded chunk as persisted in the document store.

    Webpage chunks get a random id per write and are grouped by ``url``;
    a social post has exactly one record at the deterministic id
    ``post_<postId>`` so edits overwrite it in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Store identifier: random hex, or post_<postId> for posts.")
    doc_type: str = Field(description='Document type, "webpage" or "social_post".')
    title: str = Field(default="Untitled", description="Provenance title.")
    url: str = Field(default="", description="Provenance URL; the recrawl key for webpages.")
    text: str = Field(description="Plain-text payload of the chunk.")
    embedding: list[float] = Field(description="Embedding vector for ``text``.")
    chunk_index: int = Field(ge=0, description="Zero-based position within the source.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form provenance (author, platform, has_image, ...).",
    )
    created_at: datetime = Field(default_factory=_utc_now, description="UTC write time.")
    original_post_id: str | None = Field(
        default=None, description="Upstream post id; social posts only."
    )


# ---------------------------------------------------------------------------
# Social post snapshot (as delivered by the post change hook)
# ---------------------------------------------------------------------------
class PostAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"


class SocialPost(BaseModel):
    """A snapshot of one social post document.

    Field names accept the upstream camelCase keys (``mediaUrl``,
    ``thumbnailUrl``, ``sourceId``, ``externalUrl``, ``forceReingest``)
    as well as the snake_case attribute names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    content: str = ""
    type: str | None = Field(default=None, description="facebook, video, youtube, ...")
    media_url: str | None = Field(default=None, alias="mediaUrl")
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")
    source_id: str | None = Field(default=None, alias="sourceId")
    # Epoch milliseconds.
    timestamp: int | None = None
    author: PostAuthor = Field(default_factory=PostAuthor)
    external_url: str | None = Field(default=None, alias="externalUrl")
    force_reingest: bool = Field(default=False, alias="forceReingest")

    @property
    def image_ref(self) -> str | None:
        """The image reference used for change detection and description."""
        return self.media_url or self.thumbnail_url or None


# ---------------------------------------------------------------------------
# SourceDescriptor — the single input of IngestionService.ingest().
# ---------------------------------------------------------------------------
class SourceDescriptor(BaseModel):
    """Everything a trigger adapter knows about a source to ingest."""

    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    doc_type: str = DOC_TYPE_WEBPAGE
    url: str | None = None
    text: str | None = None
    title: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    post_id: str | None = None
    post: SocialPost | None = None

    @classmethod
    def webpage(cls, url: str) -> SourceDescriptor:
        return cls(kind=SourceKind.WEBPAGE, doc_type=DOC_TYPE_WEBPAGE, url=url)

    @classmethod
    def social_post(cls, post_id: str, post: SocialPost) -> SourceDescriptor:
        return cls(
            kind=SourceKind.SOCIAL_POST,
            doc_type=DOC_TYPE_SOCIAL_POST,
            post_id=post_id,
            post=post,
        )


class NormalizedContent(BaseModel):
    """Plain text plus provenance produced by the content normalizer."""

    model_config = ConfigDict(frozen=True)

    text: str
    title: str = "Untitled"
    url: str = ""
    has_image: bool = False
    image_described: bool = False


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
class WriteBatch(BaseModel):
    """An ordered set of store operations committed atomically.

    Deletes are applied before sets.
    """

    model_config = ConfigDict(frozen=True)

    delete_ids: list[str] = Field(default_factory=list)
    records: list[ChunkRecord] = Field(default_factory=list)

    @property
    def operation_count(self) -> int:
        return len(self.delete_ids) + len(self.records)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of one ingestion run.

    ``chunk_count`` is the number of records written; ``chunks_dropped``
    counts chunks whose embedding failed.
    """

    model_config = ConfigDict(frozen=True)

    source_url: str = Field(default="", description="Provenance URL of the source.")
    title: str = Field(default="Untitled", description="Resolved title of the source.")
    doc_type: str = Field(default=DOC_TYPE_WEBPAGE)
    chunk_count: int = Field(default=0, ge=0, description="Records written.")
    chunks_attempted: int = Field(default=0, ge=0, description="Chunks produced by the chunker.")
    chunks_dropped: int = Field(default=0, ge=0, description="Chunks whose embedding failed.")
    stage: IngestionStage = IngestionStage.DONE
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")

    @property
    def skipped(self) -> bool:
        return self.stage == IngestionStage.SKIPPED


class BatchIngestionResult(BaseModel):
    """Outcome of a sequential multi-URL sweep."""

    model_config = ConfigDict(frozen=True)

    results: list[IngestionResult] = Field(default_factory=list)
    failed_urls: list[str] = Field(default_factory=list)

    @property
    def total_chunks(self) -> int:
        return sum(r.chunk_count for r in self.results)


class IndexStats(BaseModel):
    """Aggregate counts over the document store."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0)
    total_urls: int = Field(default=0, ge=0, description="Distinct non-empty urls.")
    chunks_by_doc_type: dict[str, int] = Field(default_factory=dict)
