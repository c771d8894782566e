"""Knowledge-base domain models -- re-exports all public model classes.

Import from ``src.models`` rather than the submodule, e.g.
``from src.models import ChunkRecord``.
"""

from __future__ import annotations

from src.models.knowledge import (
    DOC_TYPE_SOCIAL_POST,
    DOC_TYPE_WEBPAGE,
    BatchIngestionResult,
    ChunkBoundary,
    ChunkRecord,
    IndexStats,
    IngestionResult,
    IngestionStage,
    NormalizedContent,
    PostAuthor,
    SocialPost,
    SourceDescriptor,
    SourceKind,
    WriteBatch,
)

__all__ = [
    "DOC_TYPE_SOCIAL_POST",
    "DOC_TYPE_WEBPAGE",
    "BatchIngestionResult",
    "ChunkBoundary",
    "ChunkRecord",
    "IndexStats",
    "IngestionResult",
    "IngestionStage",
    "NormalizedContent",
    "PostAuthor",
    "SocialPost",
    "SourceDescriptor",
    "SourceKind",
    "WriteBatch",
]
