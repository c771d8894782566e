"""Pydantic request/response schemas for the knowledge-base API.

Request schemas end with "Request", response schemas with "Response".
The ingest request accepts the camelCase ``sourceType`` key used by the
web client as well as ``source_type``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.knowledge import DOC_TYPE_WEBPAGE, SocialPost


class IngestRequest(BaseModel):
    """Body of ``POST /api/v1/ingest``.  Either ``url`` or ``text`` is required."""

    model_config = ConfigDict(populate_by_name=True)

    source_type: str = Field(
        default=DOC_TYPE_WEBPAGE,
        alias="sourceType",
        min_length=1,
        max_length=64,
        description="Document type recorded on every chunk.",
    )
    url: str | None = Field(default=None, max_length=2048)
    text: str | None = None
    title: str | None = Field(default=None, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)


class IngestResponse(BaseModel):
    """Result of an interactive ingestion."""

    success: bool = Field(description="The source was processed; see ``chunks`` for what was written.")
    chunks: int = Field(ge=0, description="Number of chunk records written.")


class PostHookRequest(BaseModel):
    """Before/after snapshots of a post write.  ``after`` is null for deletions."""

    before: SocialPost | None = None
    after: SocialPost | None = None


class PostHookResponse(BaseModel):
    """Acknowledgement of a post hook delivery."""

    accepted: bool
    post_id: str
    will_ingest: bool


class CrawlResponse(BaseModel):
    """Outcome of an on-demand crawl sweep."""

    urls: int
    failed_urls: list[str] = Field(default_factory=list)
    chunks: int = 0


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``error`` is one of ``unauthenticated``, ``invalid-argument`` or
    ``internal``.
    """

    error: str
    detail: str | None = None
