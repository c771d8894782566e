"""Change trigger for social posts.

The post sync jobs write post documents; whenever one is created or
edited the hook delivers the ``before`` and ``after`` snapshots here.
Only changes that alter what would be indexed cause a re-ingest:

- the post is new (no ``before``),
- the text changed,
- the image changed (media or thumbnail, including a video's thumbnail), or
- the editor set ``force_reingest``.

Deletions are ignored: chunks of deleted posts stay in the index.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.models.knowledge import IngestionResult, SocialPost, SourceDescriptor
from src.services.ingestion.content_normalizer import post_image_reference

if TYPE_CHECKING:
    from src.services.ingestion.ingestion_service import IngestionService

logger = structlog.get_logger(logger_name=__name__)


def _image_fields(post: SocialPost) -> tuple[str | None, str | None, str | None]:
    """The described image plus both raw image fields of *post*."""
    return post_image_reference(post), post.media_url, post.thumbnail_url


def should_reingest(before: SocialPost | None, after: SocialPost | None) -> bool:
    """Decide whether a post write warrants re-indexing."""
    if after is None:
        return False
    if not after.content and not after.image_ref:
        return False
    if before is None or after.force_reingest:
        return True
    return before.content != after.content or _image_fields(before) != _image_fields(after)


class PostChangeHandler:
    """Applies :func:`should_reingest` and ingests the post when warranted."""

    def __init__(self, ingestion_service: IngestionService) -> None:
        self._service = ingestion_service

    async def handle(
        self,
        post_id: str,
        before: SocialPost | None,
        after: SocialPost | None,
    ) -> IngestionResult | None:
        """Process one post write.  Never raises.

        Returns the ingestion result, or ``None`` when nothing was done.
        """
        if after is None:
            logger.info("post_deleted_ignored", post_id=post_id)
            return None
        if not should_reingest(before, after):
            logger.debug("post_change_ignored", post_id=post_id)
            return None

        logger.info("post_reingest_started", post_id=post_id, forced=after.force_reingest)
        try:
            return await self._service.ingest(SourceDescriptor.social_post(post_id, after))
        except Exception as exc:  # noqa: BLE001 -- hook deliveries are fire-and-forget
            logger.error("post_ingest_failed", post_id=post_id, error=str(exc))
            return None
