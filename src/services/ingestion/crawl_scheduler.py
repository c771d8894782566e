"""Scheduled sweep that re-indexes a fixed list of web pages.

Every ``interval_hours`` the scheduler hands the configured URL list to
:meth:`IngestionService.ingest_batch`, which replaces each page's chunks
with a fresh generation.  A failing page is logged and skipped; the next
sweep retries it.  Neither entry point raises to its caller.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from src.models.knowledge import BatchIngestionResult

if TYPE_CHECKING:
    from src.services.ingestion.ingestion_service import IngestionService

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_INTERVAL_HOURS = 24.0


class CrawlScheduler:
    """Runs the recurring crawl of the configured URL set."""

    def __init__(
        self,
        ingestion_service: IngestionService,
        urls: list[str],
        interval_hours: float = DEFAULT_INTERVAL_HOURS,
    ) -> None:
        if interval_hours <= 0:
            raise ValueError(f"interval_hours must be positive, got {interval_hours}")
        self._service = ingestion_service
        self._urls = list(urls)
        self._interval_seconds = interval_hours * 3600

    @property
    def urls(self) -> list[str]:
        return list(self._urls)

    async def run_once(self) -> BatchIngestionResult:
        """Crawl every configured URL once."""
        logger.info("scheduled_crawl_started", urls=len(self._urls))
        result = await self._service.ingest_batch(self._urls)
        logger.info(
            "scheduled_crawl_finished",
            urls=len(self._urls),
            failed_urls=result.failed_urls,
            chunks=result.total_chunks,
        )
        return result

    async def run_forever(self, run_immediately: bool = True) -> None:
        """Crawl on a fixed interval until cancelled."""
        if not run_immediately:
            await asyncio.sleep(self._interval_seconds)
        while True:
            try:
                await self.run_once()
            except Exception as exc:  # noqa: BLE001 -- the loop must survive a bad sweep
                logger.error("scheduled_crawl_error", error=str(exc))
            await asyncio.sleep(self._interval_seconds)
