"""Unit tests for the CrawlScheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.knowledge import BatchIngestionResult
from src.services.ingestion.crawl_scheduler import CrawlScheduler
from src.services.ingestion.ingestion_service import IngestionService

_URLS = ["https://bmbcfamily.com/about-us", "https://bmbcfamily.com/next-steps"]


def _service(side_effect=None) -> MagicMock:
    service = MagicMock(spec=IngestionService)
    service.ingest_batch = AsyncMock(
        return_value=BatchIngestionResult(), side_effect=side_effect
    )
    return service


class TestCrawlScheduler:
    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            CrawlScheduler(_service(), _URLS, interval_hours=0)

    def test_urls_are_copied(self) -> None:
        urls = list(_URLS)
        scheduler = CrawlScheduler(_service(), urls)
        urls.append("https://elsewhere.example/")
        assert scheduler.urls == _URLS

    @pytest.mark.asyncio
    async def test_run_once_crawls_every_url(self) -> None:
        service = _service()
        await CrawlScheduler(service, _URLS).run_once()
        service.ingest_batch.assert_awaited_once_with(_URLS)

    @pytest.mark.asyncio
    async def test_run_forever_survives_errors_and_cancels(self) -> None:
        service = _service(side_effect=[RuntimeError("boom"), BatchIngestionResult()] * 50)
        scheduler = CrawlScheduler(service, _URLS, interval_hours=1e-7)

        task = asyncio.create_task(scheduler.run_forever())
        while service.ingest_batch.await_count < 3:
            await asyncio.sleep(0.001)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert service.ingest_batch.await_count >= 3
