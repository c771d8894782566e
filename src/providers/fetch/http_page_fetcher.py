"""HTTP page fetcher backed by httpx.

Fetches raw HTML for the content normalizer.  Unlike a research scraper
there is no fallback source: a page that cannot be fetched must not
replace the chunks already indexed for it, so every failure raises.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.page_fetcher import IPageFetcher
from src.utils.errors import FetchError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0


class HttpPageFetcher(IPageFetcher):
    """Page fetcher that GETs URLs with redirects followed."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        user_agent: str = "congregation-kb/0.1",
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            follow_redirects=True,
        )

    async def fetch(self, url: str) -> str:
        """Return the body of *url*; raise :class:`FetchError` on any failure."""
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchError(
                message=f"Timeout fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                message=f"Failed to fetch {url}: HTTP {exc.response.status_code}",
                provider_name=self.get_provider_name(),
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("page_fetched", url=url, status=response.status_code, length=len(response.text))
        return response.text

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "http_fetcher"
