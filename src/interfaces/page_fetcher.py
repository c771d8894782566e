"""Abstract base class for HTML page fetchers."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: HttpPageFetcher (src/providers/fetch/)
class IPageFetcher(ABC):
    """Contract for retrieving the raw HTML of a web page."""

    @abstractmethod
    async def fetch(self, url: str) -> str:
        """GET *url* and return the response body as text.

        Redirects are followed.  There is no fallback content: any
        transport failure or non-2xx status raises.

        Raises
        ------
        src.utils.errors.FetchError
            On network errors or non-2xx responses.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this fetcher."""
