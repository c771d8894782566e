"""HTML page fetcher implementations."""

from src.providers.fetch.http_page_fetcher import HttpPageFetcher

__all__ = ["HttpPageFetcher"]
