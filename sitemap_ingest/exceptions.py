"""
Custom exceptions for sitemap discovery and crawl scheduling.

Transport and parse problems on sitemaps and robots.txt are reported as
result objects, not exceptions. The types below cover request validation,
configuration and per-page fetch errors.
"""


class SitemapIngestionError(Exception):
    """Base exception for sitemap ingestion errors."""


class InvalidSitemapUrlError(SitemapIngestionError, ValueError):
    """Sitemap URL is missing, relative, or not http(s)."""


class ConfigurationError(SitemapIngestionError, ValueError):
    """Service options contain an invalid value."""


class PageFetchError(SitemapIngestionError):
    """Error during page fetching."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {message}")
