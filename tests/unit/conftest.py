"""Shared fixtures for sitemap ingestion unit tests."""

import pytest

from sitemap_ingest.config import SitemapOptions
from sitemap_ingest.sitemaps.models import (
    CrawlContext,
    CrawlRequest,
    CrawlSettings,
    IngestionMetadata,
)


def _urlset(*locations: str, extra: str = "") -> str:
    urls = "".join(f"<url><loc>{loc}</loc>{extra}</url>" for loc in locations)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{urls}</urlset>'
    )


def _sitemap_index(*locations: str) -> str:
    sitemaps = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locations)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{sitemaps}'
        "</sitemapindex>"
    )


@pytest.fixture
def xml_urlset():
    """Builder for urlset documents listing page URLs."""
    return _urlset


@pytest.fixture
def xml_index():
    """Builder for sitemapindex documents listing child sitemaps."""
    return _sitemap_index


@pytest.fixture
def options():
    """Service options without throttling, for fast tests."""
    return SitemapOptions(throttle_milliseconds=0)


@pytest.fixture
def make_context(options):
    """Factory for crawl contexts rooted at example.com."""

    def _make(sitemap_uri="https://example.com/sitemap.xml", metadata=None, **settings):
        request = CrawlRequest(
            sitemap_uri=sitemap_uri,
            settings=CrawlSettings(**settings),
            metadata=metadata or IngestionMetadata(),
        )
        return CrawlContext.for_request(request, options)

    return _make
