"""
Abstract collaborators of the crawl scheduler.

Each stage of a crawl depends on one narrow interface. The HTTP-backed
implementations live beside this module; tests substitute in-memory
doubles. Page processing (chunking, embedding, indexing) has no
implementation in this package and is always supplied by the caller.
"""

from abc import ABC, abstractmethod

from sitemap_ingest.sitemaps.models import (
    CrawlContext,
    PageProcessingResult,
    ScrapedPage,
    SitemapEntry,
    SitemapFetchResult,
    SitemapParseResult,
    WebPageIngestionRequest,
)


class SitemapFetcher(ABC):
    """Retrieves one sitemap document."""

    @abstractmethod
    async def fetch(self, uri: str) -> SitemapFetchResult:
        """Fetch a sitemap.

        Failures are returned as results; only cancellation propagates.
        """


class SitemapParser(ABC):
    """Turns sitemap XML into page entries or child sitemap URLs."""

    @abstractmethod
    def parse(self, source_uri: str, content: str) -> SitemapParseResult:
        """Parse a sitemap body. Never raises on bad input."""


class UrlFilterPolicy(ABC):
    """Decides whether a discovered entry may be ingested."""

    @abstractmethod
    async def should_include(self, entry: SitemapEntry, context: CrawlContext) -> bool:
        """Return True to keep the entry."""


class ChangeFrequencyHeuristic(ABC):
    """Ranks entries for selection under a page budget."""

    @abstractmethod
    def calculate_score(self, entry: SitemapEntry, context: CrawlContext) -> float:
        """Return a score in [0, 1]."""


class PageScraper(ABC):
    """Fetches the page behind a sitemap entry."""

    @abstractmethod
    async def scrape(self, url: str) -> ScrapedPage:
        """Fetch a page.

        Non-2xx responses come back as a ScrapedPage with that status code.

        Raises:
            PageFetchError: On transport errors
        """


class PageProcessor(ABC):
    """Ingests one fetched page (extraction, chunking, indexing)."""

    @abstractmethod
    async def process(
        self, request: WebPageIngestionRequest, page: ScrapedPage
    ) -> PageProcessingResult:
        """Ingest a page and report the result."""
