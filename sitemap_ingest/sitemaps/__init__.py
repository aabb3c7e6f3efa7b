"""
Sitemap discovery and crawl scheduling.

This module walks a sitemap tree, filters and ranks the pages it lists, and
hands the best candidates to a page processor with bounded concurrency.

Architecture:
- Fetcher: Size-limited, gzip-aware sitemap download
- Parser: lxml-based urlset / sitemapindex parsing
- Robots: Per-host robots.txt rules with a single-flight TTL cache
- Filter policy: Host scoping plus robots.txt enforcement
- Heuristic: Change-frequency, recency and priority scoring
- Scheduler: Discover, filter and score, select, process, finalize
"""

from sitemap_ingest.sitemaps.models import (
    CrawlContext,
    CrawlOutcome,
    CrawlRequest,
    CrawlSettings,
    CrawlStatus,
    IngestionMetadata,
    PageProcessingResult,
    ScrapedPage,
    SitemapEntry,
    WebPageIngestionRequest,
)
from sitemap_ingest.sitemaps.scheduler import CrawlScheduler

__all__ = [
    "CrawlContext",
    "CrawlOutcome",
    "CrawlRequest",
    "CrawlScheduler",
    "CrawlSettings",
    "CrawlStatus",
    "IngestionMetadata",
    "PageProcessingResult",
    "ScrapedPage",
    "SitemapEntry",
    "WebPageIngestionRequest",
]
