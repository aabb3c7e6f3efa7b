"""
Sitemap crawl scheduling.

A crawl runs in five stages:
- Discover: breadth-first walk of the sitemap tree from the root (depth 0)
- FilterAndScore: dedup, host/robots filtering, heuristic scoring
- Select: best-scored entries up to the page budget
- ProcessConcurrently: scrape and ingest selected pages, bounded and throttled
- Finalize: aggregate counts into a CrawlOutcome

Per-page failures are recorded in the outcome. Anything escaping Discover,
FilterAndScore or Select, and cancellation, fails the whole crawl.
"""

import asyncio
import hashlib
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import httpx

from sitemap_ingest.config import SitemapOptions
from sitemap_ingest.logging_utils import log_summary, safe_log_event
from sitemap_ingest.sitemaps.base import (
    ChangeFrequencyHeuristic,
    PageProcessor,
    PageScraper,
    SitemapFetcher,
    SitemapParser,
    UrlFilterPolicy,
)
from sitemap_ingest.sitemaps.fetcher import HttpSitemapFetcher
from sitemap_ingest.sitemaps.filter_policy import SitemapUrlFilterPolicy
from sitemap_ingest.sitemaps.heuristic import DefaultChangeFrequencyHeuristic
from sitemap_ingest.sitemaps.models import (
    CrawlContext,
    CrawlOutcome,
    CrawlRequest,
    IngestionMetadata,
    ScrapedPage,
    SitemapEntry,
    WebPageIngestionRequest,
)
from sitemap_ingest.sitemaps.parser import XmlSitemapParser
from sitemap_ingest.sitemaps.robots import RobotsPolicyCache
from sitemap_ingest.sitemaps.scraper import HttpPageScraper
from sitemap_ingest.sitemaps.urls import canonical_url_key

logger = logging.getLogger(__name__)


@dataclass
class _CrawlTally:
    """Counters shared by the workers of one crawl.

    Only mutated between awaits, so event-loop scheduling keeps updates atomic.
    """

    ingested: int = 0
    failed: int = 0
    chunks_indexed: int = 0
    errors: list[str] = field(default_factory=list)

    def record_success(self, chunks_indexed: int) -> None:
        self.ingested += 1
        self.chunks_indexed += chunks_indexed

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)


def compute_document_id(url: str, prefix: str | None = None) -> str:
    """
    Derive a stable document ID from a page URL.

    Args:
        url: Page URL
        prefix: Optional caller-supplied prefix

    Returns:
        Upper-case SHA-256 hex digest, as ``{prefix}-{digest}`` when prefixed
    """
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest().upper()
    return f"{prefix}-{digest}" if prefix else digest


def build_page_request(
    metadata: IngestionMetadata, entry: SitemapEntry, page: ScrapedPage
) -> WebPageIngestionRequest:
    """
    Build the processor request for one scraped sitemap entry.

    Copies the crawl's tags and custom metadata, adds a ``changefreq:`` tag
    and the ``sitemap.*`` metadata fields.
    """
    tags = list(metadata.tags)
    if entry.change_frequency:
        tag_value = f"changefreq:{entry.change_frequency}"
        if tag_value.lower() not in {tag.lower() for tag in tags}:
            tags.append(tag_value)

    page_metadata: dict[str, Any] = dict(metadata.custom_metadata)
    page_metadata["sitemap.url"] = entry.location
    page_metadata["sitemap.changeFrequency"] = entry.change_frequency or "unspecified"
    page_metadata["sitemap.priority"] = entry.priority if entry.priority is not None else 0.0
    page_metadata["sitemap.lastModified"] = (
        entry.last_modified.isoformat() if entry.last_modified else None
    )
    page_metadata["sitemap.score"] = entry.heuristic_score

    return WebPageIngestionRequest(
        url=entry.location,
        document_id=compute_document_id(entry.location, metadata.document_id),
        title=page.title,
        tags=tuple(tags),
        metadata=page_metadata,
    )


def _selection_key(entry: SitemapEntry) -> tuple:
    # Score desc, lastmod desc, entries without lastmod last
    if entry.last_modified is None:
        return (-entry.heuristic_score, 1, 0.0)
    return (-entry.heuristic_score, 0, -entry.last_modified.timestamp())


class CrawlScheduler:
    """Runs sitemap crawls over injected collaborators."""

    def __init__(
        self,
        fetcher: SitemapFetcher,
        parser: SitemapParser,
        filter_policy: UrlFilterPolicy,
        heuristic: ChangeFrequencyHeuristic,
        scraper: PageScraper,
        processor: PageProcessor,
        options: SitemapOptions | None = None,
    ):
        self.fetcher = fetcher
        self.parser = parser
        self.filter_policy = filter_policy
        self.heuristic = heuristic
        self.scraper = scraper
        self.processor = processor
        self.options = options or SitemapOptions()

    @classmethod
    def from_options(
        cls,
        client: httpx.AsyncClient,
        processor: PageProcessor,
        options: SitemapOptions | None = None,
        robots_cache: RobotsPolicyCache | None = None,
    ) -> "CrawlScheduler":
        """
        Wire the HTTP-backed collaborators around one client.

        Args:
            client: Shared async HTTP client (caller owns its lifetime)
            processor: Page processor receiving scraped pages
            options: Service options; defaults when omitted
            robots_cache: Existing cache to share across schedulers

        Returns:
            Ready-to-use CrawlScheduler
        """
        options = options or SitemapOptions()
        robots_cache = robots_cache or RobotsPolicyCache(client, options)
        return cls(
            fetcher=HttpSitemapFetcher(client, options),
            parser=XmlSitemapParser(),
            filter_policy=SitemapUrlFilterPolicy(robots_cache),
            heuristic=DefaultChangeFrequencyHeuristic(options),
            scraper=HttpPageScraper(client, options),
            processor=processor,
            options=options,
        )

    async def crawl(self, request: CrawlRequest) -> CrawlOutcome:
        """
        Crawl a sitemap tree and ingest the best-ranked pages.

        Args:
            request: Root sitemap, per-request settings and metadata

        Returns:
            CrawlOutcome; per-page failures are counted, not raised

        Raises:
            asyncio.CancelledError: If the crawl task is cancelled
            Exception: Any systemic failure outside per-page processing
        """
        started = time.monotonic()
        context = CrawlContext.for_request(request, self.options)
        logger.info(
            f"Starting sitemap crawl for {request.sitemap_uri} "
            f"(max_pages={context.max_pages}, max_depth={context.max_depth}, "
            f"settings={request.settings.to_dict()}, "
            f"metadata={safe_log_event(request.metadata.to_dict())})"
        )

        try:
            discovered = await self.discover(context)
            candidates = await self.filter_and_score(discovered, context)
            selected = self.select(candidates, context.max_pages)
            tally = await self.process_entries(context, selected)
        except asyncio.CancelledError:
            logger.warning(f"Sitemap crawl cancelled for {request.sitemap_uri}")
            raise
        except Exception as e:
            duration_ms = (time.monotonic() - started) * 1000
            logger.error(
                log_summary(
                    "sitemap_crawl",
                    success=False,
                    duration_ms=duration_ms,
                    error=f"{type(e).__name__}: {e}",
                    sitemap_url=request.sitemap_uri,
                )
            )
            raise

        duration = timedelta(seconds=time.monotonic() - started)
        outcome = CrawlOutcome(
            sitemap_url=request.sitemap_uri,
            total_discovered=len(discovered),
            total_filtered=len(discovered) - len(selected),
            total_selected=len(selected),
            total_ingested=tally.ingested,
            total_failed=tally.failed,
            total_chunks_indexed=tally.chunks_indexed,
            errors=tuple(tally.errors),
            duration=duration,
            message=f"Ingested {tally.ingested} of {len(selected)} sitemap URLs.",
        )

        logger.info(
            log_summary(
                "sitemap_crawl",
                success=outcome.total_failed == 0,
                duration_ms=duration.total_seconds() * 1000,
                item_count=outcome.total_selected,
                sitemap_url=outcome.sitemap_url,
                discovered=outcome.total_discovered,
                filtered=outcome.total_filtered,
                ingested=outcome.total_ingested,
                failed=outcome.total_failed,
            )
        )
        return outcome

    async def discover(self, context: CrawlContext) -> list[SitemapEntry]:
        """
        Walk the sitemap tree breadth-first.

        Child sitemaps are followed while the parent's depth is below the
        effective max depth. Sitemaps that fail to fetch are skipped.

        Returns:
            Entries in discovery order, duplicates included
        """
        max_depth = context.max_depth
        queue: deque[tuple[str, int]] = deque([(context.root_sitemap_uri, 0)])
        visited: set[str] = set()
        entries: list[SitemapEntry] = []

        while queue:
            uri, depth = queue.popleft()
            if uri.lower() in visited:
                continue
            visited.add(uri.lower())

            result = await self.fetcher.fetch(uri)
            if not result.success or result.document is None:
                logger.warning(
                    f"Skipping sitemap {uri} because it could not be fetched. "
                    f"Reason: {result.error}"
                )
                continue

            parsed = self.parser.parse(uri, result.document.content)
            if parsed.entries:
                entries.extend(parsed.entries)
                logger.info(f"Discovered {len(parsed.entries)} URLs in {uri} (depth {depth})")

            if not parsed.child_sitemaps:
                continue

            if depth >= max_depth:
                logger.debug(
                    f"Not expanding {len(parsed.child_sitemaps)} child sitemaps of {uri}: "
                    f"max depth {max_depth} reached"
                )
                continue

            for child in parsed.child_sitemaps:
                if child.lower() not in visited:
                    queue.append((child, depth + 1))

        return entries

    async def filter_and_score(
        self, entries: list[SitemapEntry], context: CrawlContext
    ) -> list[SitemapEntry]:
        """
        Deduplicate, filter and score discovered entries.

        The first occurrence of a URL wins. Order of survivors follows
        discovery order.
        """
        seen: set[str] = set()
        scored: list[SitemapEntry] = []

        for entry in entries:
            key = canonical_url_key(entry.location)
            if key in seen:
                continue
            seen.add(key)

            if not await self.filter_policy.should_include(entry, context):
                continue

            score = self.heuristic.calculate_score(entry, context)
            scored.append(entry.with_score(score))

        logger.info(
            f"{len(scored)} of {len(entries)} discovered URLs passed dedup and filtering "
            f"for {context.root_sitemap_uri}"
        )
        return scored

    @staticmethod
    def select(entries: list[SitemapEntry], max_pages: int) -> list[SitemapEntry]:
        """
        Pick the working set.

        Orders by score, then lastmod (newest first, missing last); the sort
        is stable, so full ties keep discovery order.
        """
        return sorted(entries, key=_selection_key)[: max(0, max_pages)]

    async def process_entries(
        self, context: CrawlContext, entries: list[SitemapEntry]
    ) -> _CrawlTally:
        """
        Scrape and ingest selected entries with bounded concurrency.

        Each worker holds its slot through the throttle pause that follows
        its page, so at most ``max_concurrency`` pages are in flight.
        """
        semaphore = asyncio.Semaphore(context.max_concurrency)
        throttle_seconds = context.throttle_milliseconds / 1000.0
        tally = _CrawlTally()

        async def run(entry: SitemapEntry) -> None:
            async with semaphore:
                await self._process_entry(context, entry, tally)
                if throttle_seconds > 0:
                    await asyncio.sleep(throttle_seconds)

        await asyncio.gather(*(run(entry) for entry in entries))
        return tally

    async def _process_entry(
        self, context: CrawlContext, entry: SitemapEntry, tally: _CrawlTally
    ) -> None:
        try:
            page = await self.scraper.scrape(entry.location)
            if not page.is_success or not page.html_content.strip():
                tally.record_failure(
                    f"Scrape failed for {entry.location} (status {page.status_code})"
                )
                logger.warning(
                    f"Scraping failed for sitemap URL {entry.location} "
                    f"with status {page.status_code}"
                )
                return

            page_request = build_page_request(context.metadata, entry, page)
            result = await self.processor.process(page_request, page)
        except Exception as e:
            tally.record_failure(f"Exception processing {entry.location}: {e}")
            logger.error(f"Error ingesting sitemap URL {entry.location}: {e!r}")
            return

        if result.success:
            tally.record_success(result.chunks_indexed)
            return

        tally.record_failure(
            f"Ingestion failed for {entry.location}: {result.message or 'Unknown error'}"
        )
        logger.warning(f"Ingestion failed for sitemap URL {entry.location}: {result.message}")
