"""
Data models for sitemap discovery and crawl scheduling.

These models flow through the crawl in order:
request -> context -> discovered entries -> scored entries -> outcome
"""

import math
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from sitemap_ingest.config import SitemapOptions
from sitemap_ingest.exceptions import InvalidSitemapUrlError
from sitemap_ingest.sitemaps.urls import get_host, is_http_url


def clamp_unit(value: float) -> float:
    """Clamp a value into [0, 1]; NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


class CrawlStatus(str, Enum):
    """Final status of a crawl."""

    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


@dataclass(frozen=True)
class SitemapEntry:
    """
    A page listed in a urlset sitemap.

    Attributes:
        location: Absolute page URL
        last_modified: Parsed <lastmod>, timezone-aware
        change_frequency: Raw <changefreq> text
        priority: Parsed <priority>, not range-checked
        heuristic_score: Ranking score in [0, 1], set by with_score()
    """

    location: str
    last_modified: datetime | None = None
    change_frequency: str | None = None
    priority: float | None = None
    heuristic_score: float = 0.0

    @property
    def host(self) -> str:
        return get_host(self.location)

    def with_score(self, score: float) -> "SitemapEntry":
        """Return a copy carrying the given score, clamped to [0, 1]."""
        return replace(self, heuristic_score=clamp_unit(score))


@dataclass(frozen=True)
class SitemapDocument:
    """Raw sitemap body as fetched; consumed once by the parser."""

    source_uri: str
    content: str
    is_index_hint: bool
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class SitemapFetchResult:
    """Result of a sitemap fetch operation."""

    success: bool
    document: SitemapDocument | None = None
    status_code: int | None = None
    error: str | None = None
    too_large: bool = False

    @classmethod
    def from_success(cls, document: SitemapDocument) -> "SitemapFetchResult":
        return cls(success=True, document=document, status_code=200)

    @classmethod
    def from_failure(
        cls, status_code: int | None, message: str, too_large: bool = False
    ) -> "SitemapFetchResult":
        return cls(success=False, status_code=status_code, error=message, too_large=too_large)


@dataclass(frozen=True)
class SitemapParseResult:
    """Entries of a urlset, or child sitemap URLs of a sitemap index."""

    entries: tuple[SitemapEntry, ...] = ()
    child_sitemaps: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "SitemapParseResult":
        return cls()


@dataclass(frozen=True)
class CrawlSettings:
    """
    Per-request overrides of the service defaults.

    Attributes:
        max_pages: Page budget override
        max_depth: Sitemap-index depth override
        respect_robots_txt: robots.txt enforcement override
        allowed_hosts: Hosts allowed for ingestion; empty means the source host
        throttle_milliseconds: Per-worker pause override
    """

    max_pages: int | None = None
    max_depth: int | None = None
    respect_robots_txt: bool | None = None
    allowed_hosts: tuple[str, ...] = ()
    throttle_milliseconds: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_pages": self.max_pages,
            "max_depth": self.max_depth,
            "respect_robots_txt": self.respect_robots_txt,
            "allowed_hosts": list(self.allowed_hosts),
            "throttle_milliseconds": self.throttle_milliseconds,
        }


@dataclass(frozen=True)
class IngestionMetadata:
    """
    Caller metadata attached to every page ingested from a crawl.

    Attributes:
        document_id: Prefix for generated document IDs
        title: Title of the ingestion job
        source_type: Origin label (e.g., "sitemap")
        source_uri: Site the sitemap belongs to; narrows allowed hosts
        tags: Tags copied onto each page request
        custom_metadata: Free-form metadata copied onto each page request
    """

    document_id: str | None = None
    title: str = "Untitled"
    source_type: str = "sitemap"
    source_uri: str | None = None
    tags: tuple[str, ...] = ()
    custom_metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "title": self.title,
            "source_type": self.source_type,
            "source_uri": self.source_uri,
            "tags": list(self.tags),
            "custom_metadata": dict(self.custom_metadata),
        }


def _pick(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


@dataclass(frozen=True)
class CrawlRequest:
    """A request to crawl one sitemap tree."""

    sitemap_uri: str
    settings: CrawlSettings = field(default_factory=CrawlSettings)
    metadata: IngestionMetadata = field(default_factory=IngestionMetadata)

    def __post_init__(self):
        if not self.sitemap_uri or not is_http_url(self.sitemap_uri.strip()):
            raise InvalidSitemapUrlError(
                f"Sitemap URL must be an absolute http(s) URL: {self.sitemap_uri!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CrawlRequest":
        """
        Create a CrawlRequest from an API payload.

        Accepts camelCase keys (``sitemapUrl``, ``maxPages``...) as well as
        snake_case.

        Raises:
            InvalidSitemapUrlError: If the sitemap URL is missing or invalid
        """
        sitemap_uri = _pick(data, "sitemapUrl", "sitemap_url", "sitemap_uri")
        if not isinstance(sitemap_uri, str):
            raise InvalidSitemapUrlError("sitemapUrl is required")

        respect_robots = _pick(data, "respectRobotsTxt", "respect_robots_txt")
        settings = CrawlSettings(
            max_pages=_optional_int(_pick(data, "maxPages", "max_pages")),
            max_depth=_optional_int(_pick(data, "maxDepth", "max_depth")),
            respect_robots_txt=None if respect_robots is None else bool(respect_robots),
            allowed_hosts=tuple(
                host.strip()
                for host in _pick(data, "allowedHosts", "allowed_hosts") or []
                if host and host.strip()
            ),
            throttle_milliseconds=_optional_int(
                _pick(data, "throttleMilliseconds", "throttle_milliseconds")
            ),
        )

        tags = _pick(data, "tags") or []
        metadata = IngestionMetadata(
            document_id=_pick(data, "documentIdPrefix", "document_id_prefix") or None,
            title=_pick(data, "title") or "Untitled",
            source_type=_pick(data, "sourceType", "source_type") or "sitemap",
            source_uri=_pick(data, "sourceUri", "source_uri"),
            tags=tuple(tag.strip() for tag in tags if tag and tag.strip()),
            custom_metadata=dict(_pick(data, "metadata") or {}),
        )

        return cls(sitemap_uri=sitemap_uri.strip(), settings=settings, metadata=metadata)


@dataclass(frozen=True)
class CrawlContext:
    """
    Read-only view of one crawl shared by every stage and worker.

    Effective values resolve the request overrides against service defaults.
    """

    root_sitemap_uri: str
    settings: CrawlSettings
    options: SitemapOptions
    metadata: IngestionMetadata

    @classmethod
    def for_request(cls, request: CrawlRequest, options: SitemapOptions) -> "CrawlContext":
        return cls(
            root_sitemap_uri=request.sitemap_uri,
            settings=request.settings,
            options=options,
            metadata=request.metadata,
        )

    @property
    def max_pages(self) -> int:
        value = self.settings.max_pages
        return max(0, self.options.max_pages if value is None else value)

    @property
    def max_depth(self) -> int:
        value = self.settings.max_depth
        return max(0, self.options.max_depth if value is None else value)

    @property
    def throttle_milliseconds(self) -> int:
        value = self.settings.throttle_milliseconds
        return max(0, self.options.throttle_milliseconds if value is None else value)

    @property
    def respect_robots_txt(self) -> bool:
        value = self.settings.respect_robots_txt
        return self.options.respect_robots_txt if value is None else value

    @property
    def max_concurrency(self) -> int:
        return max(1, self.options.max_concurrency)


@dataclass(frozen=True)
class ScrapedPage:
    """A fetched web page handed to the page processor."""

    url: str
    title: str
    html_content: str
    status_code: int
    scraped_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class WebPageIngestionRequest:
    """What the page processor receives for one sitemap entry."""

    url: str
    document_id: str
    title: str
    tags: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PageProcessingResult:
    """Outcome reported by the page processor."""

    success: bool
    chunks_indexed: int = 0
    message: str | None = None


@dataclass(frozen=True)
class CrawlOutcome:
    """
    Summary of one crawl.

    Attributes:
        sitemap_url: Root sitemap URL
        total_discovered: Entries found across the sitemap tree
        total_filtered: Discovered entries not selected (duplicate,
            rejected by policy, or over budget)
        total_selected: Entries attempted
        total_ingested: Entries processed successfully
        total_failed: Entries that failed to scrape or process
        total_chunks_indexed: Sum of chunks reported by the processor
        errors: One message per failed entry, in completion order
        duration: Wall-clock time of the crawl
        message: Human readable summary
    """

    sitemap_url: str
    total_discovered: int = 0
    total_filtered: int = 0
    total_selected: int = 0
    total_ingested: int = 0
    total_failed: int = 0
    total_chunks_indexed: int = 0
    errors: tuple[str, ...] = ()
    duration: timedelta = timedelta(0)
    message: str | None = None

    @property
    def status(self) -> CrawlStatus:
        if self.total_failed > 0:
            return CrawlStatus.COMPLETED_WITH_ERRORS
        return CrawlStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = {
            "sitemap_url": self.sitemap_url,
            "status": self.status.value,
            "total_discovered": self.total_discovered,
            "total_filtered": self.total_filtered,
            "total_selected": self.total_selected,
            "total_ingested": self.total_ingested,
            "total_failed": self.total_failed,
            "total_chunks_indexed": self.total_chunks_indexed,
            "errors": list(self.errors),
            "duration_ms": round(self.duration.total_seconds() * 1000, 2),
        }

        if self.message:
            data["message"] = self.message

        return data
