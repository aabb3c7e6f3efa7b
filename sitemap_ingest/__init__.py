"""Sitemap Ingestion Library

Discovers pages through XML sitemaps and schedules them for scraping and
ingestion, ranked by how likely they are to have changed.
"""

from sitemap_ingest import constants
from sitemap_ingest.config import ConfigurationManager, SitemapOptions
from sitemap_ingest.exceptions import (
    ConfigurationError,
    InvalidSitemapUrlError,
    PageFetchError,
    SitemapIngestionError,
)
from sitemap_ingest.logging_utils import log_summary, safe_log_event

__all__ = [
    "ConfigurationError",
    "ConfigurationManager",
    "InvalidSitemapUrlError",
    "PageFetchError",
    "SitemapIngestionError",
    "SitemapOptions",
    "constants",
    "log_summary",
    "safe_log_event",
]
