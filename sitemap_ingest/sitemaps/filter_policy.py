"""
Host and robots.txt filtering for discovered sitemap entries.
"""

import logging

from sitemap_ingest.sitemaps.base import UrlFilterPolicy
from sitemap_ingest.sitemaps.models import CrawlContext, SitemapEntry
from sitemap_ingest.sitemaps.robots import RobotsPolicyCache
from sitemap_ingest.sitemaps.urls import get_host, is_http_url

logger = logging.getLogger(__name__)


def resolve_allowed_hosts(context: CrawlContext) -> frozenset[str]:
    """
    Determine which hosts a crawl may ingest from.

    Explicit per-request hosts win, then the host of the metadata source
    URI, then the host of the root sitemap.

    Returns:
        Lower-cased host names
    """
    if context.settings.allowed_hosts:
        return frozenset(host.strip().lower() for host in context.settings.allowed_hosts)

    if context.metadata.source_uri:
        source_host = get_host(context.metadata.source_uri)
        if source_host:
            return frozenset({source_host})

    root_host = get_host(context.root_sitemap_uri)
    return frozenset({root_host}) if root_host else frozenset()


class SitemapUrlFilterPolicy(UrlFilterPolicy):
    """Rejects off-host and robots-disallowed entries."""

    def __init__(self, robots_cache: RobotsPolicyCache):
        """
        Initialize filter policy.

        Args:
            robots_cache: Shared robots.txt rules cache
        """
        self.robots_cache = robots_cache

    async def should_include(self, entry: SitemapEntry, context: CrawlContext) -> bool:
        """
        Decide whether an entry may be ingested.

        Args:
            entry: Discovered sitemap entry
            context: Current crawl context

        Returns:
            True if the entry passes scheme, host and robots.txt checks
        """
        if not is_http_url(entry.location):
            logger.debug(f"Skipping {entry.location} because non-http(s) scheme was detected")
            return False

        allowed_hosts = resolve_allowed_hosts(context)
        if allowed_hosts and entry.host not in allowed_hosts:
            logger.debug(
                f"Skipping {entry.location} because host {entry.host} "
                f"is not within allowed hosts"
            )
            return False

        if not context.respect_robots_txt:
            return True

        allowed = await self.robots_cache.is_allowed(entry.location)
        if not allowed:
            logger.debug(f"robots.txt disallowed {entry.location}")
        return allowed
