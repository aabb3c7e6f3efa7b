"""Unit tests for the sitemap URL filter policy."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sitemap_ingest.sitemaps.filter_policy import SitemapUrlFilterPolicy, resolve_allowed_hosts
from sitemap_ingest.sitemaps.models import IngestionMetadata, SitemapEntry


@pytest.fixture
def robots_cache():
    cache = MagicMock()
    cache.is_allowed = AsyncMock(return_value=True)
    return cache


class TestResolveAllowedHosts:
    """Tests for allowed host resolution."""

    def test_defaults_to_sitemap_host(self, make_context):
        context = make_context("https://Example.com/sitemap.xml")
        assert resolve_allowed_hosts(context) == {"example.com"}

    def test_source_uri_host(self, make_context):
        context = make_context(
            metadata=IngestionMetadata(source_uri="https://docs.example.com/start")
        )
        assert resolve_allowed_hosts(context) == {"docs.example.com"}

    def test_explicit_hosts_win(self, make_context):
        context = make_context(
            metadata=IngestionMetadata(source_uri="https://docs.example.com"),
            allowed_hosts=(" A.example.com ", "b.example.com"),
        )
        assert resolve_allowed_hosts(context) == {"a.example.com", "b.example.com"}


class TestSitemapUrlFilterPolicy:
    """Tests for SitemapUrlFilterPolicy."""

    @pytest.mark.asyncio
    async def test_same_host_allowed(self, make_context, robots_cache):
        policy = SitemapUrlFilterPolicy(robots_cache)

        assert await policy.should_include(
            SitemapEntry("https://example.com/docs"), make_context()
        )
        robots_cache.is_allowed.assert_awaited_once_with("https://example.com/docs")

    @pytest.mark.asyncio
    async def test_host_match_is_case_insensitive(self, make_context, robots_cache):
        policy = SitemapUrlFilterPolicy(robots_cache)
        assert await policy.should_include(
            SitemapEntry("https://EXAMPLE.com/docs"), make_context()
        )

    @pytest.mark.asyncio
    async def test_other_host_rejected(self, make_context, robots_cache):
        policy = SitemapUrlFilterPolicy(robots_cache)

        assert not await policy.should_include(
            SitemapEntry("https://other.com/docs"), make_context()
        )
        robots_cache.is_allowed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_http_rejected(self, make_context, robots_cache):
        policy = SitemapUrlFilterPolicy(robots_cache)
        assert not await policy.should_include(
            SitemapEntry("ftp://example.com/file"), make_context()
        )

    @pytest.mark.asyncio
    async def test_robots_disallow(self, make_context, robots_cache):
        robots_cache.is_allowed.return_value = False
        policy = SitemapUrlFilterPolicy(robots_cache)

        assert not await policy.should_include(
            SitemapEntry("https://example.com/private"), make_context()
        )

    @pytest.mark.asyncio
    async def test_robots_ignored_when_disabled(self, make_context, robots_cache):
        robots_cache.is_allowed.return_value = False
        policy = SitemapUrlFilterPolicy(robots_cache)

        assert await policy.should_include(
            SitemapEntry("https://example.com/private"),
            make_context(respect_robots_txt=False),
        )
        robots_cache.is_allowed.assert_not_awaited()
