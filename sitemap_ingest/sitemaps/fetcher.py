"""
HTTP fetching for sitemap documents.

One bad sitemap must never abort a crawl, so every failure (non-2xx,
oversized body, timeout, transport or decoding error) is returned as a
SitemapFetchResult. Only cancellation of the calling task propagates.
"""

import asyncio
import codecs
import logging
import time
import zlib
from datetime import UTC, datetime

import httpx

from sitemap_ingest.config import SitemapOptions
from sitemap_ingest.constants import SITEMAP_ACCEPT_HEADER
from sitemap_ingest.sitemaps.base import SitemapFetcher
from sitemap_ingest.sitemaps.models import SitemapDocument, SitemapFetchResult

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

# zlib window bits for a gzip header and trailer
GZIP_WBITS = 16 + zlib.MAX_WBITS

HTTP_REQUEST_TIMEOUT = 408
HTTP_ENTITY_TOO_LARGE = 413


def is_sitemap_index(content: str) -> bool:
    """Cheap check for a <sitemapindex> root; the parser has the final say."""
    return "<sitemapindex" in content.lower()


def decode_content(raw: bytes) -> str:
    """
    Decode a sitemap body.

    UTF-16 byte order marks are honoured; everything else is read as UTF-8
    with an optional BOM. Undecodable bytes are replaced.
    """
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return raw.decode("utf-16", errors="replace")
    return raw.decode("utf-8-sig", errors="replace")


def gunzip_limited(raw: bytes, max_bytes: int) -> bytes | None:
    """
    Inflate a gzip body without ever holding more than ``max_bytes + 1`` bytes.

    Returns:
        Decompressed bytes, or None once the output exceeds ``max_bytes``

    Raises:
        zlib.error: If the body is not valid gzip
    """
    decompressor = zlib.decompressobj(GZIP_WBITS)
    output = bytearray()
    data = raw

    while data:
        output.extend(decompressor.decompress(data, max_bytes + 1 - len(output)))
        if len(output) > max_bytes:
            return None
        data = decompressor.unconsumed_tail

    output.extend(decompressor.flush())
    if len(output) > max_bytes:
        return None
    return bytes(output)


class HttpSitemapFetcher(SitemapFetcher):
    """Fetches sitemaps over a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, options: SitemapOptions | None = None):
        """
        Initialize sitemap fetcher.

        Args:
            client: Shared async HTTP client
            options: Service options (user agent, timeout, size ceiling)
        """
        self.client = client
        self.options = options or SitemapOptions()

    async def fetch(self, uri: str) -> SitemapFetchResult:
        """
        Fetch one sitemap document.

        Args:
            uri: Absolute sitemap URL

        Returns:
            SitemapFetchResult with the decoded document or an error
        """
        started = time.monotonic()
        try:
            async with asyncio.timeout(self.options.fetch_timeout_seconds):
                result = await self._do_fetch(uri)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"Timed out fetching sitemap {uri}: {e!r}")
            return SitemapFetchResult.from_failure(
                HTTP_REQUEST_TIMEOUT, "Sitemap fetch timed out."
            )
        except Exception as e:
            logger.error(f"Unexpected error fetching sitemap {uri}: {e!r}")
            return SitemapFetchResult.from_failure(None, str(e) or type(e).__name__)

        if result.success and result.document is not None:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.info(
                f"Fetched sitemap {uri} ({len(result.document.content)} chars) "
                f"in {elapsed_ms:.0f} ms"
            )
        return result

    async def _do_fetch(self, uri: str) -> SitemapFetchResult:
        """Perform the request and read the body within the size ceiling."""
        headers = {
            "User-Agent": self.options.user_agent,
            "Accept": SITEMAP_ACCEPT_HEADER,
        }
        max_bytes = self.options.max_sitemap_bytes

        async with self.client.stream(
            "GET",
            uri,
            headers=headers,
            timeout=self.options.fetch_timeout_seconds,
            follow_redirects=True,
        ) as response:
            if not response.is_success:
                logger.warning(
                    f"Failed to fetch sitemap {uri}. Status code {response.status_code}"
                )
                return SitemapFetchResult.from_failure(
                    response.status_code,
                    f"Sitemap fetch failed with status {response.status_code}",
                )

            declared_length = _declared_length(response)
            if declared_length is not None and declared_length > max_bytes:
                logger.warning(
                    f"Sitemap {uri} exceeded configured size limit ({declared_length} bytes)"
                )
                return _too_large()

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    logger.warning(
                        f"Sitemap {uri} exceeded configured size limit while reading "
                        f"(>{max_bytes} bytes)"
                    )
                    return _too_large()

            content_encoding = response.headers.get("content-encoding", "")

        raw = bytes(body)
        if _is_gzip_hint(uri, content_encoding) and raw.startswith(GZIP_MAGIC):
            inflated = gunzip_limited(raw, max_bytes)
            if inflated is None:
                logger.warning(f"Decompressed sitemap {uri} exceeded configured size limit")
                return _too_large()
            raw = inflated

        content = decode_content(raw)
        document = SitemapDocument(
            source_uri=uri,
            content=content,
            is_index_hint=is_sitemap_index(content),
            fetched_at=datetime.now(UTC),
        )
        return SitemapFetchResult.from_success(document)


def _too_large() -> SitemapFetchResult:
    return SitemapFetchResult.from_failure(
        HTTP_ENTITY_TOO_LARGE,
        "Sitemap document exceeded configured size limit.",
        too_large=True,
    )


def _declared_length(response: httpx.Response) -> int | None:
    value = response.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _is_gzip_hint(uri: str, content_encoding: str) -> bool:
    path = httpx.URL(uri).path.lower()
    return "gzip" in content_encoding.lower() or path.endswith(".gz")
