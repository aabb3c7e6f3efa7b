"""
HTTP page fetching for selected sitemap entries.

Retries transient failures (429, 5xx, timeouts, connection errors) with
exponential backoff. Non-retryable statuses come back as a ScrapedPage
carrying the status code; transport errors that outlast the retries raise
PageFetchError.
"""

import asyncio
import logging
from datetime import UTC, datetime

import httpx
from bs4 import BeautifulSoup

from sitemap_ingest.config import SitemapOptions
from sitemap_ingest.constants import PAGE_ACCEPT_HEADER
from sitemap_ingest.exceptions import PageFetchError
from sitemap_ingest.sitemaps.base import PageScraper
from sitemap_ingest.sitemaps.models import ScrapedPage

logger = logging.getLogger(__name__)


def extract_title(html: str, fallback: str) -> str:
    """
    Extract the page title.

    Uses <title>, then the first <h1>, then ``fallback``.
    """
    if not html:
        return fallback

    soup = BeautifulSoup(html, "lxml")
    if soup.title and soup.title.string and soup.title.string.strip():
        return soup.title.string.strip()

    h1 = soup.find("h1")
    if h1:
        text = h1.get_text(strip=True)
        if text:
            return text

    return fallback


class HttpPageScraper(PageScraper):
    """Fetches HTML pages over a shared httpx.AsyncClient."""

    # Retryable status codes
    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(
        self,
        client: httpx.AsyncClient,
        options: SitemapOptions | None = None,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        headers: dict[str, str] | None = None,
    ):
        """
        Initialize page scraper.

        Args:
            client: Shared async HTTP client
            options: Service options (user agent, timeout)
            max_retries: Maximum attempts for retryable errors
            backoff_seconds: Base of the exponential backoff
            headers: Optional custom headers
        """
        self.client = client
        self.options = options or SitemapOptions()
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self.headers = headers or {}

    async def scrape(self, url: str) -> ScrapedPage:
        """
        Fetch a page with retries.

        Args:
            url: Page URL

        Returns:
            ScrapedPage; non-2xx responses carry their status code and no content

        Raises:
            PageFetchError: If a transport error persists through all retries
        """
        last_error = None
        last_status = None

        for attempt in range(self.max_retries):
            try:
                response = await self._do_fetch(url)
            except httpx.TimeoutException as e:
                last_status = None
                last_error = f"Timeout: {e!r}"
            except httpx.TransportError as e:
                last_status = None
                last_error = f"Request error: {e!r}"
            else:
                if response.is_success:
                    html = response.text
                    return ScrapedPage(
                        url=str(response.url),
                        title=extract_title(html, fallback=url),
                        html_content=html,
                        status_code=response.status_code,
                        scraped_at=datetime.now(UTC),
                    )

                last_status = response.status_code
                if last_status not in self.RETRYABLE_STATUS_CODES:
                    return self._failed_page(url, last_status)
                last_error = f"HTTP {last_status}: {response.reason_phrase}"

            if attempt + 1 < self.max_retries:
                backoff = (2**attempt) * self.backoff_seconds
                if last_status == 429:
                    backoff *= 2
                logger.warning(
                    f"Retry {attempt + 1}/{self.max_retries} for {url} "
                    f"({last_error}, backoff={backoff}s)"
                )
                await asyncio.sleep(backoff)

        if last_status is not None:
            return self._failed_page(url, last_status)
        raise PageFetchError(url, last_error or "unknown error")

    async def _do_fetch(self, url: str) -> httpx.Response:
        request_headers = {
            "User-Agent": self.options.user_agent,
            "Accept": PAGE_ACCEPT_HEADER,
            "Accept-Language": "en-US,en;q=0.5",
            **self.headers,
        }
        return await self.client.get(
            url,
            headers=request_headers,
            timeout=self.options.fetch_timeout_seconds,
            follow_redirects=True,
        )

    @staticmethod
    def _failed_page(url: str, status_code: int) -> ScrapedPage:
        return ScrapedPage(url=url, title=url, html_content="", status_code=status_code)
