"""
XML sitemap parsing.

Handles both document kinds defined by sitemaps.org:
- <sitemapindex>: yields child sitemap URLs
- <urlset>: yields page entries with lastmod, changefreq and priority

Element names are matched by local name, case-insensitively, so documents
with missing or unusual namespaces still parse. Malformed input never
raises; it produces an empty result.
"""

import logging
import math
import re
from datetime import UTC, datetime

from lxml import etree

from sitemap_ingest.sitemaps.base import SitemapParser
from sitemap_ingest.sitemaps.models import SitemapEntry, SitemapParseResult
from sitemap_ingest.sitemaps.urls import resolve_location

logger = logging.getLogger(__name__)

# The body is already decoded text, so the declared encoding must go
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)

# W3C datetime partial forms accepted by the sitemap protocol
_PARTIAL_DATE_FORMATS = ("%Y-%m", "%Y")


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname.lower()


def _child_elements(element: etree._Element, name: str) -> list[etree._Element]:
    return [
        child
        for child in element
        if isinstance(child.tag, str) and _local_name(child) == name
    ]


def _child_text(element: etree._Element, name: str) -> str | None:
    """Return the stripped text of the first child named ``name``."""
    for child in _child_elements(element, name):
        text = "".join(child.itertext()).strip()
        return text or None
    return None


def parse_lastmod(value: str | None) -> datetime | None:
    """
    Parse a <lastmod> value.

    Args:
        value: W3C datetime text (YYYY, YYYY-MM, YYYY-MM-DD or full ISO 8601)

    Returns:
        Timezone-aware datetime (naive values are taken as UTC), or None
    """
    if not value:
        return None

    value = value.strip()
    parsed = None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        for fmt in _PARTIAL_DATE_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_priority(value: str | None) -> float | None:
    """Parse a <priority> value; non-numeric and non-finite values give None."""
    if not value:
        return None
    try:
        priority = float(value.strip())
    except ValueError:
        return None
    return priority if math.isfinite(priority) else None


class XmlSitemapParser(SitemapParser):
    """Parses sitemap XML with lxml."""

    def __init__(self):
        self._xml_parser = etree.XMLParser(
            resolve_entities=False,
            no_network=True,
            remove_comments=True,
            remove_pis=True,
        )

    def parse(self, source_uri: str, content: str) -> SitemapParseResult:
        """
        Parse a sitemap document.

        Args:
            source_uri: URL the document was fetched from (base for relative locs)
            content: Decoded XML text

        Returns:
            SitemapParseResult; empty for blank, malformed or unrecognised input
        """
        if not content or not content.strip():
            logger.warning(f"Sitemap {source_uri} was empty")
            return SitemapParseResult.empty()

        try:
            root = etree.fromstring(_XML_DECLARATION.sub("", content, count=1), self._xml_parser)
        except (etree.XMLSyntaxError, ValueError) as e:
            logger.error(f"Failed to parse sitemap {source_uri}: {e}")
            return SitemapParseResult.empty()

        if root is None:
            logger.warning(f"Sitemap {source_uri} was empty")
            return SitemapParseResult.empty()

        root_name = _local_name(root)
        if root_name == "sitemapindex":
            return self._parse_index(source_uri, root)
        if root_name == "urlset":
            return self._parse_urlset(source_uri, root)

        logger.warning(
            f"Sitemap {source_uri} did not contain a recognised root element: {root.tag}"
        )
        return SitemapParseResult.empty()

    def _parse_index(self, source_uri: str, root: etree._Element) -> SitemapParseResult:
        children: list[str] = []
        for sitemap in _child_elements(root, "sitemap"):
            location = resolve_location(source_uri, _child_text(sitemap, "loc"))
            if location is None:
                continue
            if location not in children:
                children.append(location)

        logger.debug(f"Sitemap index {source_uri} lists {len(children)} child sitemaps")
        return SitemapParseResult(child_sitemaps=tuple(children))

    def _parse_urlset(self, source_uri: str, root: etree._Element) -> SitemapParseResult:
        entries: list[SitemapEntry] = []
        for url in _child_elements(root, "url"):
            location = resolve_location(source_uri, _child_text(url, "loc"))
            if location is None:
                continue

            entries.append(
                SitemapEntry(
                    location=location,
                    last_modified=parse_lastmod(_child_text(url, "lastmod")),
                    change_frequency=_child_text(url, "changefreq"),
                    priority=parse_priority(_child_text(url, "priority")),
                )
            )

        logger.debug(f"Urlset {source_uri} lists {len(entries)} pages")
        return SitemapParseResult(entries=tuple(entries))
