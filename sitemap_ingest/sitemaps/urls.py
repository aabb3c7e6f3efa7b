"""
URL helpers shared by the parser, filter policy and scheduler.

Sitemap locations are compared by a canonical key: scheme and host are
case-insensitive, default ports are dropped, path and query are kept as-is
and fragments are removed.
"""

from urllib.parse import urljoin, urlsplit

HTTP_SCHEMES = ("http", "https")

DEFAULT_PORTS = {"http": 80, "https": 443}


def is_http_url(url: str) -> bool:
    """Return True for absolute http(s) URLs with a host."""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in HTTP_SCHEMES and bool(parsed.hostname)


def get_host(url: str) -> str:
    """Return the lower-cased hostname of a URL, or an empty string."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def canonical_url_key(url: str) -> str:
    """
    Build the deduplication key for a URL.

    Args:
        url: Absolute URL

    Returns:
        Key with lower-cased scheme and host, no default port, no fragment
    """
    parsed = urlsplit(url.strip())
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()

    try:
        port = parsed.port
    except ValueError:
        port = None
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"

    path = parsed.path or "/"
    key = f"{scheme}://{host}{path}"
    if parsed.query:
        key += f"?{parsed.query}"
    return key


def get_origin(url: str) -> str:
    """
    Return ``scheme://host[:port]`` for a URL, lower-cased.

    Used as the robots.txt cache key.
    """
    parsed = urlsplit(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    try:
        port = parsed.port
    except ValueError:
        port = None
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def get_path_and_query(url: str) -> str:
    """Return the path plus ``?query`` used for robots.txt matching."""
    parsed = urlsplit(url)
    path = parsed.path or "/"
    if parsed.query:
        return f"{path}?{parsed.query}"
    return path


def resolve_location(base_url: str, value: str) -> str | None:
    """
    Resolve a sitemap ``<loc>`` value against the document URL.

    Args:
        base_url: URL of the sitemap that contained the value
        value: Raw location text

    Returns:
        Absolute http(s) URL, or None when the value is blank or resolves
        to another scheme
    """
    value = (value or "").strip()
    if not value:
        return None

    if is_http_url(value):
        return value

    try:
        resolved = urljoin(base_url, value)
    except ValueError:
        return None

    return resolved if is_http_url(resolved) else None
