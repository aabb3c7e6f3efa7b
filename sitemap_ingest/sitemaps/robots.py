"""
robots.txt rules and a per-host, single-flight rules cache.

Supported subset of robots.txt:
- User-agent groups (consecutive User-agent lines share one group)
- Allow / Disallow with longest-match precedence, ties favouring Allow
- ``*`` wildcards and a trailing ``$`` end anchor

Anything else (Crawl-delay, Sitemap, Host...) is ignored. A robots.txt
that cannot be fetched, returns non-2xx, or is larger than the sitemap
size ceiling allows everything.
"""

import asyncio
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

import httpx

from sitemap_ingest.config import SitemapOptions
from sitemap_ingest.sitemaps.urls import get_origin, get_path_and_query

logger = logging.getLogger(__name__)

WILDCARD_AGENT = "*"


@lru_cache(maxsize=1024)
def _compile_pattern(pattern: str) -> re.Pattern:
    anchored = pattern.endswith("$")
    if anchored:
        pattern = pattern[:-1]
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    if anchored:
        regex += "$"
    return re.compile(regex, re.IGNORECASE)


def matches_pattern(path: str, pattern: str) -> bool:
    """
    Check a path against one robots.txt pattern.

    The match is anchored at the start of the path. ``*`` matches any run of
    characters and a trailing ``$`` requires the path to end there.
    """
    if not pattern:
        return False
    return _compile_pattern(pattern).match(path) is not None


def agent_token(user_agent: str) -> str:
    """Return the product token of a user agent ("Bot/1.0 (+url)" -> "Bot")."""
    user_agent = (user_agent or "").strip()
    if not user_agent:
        return WILDCARD_AGENT
    return re.split(r"[/\s]", user_agent, maxsplit=1)[0]


@dataclass(frozen=True)
class RobotsRules:
    """Allow and Disallow patterns that apply to one user agent on one host."""

    allow: tuple[str, ...] = ()
    disallow: tuple[str, ...] = ()

    def is_allowed(self, url: str) -> bool:
        """
        Evaluate a URL against the rules.

        Args:
            url: Absolute URL; its path and query are matched

        Returns:
            True unless the longest matching Disallow is longer than the
            longest matching Allow
        """
        if not self.disallow:
            return True

        path = get_path_and_query(url)
        longest_allow = max(
            (len(rule) for rule in self.allow if matches_pattern(path, rule)), default=-1
        )
        longest_disallow = max(
            (len(rule) for rule in self.disallow if matches_pattern(path, rule)), default=-1
        )
        return longest_disallow <= longest_allow

    @classmethod
    def parse(cls, content: str, user_agent: str) -> "RobotsRules":
        """
        Parse robots.txt and pick the group for ``user_agent``.

        The group naming the agent's product token wins, then ``*``, then
        allow-all.
        """
        groups = _parse_groups(content)
        token = agent_token(user_agent).lower()

        rules = groups.get(token) or groups.get(WILDCARD_AGENT)
        if rules is None or (not rules.allow and not rules.disallow):
            return ALLOW_ALL
        return rules


ALLOW_ALL = RobotsRules()


def _parse_groups(content: str) -> dict[str, RobotsRules]:
    """Map lower-cased agent names to their merged rules."""
    allow_by_agent: dict[str, list[str]] = {}
    disallow_by_agent: dict[str, list[str]] = {}
    agents: list[str] = []
    in_rules = False

    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue

        directive, value = line.split(":", 1)
        directive = directive.strip().lower()
        value = value.strip()

        if directive == "user-agent":
            if in_rules:
                agents = []
                in_rules = False
            if value:
                agent = value.lower()
                agents.append(agent)
                allow_by_agent.setdefault(agent, [])
                disallow_by_agent.setdefault(agent, [])
        elif directive in ("allow", "disallow"):
            in_rules = True
            if not value:
                continue
            target = allow_by_agent if directive == "allow" else disallow_by_agent
            for agent in agents:
                target[agent].append(value)

    return {
        agent: RobotsRules(
            allow=tuple(allow_by_agent[agent]), disallow=tuple(disallow_by_agent[agent])
        )
        for agent in allow_by_agent
    }


@dataclass
class _CacheEntry:
    task: asyncio.Task
    created_at: float


class RobotsPolicyCache:
    """
    Caches robots.txt rules per origin with single-flight fetching.

    The first lookup for an origin starts one fetch task; concurrent lookups
    await the same task. Entries expire after ``robots_cache_ttl_seconds``
    and are refetched on the next lookup.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        options: SitemapOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            client: Shared async HTTP client
            options: Service options (user agent, timeout, cache TTL)
            clock: Monotonic clock in seconds, injectable for tests
        """
        self.client = client
        self.options = options or SitemapOptions()
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Drop all cached rules."""
        self._entries.clear()

    async def get_rules(self, url: str) -> RobotsRules:
        """
        Return robots rules for the origin of ``url``, fetching at most once.

        Args:
            url: Any absolute URL on the host

        Returns:
            RobotsRules for the configured user agent
        """
        origin = get_origin(url)
        entry = self._entries.get(origin)
        now = self._clock()

        if entry is None or self._is_expired(entry, now):
            task = asyncio.ensure_future(self._fetch_rules(origin))
            entry = _CacheEntry(task=task, created_at=now)
            self._entries[origin] = entry

        try:
            # Shield: one cancelled caller must not cancel the shared fetch
            return await asyncio.shield(entry.task)
        except asyncio.CancelledError:
            if entry.task.cancelled() and self._entries.get(origin) is entry:
                del self._entries[origin]
            raise

    async def is_allowed(self, url: str) -> bool:
        """Check a URL against its host's robots.txt."""
        rules = await self.get_rules(url)
        return rules.is_allowed(url)

    def _is_expired(self, entry: _CacheEntry, now: float) -> bool:
        if not entry.task.done():
            return False
        return now - entry.created_at >= self.options.robots_cache_ttl_seconds

    async def _fetch_rules(self, origin: str) -> RobotsRules:
        robots_url = f"{origin}/robots.txt"
        max_bytes = self.options.max_sitemap_bytes
        try:
            async with self.client.stream(
                "GET",
                robots_url,
                headers={"User-Agent": self.options.user_agent},
                timeout=self.options.fetch_timeout_seconds,
                follow_redirects=True,
            ) as response:
                if not response.is_success:
                    logger.debug(
                        f"robots.txt for {origin} returned {response.status_code}, "
                        f"treating as allow all"
                    )
                    return ALLOW_ALL

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > max_bytes:
                        logger.debug(
                            f"robots.txt for {origin} exceeded {max_bytes} bytes, "
                            f"treating as allow all"
                        )
                        return ALLOW_ALL
                content = bytes(body).decode(response.encoding or "utf-8", errors="replace")
        except Exception as e:
            logger.debug(f"Failed to download robots.txt for {origin}, assuming allow: {e!r}")
            return ALLOW_ALL

        rules = RobotsRules.parse(content, self.options.user_agent)
        logger.debug(
            f"Loaded robots.txt for {origin}: "
            f"{len(rules.allow)} allow, {len(rules.disallow)} disallow rules"
        )
        return rules
