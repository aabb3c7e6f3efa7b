"""
Change-frequency / recency scoring for sitemap entries.

score = w * changefreq_score + (1 - w) * recency_score
then averaged with <priority> when the entry declares one, and clamped to
[0, 1]. Recency decays exponentially with a configurable half-life.
"""

import math
from collections.abc import Callable
from datetime import UTC, datetime

from sitemap_ingest.config import SitemapOptions
from sitemap_ingest.constants import CHANGE_FREQUENCY_SCORES, NEUTRAL_SCORE
from sitemap_ingest.sitemaps.base import ChangeFrequencyHeuristic
from sitemap_ingest.sitemaps.models import CrawlContext, SitemapEntry, clamp_unit

SECONDS_PER_DAY = 86400.0


def change_frequency_score(change_frequency: str | None) -> float:
    """Map a <changefreq> value to a score; unknown values are neutral."""
    if not change_frequency or not change_frequency.strip():
        return NEUTRAL_SCORE
    return CHANGE_FREQUENCY_SCORES.get(change_frequency.strip().lower(), NEUTRAL_SCORE)


def recency_score(last_modified: datetime | None, now: datetime, half_life_days: float) -> float:
    """
    Score how recently an entry changed.

    Args:
        last_modified: Entry <lastmod>, or None
        now: Reference time
        half_life_days: Age at which the score halves (at least one day)

    Returns:
        1.0 for now or future, exp(-ln2 * age / half_life) otherwise,
        0.5 when last_modified is unknown
    """
    if last_modified is None:
        return NEUTRAL_SCORE

    if last_modified.tzinfo is None:
        last_modified = last_modified.replace(tzinfo=UTC)

    age_days = (now - last_modified).total_seconds() / SECONDS_PER_DAY
    if age_days <= 0:
        return 1.0

    half_life_days = max(1.0, half_life_days)
    return clamp_unit(math.exp(-math.log(2) * age_days / half_life_days))


class DefaultChangeFrequencyHeuristic(ChangeFrequencyHeuristic):
    """Blends declared change frequency, recency and priority."""

    def __init__(
        self,
        options: SitemapOptions | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.options = options or SitemapOptions()
        self._now = now or (lambda: datetime.now(UTC))

    def calculate_score(self, entry: SitemapEntry, context: CrawlContext) -> float:
        weight = clamp_unit(self.options.change_frequency_weight)
        combined = weight * change_frequency_score(entry.change_frequency) + (
            1 - weight
        ) * recency_score(entry.last_modified, self._now(), self.options.recency_half_life_days)

        if entry.priority is not None and math.isfinite(entry.priority):
            combined = (combined + clamp_unit(entry.priority)) / 2.0

        return clamp_unit(combined)
