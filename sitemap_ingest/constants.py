"""
Constants used throughout the sitemap ingestion package.

Centralizes default limits and tuning values so service defaults and
tests agree on a single source.
"""

# =============================================================================
# Crawl Budget
# =============================================================================

# Maximum number of pages processed per crawl
DEFAULT_MAX_PAGES = 200

# Maximum sitemap-index recursion depth (root sitemap is depth 0)
DEFAULT_MAX_DEPTH = 2

# Number of pages processed concurrently
DEFAULT_MAX_CONCURRENCY = 3

# Pause taken by a worker after each page before its next one
DEFAULT_THROTTLE_MILLISECONDS = 250


# =============================================================================
# HTTP
# =============================================================================

# User agent identifying as a respectful bot
DEFAULT_USER_AGENT = "SitemapIngestBot/1.0"

# Sitemap fetch timeout (seconds)
DEFAULT_FETCH_TIMEOUT_SECONDS = 30

# Largest sitemap document accepted (2 MB)
DEFAULT_MAX_SITEMAP_BYTES = 2_000_000

SITEMAP_ACCEPT_HEADER = "application/xml, text/xml;q=0.9, text/plain;q=0.5"

PAGE_ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


# =============================================================================
# Robots.txt
# =============================================================================

DEFAULT_RESPECT_ROBOTS_TXT = True

# How long parsed robots.txt rules stay cached (1 hour)
DEFAULT_ROBOTS_CACHE_TTL_SECONDS = 3600


# =============================================================================
# Scoring
# =============================================================================

# Recency halves every N days
DEFAULT_RECENCY_HALF_LIFE_DAYS = 30.0

# Share of the score taken by declared change frequency (rest is recency)
DEFAULT_CHANGE_FREQUENCY_WEIGHT = 0.75

# Score used when changefreq or lastmod is missing
NEUTRAL_SCORE = 0.5

CHANGE_FREQUENCY_SCORES = {
    "always": 1.0,
    "hourly": 0.95,
    "daily": 0.85,
    "weekly": 0.7,
    "monthly": 0.5,
    "yearly": 0.25,
    "never": 0.1,
}
