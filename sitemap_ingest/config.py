"""Configuration Management for sitemap ingestion

Service defaults for sitemap crawls live in ``SitemapOptions``. They can be
built three ways:
- ``SitemapOptions()``: compiled-in defaults from ``constants``
- ``SitemapOptions.from_env()``: ``SITEMAP_*`` environment variables
- ``ConfigurationManager().get_sitemap_options()``: the ``sitemap`` map of
  the DynamoDB configuration table, Custom merged over Default

Per-request overrides are carried separately by ``CrawlSettings`` and
resolved against these defaults in ``CrawlContext``.
"""

import logging
import os
from copy import deepcopy
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

import boto3
from botocore.exceptions import ClientError

from sitemap_ingest import constants
from sitemap_ingest.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable -> option field
ENV_VARS = {
    'SITEMAP_MAX_PAGES': 'max_pages',
    'SITEMAP_MAX_DEPTH': 'max_depth',
    'SITEMAP_MAX_CONCURRENCY': 'max_concurrency',
    'SITEMAP_THROTTLE_MS': 'throttle_milliseconds',
    'SITEMAP_RESPECT_ROBOTS_TXT': 'respect_robots_txt',
    'SITEMAP_USER_AGENT': 'user_agent',
    'SITEMAP_FETCH_TIMEOUT_SECONDS': 'fetch_timeout_seconds',
    'SITEMAP_MAX_BYTES': 'max_sitemap_bytes',
    'SITEMAP_RECENCY_HALF_LIFE_DAYS': 'recency_half_life_days',
    'SITEMAP_CHANGE_FREQUENCY_WEIGHT': 'change_frequency_weight',
    'SITEMAP_ROBOTS_CACHE_TTL_SECONDS': 'robots_cache_ttl_seconds',
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {'1', 'true', 'yes', 'on'}


@dataclass(frozen=True)
class SitemapOptions:
    """
    Service-wide defaults for sitemap crawls.

    Attributes:
        max_pages: Maximum pages processed per crawl
        max_depth: Maximum sitemap-index recursion depth (root = 0)
        max_concurrency: Pages processed in parallel
        throttle_milliseconds: Pause per worker after each page
        respect_robots_txt: Whether robots.txt rules are enforced
        user_agent: User-Agent header and robots.txt agent token source
        fetch_timeout_seconds: Timeout for one sitemap fetch
        max_sitemap_bytes: Largest sitemap document accepted
        recency_half_life_days: Half-life of the lastmod recency score
        change_frequency_weight: Weight of changefreq vs recency in [0, 1]
        robots_cache_ttl_seconds: Lifetime of cached robots.txt rules
    """

    max_pages: int = constants.DEFAULT_MAX_PAGES
    max_depth: int = constants.DEFAULT_MAX_DEPTH
    max_concurrency: int = constants.DEFAULT_MAX_CONCURRENCY
    throttle_milliseconds: int = constants.DEFAULT_THROTTLE_MILLISECONDS
    respect_robots_txt: bool = constants.DEFAULT_RESPECT_ROBOTS_TXT
    user_agent: str = constants.DEFAULT_USER_AGENT
    fetch_timeout_seconds: float = constants.DEFAULT_FETCH_TIMEOUT_SECONDS
    max_sitemap_bytes: int = constants.DEFAULT_MAX_SITEMAP_BYTES
    recency_half_life_days: float = constants.DEFAULT_RECENCY_HALF_LIFE_DAYS
    change_frequency_weight: float = constants.DEFAULT_CHANGE_FREQUENCY_WEIGHT
    robots_cache_ttl_seconds: float = constants.DEFAULT_ROBOTS_CACHE_TTL_SECONDS

    def __post_init__(self):
        if self.max_pages < 0:
            raise ConfigurationError(f"max_pages must be >= 0, got {self.max_pages}")
        if self.max_depth < 0:
            raise ConfigurationError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"max_concurrency must be >= 1, got {self.max_concurrency}"
            )
        if self.throttle_milliseconds < 0:
            raise ConfigurationError(
                f"throttle_milliseconds must be >= 0, got {self.throttle_milliseconds}"
            )
        if self.fetch_timeout_seconds <= 0:
            raise ConfigurationError(
                f"fetch_timeout_seconds must be > 0, got {self.fetch_timeout_seconds}"
            )
        if self.max_sitemap_bytes <= 0:
            raise ConfigurationError(
                f"max_sitemap_bytes must be > 0, got {self.max_sitemap_bytes}"
            )
        if self.robots_cache_ttl_seconds <= 0:
            raise ConfigurationError(
                f"robots_cache_ttl_seconds must be > 0, got {self.robots_cache_ttl_seconds}"
            )
        if not self.user_agent or not self.user_agent.strip():
            raise ConfigurationError("user_agent must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage or logging."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SitemapOptions':
        """
        Create SitemapOptions from a mapping, falling back to defaults.

        Values are coerced, so strings from the environment and Decimals
        from DynamoDB are both accepted.

        Raises:
            ConfigurationError: If a value cannot be coerced or is out of range
        """
        defaults = cls()
        try:
            return cls(
                max_pages=int(data.get('max_pages', defaults.max_pages)),
                max_depth=int(data.get('max_depth', defaults.max_depth)),
                max_concurrency=int(data.get('max_concurrency', defaults.max_concurrency)),
                throttle_milliseconds=int(
                    data.get('throttle_milliseconds', defaults.throttle_milliseconds)
                ),
                respect_robots_txt=_parse_bool(
                    data.get('respect_robots_txt', defaults.respect_robots_txt)
                ),
                user_agent=str(data.get('user_agent', defaults.user_agent)),
                fetch_timeout_seconds=float(
                    data.get('fetch_timeout_seconds', defaults.fetch_timeout_seconds)
                ),
                max_sitemap_bytes=int(data.get('max_sitemap_bytes', defaults.max_sitemap_bytes)),
                recency_half_life_days=float(
                    data.get('recency_half_life_days', defaults.recency_half_life_days)
                ),
                change_frequency_weight=float(
                    data.get('change_frequency_weight', defaults.change_frequency_weight)
                ),
                robots_cache_ttl_seconds=float(
                    data.get('robots_cache_ttl_seconds', defaults.robots_cache_ttl_seconds)
                ),
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid sitemap option value: {e}") from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'SitemapOptions':
        """Create SitemapOptions from ``SITEMAP_*`` environment variables."""
        environ = os.environ if environ is None else environ
        data = {
            field_name: environ[env_name]
            for env_name, field_name in ENV_VARS.items()
            if environ.get(env_name, '').strip()
        }
        return cls.from_dict(data)


class ConfigurationManager:
    """
    Reads crawl configuration from a DynamoDB table.

    The table has a single partition key 'Configuration' with the reserved
    values Default and Custom. The effective configuration is Custom merged
    over Default, and the ``sitemap`` map within it feeds SitemapOptions.

    Usage:
        config_manager = ConfigurationManager()
        options = config_manager.get_sitemap_options()

    Design Decisions:
        - No caching: reads from DynamoDB on every call
        - Fails fast: ClientError propagates to the caller
    """

    def __init__(self, table_name: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            table_name: Configuration table name. If not provided, reads from
                       CONFIGURATION_TABLE_NAME environment variable.

        Raises:
            ValueError: If table_name not provided and env var not set
        """
        table_name = table_name or os.environ.get('CONFIGURATION_TABLE_NAME')
        if not table_name:
            raise ValueError(
                "Configuration table name not provided. "
                "Set CONFIGURATION_TABLE_NAME environment variable or provide table_name parameter."
            )

        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        self.table_name = table_name

        logger.info(f"Initialized ConfigurationManager with table: {table_name}")

    def get_configuration_item(self, config_type: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve one configuration item ('Default' or 'Custom').

        Returns:
            Configuration dictionary if found, None if the item doesn't exist

        Raises:
            ClientError: If DynamoDB access fails
        """
        try:
            response = self.table.get_item(Key={'Configuration': config_type})
        except ClientError:
            logger.exception(f"Error retrieving {config_type} configuration")
            raise

        item = response.get('Item')
        if not item:
            logger.warning(f"{config_type} configuration not found in {self.table_name}")
        return item

    def get_effective_config(self) -> Dict[str, Any]:
        """
        Get effective configuration by merging Custom over Default.

        Raises:
            ClientError: If DynamoDB access fails
        """
        default_config = self._remove_partition_key(self.get_configuration_item('Default'))
        custom_config = self._remove_partition_key(self.get_configuration_item('Custom'))

        effective_config = deepcopy(default_config)
        effective_config.update(custom_config)

        logger.debug(f"Effective configuration keys: {list(effective_config.keys())}")
        return effective_config

    def get_sitemap_options(self) -> SitemapOptions:
        """
        Build SitemapOptions from the ``sitemap`` map of the effective config.

        Raises:
            ClientError: If DynamoDB access fails
            ConfigurationError: If a stored value is invalid
        """
        sitemap_config = self.get_effective_config().get('sitemap') or {}
        if not isinstance(sitemap_config, dict):
            raise ConfigurationError("'sitemap' configuration entry must be a map")
        return SitemapOptions.from_dict(sitemap_config)

    def update_custom_config(self, custom_config: Dict[str, Any]) -> None:
        """
        Replace the Custom configuration item.

        Raises:
            ClientError: If DynamoDB write fails
        """
        safe_config = {k: v for k, v in custom_config.items() if k != 'Configuration'}
        try:
            self.table.put_item(Item={'Configuration': 'Custom', **safe_config})
        except ClientError:
            logger.exception("Error updating Custom configuration")
            raise

        logger.info("Updated Custom configuration")

    @staticmethod
    def _remove_partition_key(item: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Return a copy of a DynamoDB item without the 'Configuration' key."""
        if not item:
            return {}

        item_copy = dict(item)
        item_copy.pop('Configuration', None)
        return item_copy
