"""Unit tests for sitemap options and the DynamoDB configuration manager."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from sitemap_ingest import constants
from sitemap_ingest.config import ConfigurationManager, SitemapOptions
from sitemap_ingest.exceptions import ConfigurationError


class TestSitemapOptions:
    """Tests for SitemapOptions."""

    def test_defaults(self):
        options = SitemapOptions()

        assert options.max_pages == constants.DEFAULT_MAX_PAGES
        assert options.max_depth == constants.DEFAULT_MAX_DEPTH
        assert options.max_concurrency == constants.DEFAULT_MAX_CONCURRENCY
        assert options.throttle_milliseconds == constants.DEFAULT_THROTTLE_MILLISECONDS
        assert options.respect_robots_txt is True
        assert options.user_agent == constants.DEFAULT_USER_AGENT

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_pages": -1},
            {"max_depth": -1},
            {"max_concurrency": 0},
            {"throttle_milliseconds": -5},
            {"fetch_timeout_seconds": 0},
            {"max_sitemap_bytes": 0},
            {"robots_cache_ttl_seconds": 0},
            {"user_agent": "  "},
        ],
    )
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ConfigurationError):
            SitemapOptions(**overrides)

    def test_from_dict_coerces_values(self):
        options = SitemapOptions.from_dict(
            {
                "max_pages": Decimal("50"),
                "max_depth": "1",
                "respect_robots_txt": "false",
                "change_frequency_weight": Decimal("0.5"),
            }
        )

        assert options.max_pages == 50
        assert options.max_depth == 1
        assert options.respect_robots_txt is False
        assert options.change_frequency_weight == 0.5
        assert options.max_concurrency == constants.DEFAULT_MAX_CONCURRENCY

    def test_from_dict_wraps_bad_values(self):
        with pytest.raises(ConfigurationError, match="Invalid sitemap option value"):
            SitemapOptions.from_dict({"max_pages": "lots"})

    def test_from_dict_keeps_range_errors(self):
        with pytest.raises(ConfigurationError, match="max_concurrency"):
            SitemapOptions.from_dict({"max_concurrency": 0})

    def test_from_env(self):
        environ = {
            "SITEMAP_MAX_PAGES": "10",
            "SITEMAP_THROTTLE_MS": "0",
            "SITEMAP_RESPECT_ROBOTS_TXT": "no",
            "SITEMAP_USER_AGENT": "DocsBot/2.0",
            "SITEMAP_MAX_DEPTH": "",
        }

        options = SitemapOptions.from_env(environ)

        assert options.max_pages == 10
        assert options.throttle_milliseconds == 0
        assert options.respect_robots_txt is False
        assert options.user_agent == "DocsBot/2.0"
        assert options.max_depth == constants.DEFAULT_MAX_DEPTH

    def test_to_dict(self):
        data = SitemapOptions(max_pages=7).to_dict()
        assert data["max_pages"] == 7
        assert "robots_cache_ttl_seconds" in data


class TestConfigurationManager:
    """Tests for ConfigurationManager."""

    @pytest.fixture
    def mock_table(self):
        with patch("sitemap_ingest.config.boto3.resource") as mock_resource:
            table = MagicMock()
            mock_resource.return_value.Table.return_value = table
            yield table

    def test_requires_table_name(self, monkeypatch):
        monkeypatch.delenv("CONFIGURATION_TABLE_NAME", raising=False)
        with pytest.raises(ValueError, match="Configuration table name not provided"):
            ConfigurationManager()

    def test_table_name_from_env(self, monkeypatch, mock_table):
        monkeypatch.setenv("CONFIGURATION_TABLE_NAME", "config-table")
        manager = ConfigurationManager()
        assert manager.table_name == "config-table"

    def test_effective_config_merges_custom_over_default(self, mock_table):
        items = {
            "Default": {"Configuration": "Default", "sitemap": {"max_pages": 100}, "a": 1},
            "Custom": {"Configuration": "Custom", "sitemap": {"max_pages": 20}},
        }
        mock_table.get_item.side_effect = lambda Key: {"Item": items[Key["Configuration"]]}

        manager = ConfigurationManager(table_name="config-table")
        effective = manager.get_effective_config()

        assert effective == {"sitemap": {"max_pages": 20}, "a": 1}

    def test_missing_items_give_empty_config(self, mock_table):
        mock_table.get_item.return_value = {}

        manager = ConfigurationManager(table_name="config-table")

        assert manager.get_effective_config() == {}
        assert manager.get_sitemap_options() == SitemapOptions()

    def test_get_sitemap_options(self, mock_table):
        items = {
            "Default": {
                "Configuration": "Default",
                "sitemap": {"max_pages": Decimal("100"), "throttle_milliseconds": Decimal("0")},
            },
            "Custom": {"Configuration": "Custom"},
        }
        mock_table.get_item.side_effect = lambda Key: {"Item": items[Key["Configuration"]]}

        options = ConfigurationManager(table_name="config-table").get_sitemap_options()

        assert options.max_pages == 100
        assert options.throttle_milliseconds == 0

    def test_sitemap_entry_must_be_a_map(self, mock_table):
        mock_table.get_item.return_value = {
            "Item": {"Configuration": "Default", "sitemap": "nope"}
        }

        with pytest.raises(ConfigurationError):
            ConfigurationManager(table_name="config-table").get_sitemap_options()

    def test_client_error_propagates(self, mock_table):
        mock_table.get_item.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "missing"}}, "GetItem"
        )

        with pytest.raises(ClientError):
            ConfigurationManager(table_name="config-table").get_effective_config()

    def test_update_custom_config_strips_partition_key(self, mock_table):
        manager = ConfigurationManager(table_name="config-table")
        manager.update_custom_config({"Configuration": "Default", "sitemap": {"max_pages": 5}})

        mock_table.put_item.assert_called_once_with(
            Item={"Configuration": "Custom", "sitemap": {"max_pages": 5}}
        )
