"""
Unit Tests for Configuration Module

These tests verify that the configuration system works correctly:
- Default values are applied when needed
- Comma-separated endpoint variants and CORS origins become lists
- Validation catches invalid configurations

Run with:
    pytest tests/unit/test_config.py -v
"""

import pytest

from core.config import Settings, settings, validate_configuration


class TestConfigurationLoading:
    """Test that configuration loads with usable values"""

    def test_injective_api_url_loaded(self):
        """Verify Injective API URL is set"""
        assert settings.injective_api_url is not None
        assert settings.injective_api_url.startswith("http")

    def test_app_port_is_valid_integer(self):
        assert isinstance(settings.app_port, int)
        assert 1 <= settings.app_port <= 65535

    def test_defaults(self):
        """Verify documented defaults when nothing is overridden"""
        config = Settings(_env_file=None)
        assert config.injective_api_url == "https://api.injective.exchange"
        assert config.injective_api_timeout == 10.0
        assert config.injective_api_cache_ttl == 5.0
        assert config.injective_api_rate_limit_per_minute == 60
        assert config.enable_api_metrics is True
        assert config.api_metrics_max_entries == 10_000
        assert config.cache_ttl == 10.0

    def test_environment_variable_override(self, monkeypatch):
        monkeypatch.setenv("INJECTIVE_API_TIMEOUT", "2.5")
        monkeypatch.setenv("ENABLE_API_METRICS", "false")
        config = Settings(_env_file=None)
        assert config.injective_api_timeout == 2.5
        assert config.enable_api_metrics is False


class TestEndpointVariantParsing:
    """Test that path variants are parsed from comma-separated strings"""

    def test_default_variants_in_order(self):
        config = Settings(_env_file=None)
        assert config.markets_endpoints_list == ["/api/exchange/v1/markets", "/markets", "/api/v1/markets"]
        assert config.orderbook_endpoints_list[0] == "/api/exchange/v1/orderbooks"
        assert config.trades_endpoints_list[0] == "/api/exchange/v1/trades"

    def test_whitespace_and_empty_items_dropped(self):
        config = Settings(_env_file=None, markets_endpoints=" /a , ,/b,")
        assert config.markets_endpoints_list == ["/a", "/b"]

    def test_endpoint_variants_mapping(self):
        config = Settings(_env_file=None)
        assert set(config.endpoint_variants) == {"markets", "orderbook", "trades"}

    def test_cors_origins_list(self):
        config = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
        assert config.cors_origins_list == ["http://a.test", "http://b.test"]


class TestConfigurationProperties:
    """Test computed values"""

    def test_cache_bound_none_when_zero(self):
        assert Settings(_env_file=None, cache_max_entries=0).cache_bound is None

    def test_cache_bound_when_positive(self):
        assert Settings(_env_file=None, cache_max_entries=500).cache_bound == 500


class TestConfigurationValidation:
    """Test configuration validation function"""

    def test_validate_configuration_succeeds(self):
        """Verify validation passes with default configuration"""
        try:
            validate_configuration(Settings(_env_file=None))
        except ValueError as e:
            pytest.fail(f"Configuration validation failed: {e}")

    @pytest.mark.parametrize("overrides", [
        {"injective_api_url": "ftp://api.injective.exchange"},
        {"injective_api_url": "not a url"},
        {"injective_api_timeout": 0},
        {"injective_api_cache_ttl": -1},
        {"cache_ttl": 0},
        {"injective_api_rate_limit_per_minute": 0},
        {"api_metrics_max_entries": 0},
        {"cache_max_entries": -1},
        {"markets_endpoints": " , "},
        {"trades_endpoints": "trades"},
        {"app_port": 70000},
        {"log_level": "VERBOSE"},
    ])
    def test_validation_rejects_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            validate_configuration(Settings(_env_file=None, **overrides))

    def test_log_level_case_insensitive(self):
        validate_configuration(Settings(_env_file=None, log_level="debug"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
