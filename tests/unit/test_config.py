"""
Unit Tests for Configuration Module

These tests verify that the configuration system works correctly:
- Default values are applied when needed
- Validation catches invalid configurations
- Property methods work as expected

Run with:
    pytest tests/unit/test_config.py -v
"""

import pytest
from core.config import SUPPORTED_EXCHANGES, Settings, settings, validate_configuration


class TestConfigurationLoading:
    """Test that configuration loads with sane values"""

    def test_bitflyer_urls_loaded(self):
        """Verify bitFlyer endpoints are set"""
        assert settings.bitflyer_ws_url.startswith("wss://")
        assert settings.bitflyer_rest_url.startswith("http")

    def test_liquid_url_loaded(self):
        assert settings.liquid_ws_url.startswith("wss://")

    def test_app_port_is_valid_integer(self):
        """Verify app port is a valid integer"""
        assert isinstance(settings.app_port, int)
        assert 1 <= settings.app_port <= 65535

    def test_debug_mode_is_boolean(self):
        """Verify debug setting is a boolean"""
        assert isinstance(settings.debug, bool)

    def test_log_level_is_set(self):
        """Verify log level is configured"""
        assert isinstance(settings.log_level, str)
        assert len(settings.log_level) > 0


class TestDefaults:
    """Test the built-in defaults, independent of the environment"""

    def test_reconnect_policy_defaults(self):
        """Verify the default policy is 3 attempts, 10 s step, 100 ms jitter"""
        defaults = Settings(_env_file=None)

        assert defaults.retry_limit == 3
        assert defaults.retry_interval_ms == 10_000
        assert defaults.retry_jitter_ms == 100

    def test_product_defaults(self):
        defaults = Settings(_env_file=None)

        assert defaults.bitflyer_product_code == "FX_BTC_JPY"
        assert defaults.liquid_currency_pair == "btcjpy"

    def test_environment_overrides(self, monkeypatch):
        """Verify environment variables override defaults"""
        monkeypatch.setenv("RETRY_LIMIT", "5")
        monkeypatch.setenv("ENABLED_EXCHANGES", "liquid")

        overridden = Settings(_env_file=None)

        assert overridden.retry_limit == 5
        assert overridden.exchanges_list == ["liquid"]


class TestExchangesParsing:
    """Test that exchanges are parsed from the comma-separated string"""

    def test_exchanges_list_normalized(self):
        """Verify whitespace, case and empty entries are cleaned up"""
        parsed = Settings(_env_file=None, enabled_exchanges=" BitFlyer , liquid,, ")

        assert parsed.exchanges_list == ["bitflyer", "liquid"]

    def test_configured_exchanges_supported(self):
        for exchange in settings.exchanges_list:
            assert exchange in SUPPORTED_EXCHANGES


class TestValidation:
    """Test validate_configuration()"""

    def test_current_configuration_valid(self):
        validate_configuration()

    @pytest.mark.parametrize("field,value,message", [
        ("enabled_exchanges", "", "at least one exchange"),
        ("enabled_exchanges", "bitflyer,mtgox", "Unsupported exchange"),
        ("retry_limit", -1, "RETRY_LIMIT"),
        ("retry_interval_ms", -10, "RETRY_INTERVAL_MS"),
        ("app_port", 70000, "Invalid port"),
        ("log_level", "LOUD", "LOG_LEVEL"),
    ])
    def test_invalid_values_rejected(self, monkeypatch, field, value, message):
        monkeypatch.setattr(settings, field, value)

        with pytest.raises(ValueError, match=message):
            validate_configuration()
