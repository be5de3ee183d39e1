"""Tests for environment-driven settings."""

import pytest

from storefront.domain.exceptions import ConfigurationError
from storefront.infrastructure.config import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.payment_provider == "razorpay"
        assert settings.currency == "INR"
        assert settings.webhook_max_attempts == 3
        assert settings.webhook_retry_seconds == 30
        assert settings.database_url.startswith("sqlite:///")
        assert settings.catalog_path.name == "catalog.json"

    def test_overrides(self):
        settings = Settings.from_env(
            {
                "STOREFRONT_PAYMENT_PROVIDER": "Stripe",
                "STOREFRONT_LOG_LEVEL": "debug",
                "STOREFRONT_LOG_FORMAT": "JSON",
                "STOREFRONT_CURRENCY": "usd",
                "STOREFRONT_WEBHOOK_MAX_ATTEMPTS": "5",
                "STOREFRONT_WEBHOOK_RETRY_SECONDS": "0",
            }
        )
        assert settings.payment_provider == "stripe"
        assert settings.log_level == "DEBUG"
        assert settings.log_format == "json"
        assert settings.currency == "USD"
        assert settings.webhook_max_attempts == 5
        assert settings.webhook_retry_seconds == 0

    @pytest.mark.parametrize(
        "env, message",
        [
            ({"STOREFRONT_PAYMENT_PROVIDER": "paypal"}, "must be one of"),
            ({"STOREFRONT_WEBHOOK_MAX_ATTEMPTS": "many"}, "must be an integer"),
            ({"STOREFRONT_WEBHOOK_MAX_ATTEMPTS": "0"}, "at least 1"),
            ({"STOREFRONT_WEBHOOK_RETRY_SECONDS": "-5"}, "at least 0"),
            ({"STOREFRONT_LOG_LEVEL": "LOUD"}, "Unknown log level"),
            ({"STOREFRONT_CURRENCY": "RUPEE"}, "3-letter code"),
        ],
    )
    def test_invalid_values(self, env, message):
        with pytest.raises(ConfigurationError, match=message):
            Settings.from_env(env)
