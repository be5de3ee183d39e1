"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from storefront.domain.exceptions import ConfigurationError
from storefront.domain.model.value_objects import DEFAULT_CURRENCY

# src/storefront/infrastructure/config.py -> repository root; data/ lives beside src/
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_DATA_DIR = _PROJECT_ROOT / "data"

PAYMENT_PROVIDERS = ("stripe", "razorpay")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("console", "json")


@dataclass(frozen=True)
class Settings:
    database_url: str
    catalog_path: Path
    currency: str = DEFAULT_CURRENCY
    payment_provider: str = "razorpay"
    stripe_secret_key: str = ""
    frontend_url: str = "http://localhost:3000"
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    shipping_webhook_secret: str = ""
    webhook_max_attempts: int = 3
    webhook_retry_seconds: int = 30
    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        provider = env.get("STOREFRONT_PAYMENT_PROVIDER", "razorpay").strip().lower()
        if provider not in PAYMENT_PROVIDERS:
            raise ConfigurationError(
                f"STOREFRONT_PAYMENT_PROVIDER must be one of {', '.join(PAYMENT_PROVIDERS)}, "
                f"got '{provider}'"
            )

        max_attempts = _int_setting(env, "STOREFRONT_WEBHOOK_MAX_ATTEMPTS", 3, minimum=1)
        retry_seconds = _int_setting(env, "STOREFRONT_WEBHOOK_RETRY_SECONDS", 30, minimum=0)

        log_level = env.get("STOREFRONT_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level '{log_level}'")
        log_format = env.get("STOREFRONT_LOG_FORMAT", "console").strip().lower()
        if log_format not in LOG_FORMATS:
            raise ConfigurationError(f"Unknown log format '{log_format}'")

        currency = env.get("STOREFRONT_CURRENCY", DEFAULT_CURRENCY).strip().upper()
        if len(currency) != 3:
            raise ConfigurationError(f"Currency must be a 3-letter code, got '{currency}'")

        return cls(
            database_url=env.get(
                "STOREFRONT_DATABASE_URL", f"sqlite:///{_DATA_DIR / 'storefront.db'}"
            ),
            catalog_path=Path(
                env.get("STOREFRONT_CATALOG_PATH", str(_DATA_DIR / "catalog.json"))
            ),
            currency=currency,
            payment_provider=provider,
            stripe_secret_key=env.get("STRIPE_SECRET_KEY", ""),
            frontend_url=env.get("STOREFRONT_FRONTEND_URL", "http://localhost:3000"),
            razorpay_key_id=env.get("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=env.get("RAZORPAY_KEY_SECRET", ""),
            razorpay_webhook_secret=env.get("RAZORPAY_WEBHOOK_SECRET", ""),
            shipping_webhook_secret=env.get("SHIPPING_WEBHOOK_SECRET", ""),
            webhook_max_attempts=max_attempts,
            webhook_retry_seconds=retry_seconds,
            log_level=log_level,
            log_format=log_format,
        )


def _int_setting(env, name: str, default: int, minimum: int) -> int:
    raw = env.get(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be at least {minimum}")
    return value
