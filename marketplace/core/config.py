"""Environment-driven configuration objects for the client core."""
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from marketplace.core.constants import (
    API_TIMEOUT_SECONDS,
    CHECKOUT_CURRENCY,
    DEFAULT_API_URL,
    DEFAULT_CURRENCY,
)
from marketplace.core.exceptions import ConfigurationException


def _str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"true", "1", "yes", "y"}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationException(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(slots=True)
class Settings:
    api_url: str
    redis_url: str | None
    api_timeout_seconds: int
    default_currency: str
    checkout_currency: str
    log_level: str
    enforce_order_transitions: bool

    @property
    def uses_redis(self) -> bool:
        return bool(self.redis_url)


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    api_url = (os.getenv("API_URL") or DEFAULT_API_URL).rstrip("/")
    timeout = _int_env("API_TIMEOUT_SECONDS", API_TIMEOUT_SECONDS)
    if timeout <= 0:
        raise ConfigurationException("API_TIMEOUT_SECONDS must be positive")

    return Settings(
        api_url=api_url,
        redis_url=os.getenv("REDIS_URL") or None,
        api_timeout_seconds=timeout,
        default_currency=os.getenv("DEFAULT_CURRENCY", DEFAULT_CURRENCY),
        checkout_currency=os.getenv("CHECKOUT_CURRENCY", CHECKOUT_CURRENCY),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        enforce_order_transitions=_str_to_bool(
            os.getenv("ENFORCE_ORDER_TRANSITIONS"), default=True
        ),
    )
