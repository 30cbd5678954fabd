from __future__ import annotations

import pytest

import marketplace.core.config as config_module
from marketplace.core.config import load_settings
from marketplace.core.exceptions import ConfigurationException

ENV_VARS = (
    "API_URL",
    "REDIS_URL",
    "API_TIMEOUT_SECONDS",
    "DEFAULT_CURRENCY",
    "CHECKOUT_CURRENCY",
    "LOG_LEVEL",
    "ENFORCE_ORDER_TRANSITIONS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.api_url == "https://amazon-group-app.onrender.com/api"
    assert settings.redis_url is None
    assert not settings.uses_redis
    assert settings.api_timeout_seconds == 30
    assert settings.default_currency == "USD"
    assert settings.checkout_currency == "PEN"
    assert settings.log_level == "INFO"
    assert settings.enforce_order_transitions is True


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("API_URL", "http://localhost:3000/api/")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/1")
    monkeypatch.setenv("API_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("ENFORCE_ORDER_TRANSITIONS", "false")

    settings = load_settings()

    assert settings.api_url == "http://localhost:3000/api"
    assert settings.uses_redis
    assert settings.api_timeout_seconds == 5
    assert settings.log_level == "DEBUG"
    assert settings.enforce_order_transitions is False


@pytest.mark.parametrize("value", ["abc", "0", "-3"])
def test_invalid_timeout(monkeypatch, value) -> None:
    monkeypatch.setenv("API_TIMEOUT_SECONDS", value)

    with pytest.raises(ConfigurationException):
        load_settings()
