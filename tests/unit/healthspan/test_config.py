"""
Tests for configuration management in `healthspan/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- Fetch and cache settings read from HEALTHSPAN_* variables
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from healthspan.config import (
    AppConfig,
    CacheConfig,
    FetchConfig,
    LoggingConfig,
    get_config,
    load_config_from_env,
    reset_config_cache,
)

HEALTHSPAN_VARS = (
    "HEALTHSPAN_METRIC_TIMEOUT_SECONDS",
    "HEALTHSPAN_LATEST_LOOKBACK_DAYS",
    "HEALTHSPAN_TIMEZONE",
    "HEALTHSPAN_CACHE_ENABLED",
    "HEALTHSPAN_CACHE_TTL_SECONDS",
)


@pytest.fixture(autouse=True)
def clear_config_cache(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from a clean environment and an empty get_config cache."""
    for name in HEALTHSPAN_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.fetch.metric_timeout_seconds == 10.0
    assert config.fetch.latest_lookback_days == 7
    assert config.fetch.timezone == "UTC"
    assert config.cache.enabled is True
    assert config.cache.ttl_seconds == 3600.0


def test_production_logs_json_without_debug(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_fetch_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setenv("HEALTHSPAN_METRIC_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("HEALTHSPAN_LATEST_LOOKBACK_DAYS", "3")
    monkeypatch.setenv("HEALTHSPAN_TIMEZONE", "Europe/Berlin")

    config = load_config_from_env()

    assert config.fetch.metric_timeout_seconds == 2.5
    assert config.fetch.latest_lookback_days == 3
    assert config.fetch.tzinfo.key == "Europe/Berlin"


def test_cache_boolean_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HEALTHSPAN_CACHE_ENABLED", "false")
    assert load_config_from_env().cache.enabled is False

    monkeypatch.setenv("HEALTHSPAN_CACHE_ENABLED", "1")
    monkeypatch.setenv("HEALTHSPAN_CACHE_TTL_SECONDS", "120")
    config = load_config_from_env()
    assert config.cache.enabled is True
    assert config.cache.ttl_seconds == 120.0


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    config = load_config_from_env()
    assert config.logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    config = load_config_from_env()
    assert config.logging.level == "ERROR"


def test_unknown_timezone_fails_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HEALTHSPAN_TIMEZONE", "Mars/Olympus_Mons")

    with pytest.raises(ValidationError, match="Unknown timezone"):
        load_config_from_env()


def test_non_positive_timeout_is_rejected() -> None:
    with pytest.raises(ValidationError):
        FetchConfig(metric_timeout_seconds=0)


def test_get_config_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    c1 = get_config()
    c2 = get_config()
    assert c1 is c2

    # Changing env should not affect cached value until cleared
    monkeypatch.setenv("ENVIRONMENT", "production")
    c3 = get_config()
    assert c3 is c1

    reset_config_cache()
    c4 = get_config()
    assert c4 is not c1
    assert c4.environment == "production"


def test_app_config_debug_only_in_development() -> None:
    with pytest.raises(ValueError):
        AppConfig(
            environment="production",
            debug=True,
            fetch=FetchConfig(),
            cache=CacheConfig(),
            logging=LoggingConfig(),
        )
