"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
Environment = Literal["development", "staging", "production"]


class FetchConfig(BaseModel):
    """Per-call fetch behaviour of the orchestrator."""

    metric_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for a single metric's fetch task"
    )
    latest_lookback_days: int = Field(
        default=7, gt=0, description="How far back a latest-value lookup may reach"
    )
    timezone: str = Field(default="UTC", description="IANA timezone that defines calendar days")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class CacheConfig(BaseModel):
    """Result cache for whole-period fetches."""

    enabled: bool = Field(default=True, description="Cache fetch results per period")
    ttl_seconds: float = Field(default=3600.0, gt=0.0, description="Cache entry lifetime")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Environment = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def _env_to_literal(val: str) -> Environment:
    v = val.strip().lower()
    if v in {"dev", "development"}:
        return "development"
    if v in {"stage", "staging"}:
        return "staging"
    return "production"


def _level_to_literal(val: str) -> LogLevel:
    v = val.strip().upper()
    return cast(LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO")


def _parse_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    fetch_config = FetchConfig(
        metric_timeout_seconds=float(os.getenv("HEALTHSPAN_METRIC_TIMEOUT_SECONDS", "10.0")),
        latest_lookback_days=int(os.getenv("HEALTHSPAN_LATEST_LOOKBACK_DAYS", "7")),
        timezone=os.getenv("HEALTHSPAN_TIMEZONE", "UTC"),
    )

    cache_config = CacheConfig(
        enabled=_parse_bool(os.getenv("HEALTHSPAN_CACHE_ENABLED"), True),
        ttl_seconds=float(os.getenv("HEALTHSPAN_CACHE_TTL_SECONDS", "3600")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        fetch=fetch_config,
        cache=cache_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def reset_config_cache() -> None:
    """Forget the cached configuration so the next get_config() re-reads the environment."""
    get_config.cache_clear()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
        print(f"Calendar days use timezone {config.fetch.timezone}")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level} ({config.logging.format})")

    print("\nFETCH CONFIGURATION")
    print(f"Metric Timeout: {config.fetch.metric_timeout_seconds}s")
    print(f"Latest Lookback: {config.fetch.latest_lookback_days}d")
    print(f"Timezone: {config.fetch.timezone}")

    print("\nCACHE CONFIGURATION")
    print(f"Enabled: {config.cache.enabled}")
    print(f"TTL: {config.cache.ttl_seconds}s")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
