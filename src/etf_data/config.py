"""
Configuration schema for the ETF market data engine.

This module defines the configuration hierarchy using Pydantic for
validation. Configuration can be loaded from YAML files with environment
variable overrides.

Example:
    config = MarketDataConfig.from_yaml("config/market_data.yaml")
    print(config.cache.quote_ms)
"""

from __future__ import annotations

import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator
import yaml


DEFAULT_BASE_URL = "https://query1.finance.yahoo.com"

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    ),
    "Accept": "application/json, text/javascript, */*; q=0.01",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}

ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


class LogFormat(str, Enum):
    """Log output format."""
    TEXT = "text"
    JSON = "json"


# ---------------------------------------------------------------------------
# Provider Configuration
# ---------------------------------------------------------------------------

class ProviderConfig(BaseModel):
    """Upstream quote/chart API configuration."""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = Field(default=30.0, gt=0)
    headers: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class RetryConfig(BaseModel):
    """Retry policy for transient upstream failures (HTTP 429, 5xx, network)."""
    max_retries: int = Field(default=3, ge=0, description="Attempts after the first one")
    initial_backoff_ms: float = Field(default=500.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)


class CacheTTLConfig(BaseModel):
    """Time-to-live per cached data kind, in milliseconds."""
    quote_ms: int = Field(default=10_000, ge=0)
    chart_ms: int = Field(default=60_000, ge=0)
    dividend_ms: int = Field(default=6 * 60 * 60 * 1000, ge=0)
    total_returns_ms: int = Field(default=6 * 60 * 60 * 1000, ge=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    format: LogFormat = LogFormat.TEXT
    file_path: Optional[Path] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level


class RefreshConfig(BaseModel):
    """Settings for the batch total-returns refresh job."""
    batch_size: int = Field(default=10, ge=1)
    pause_seconds: float = Field(default=2.0, ge=0)
    timeframe: str = "3Y"


# ---------------------------------------------------------------------------
# Main Configuration
# ---------------------------------------------------------------------------

class MarketDataConfig(BaseModel):
    """
    Root configuration for the market data engine.

    Example:
        config = MarketDataConfig.from_yaml("config/market_data.yaml")
    """

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    cache: CacheTTLConfig = Field(default_factory=CacheTTLConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)

    class Config:
        use_enum_values = True

    @classmethod
    def from_yaml(cls, path: Union[str, Path], env_override: bool = True) -> "MarketDataConfig":
        """
        Read settings from a YAML file.

        Omitted sections keep their production defaults, so a file holding only
        ``provider.base_url`` is a complete config. With *env_override*, every
        ``${NAME}`` placeholder is replaced by that environment variable before
        parsing; unset variables are left as written.

        Raises:
            FileNotFoundError: *path* does not exist.
            ValidationError: A value fails validation, e.g. a negative TTL.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()
        if env_override:
            content = cls._substitute_env_vars(content)

        data = yaml.safe_load(content) or {}
        return cls.model_validate(data)

    @staticmethod
    def _substitute_env_vars(content: str) -> str:
        """Expand ``${NAME}`` placeholders from ``os.environ``."""

        def lookup(match: re.Match) -> str:
            return os.environ.get(match.group(1), match.group(0))

        return ENV_VAR_PATTERN.sub(lookup, content)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Write every setting, defaults included, to *path* in section order."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)


def create_default_config() -> MarketDataConfig:
    """Create a configuration with the production defaults."""
    return MarketDataConfig()


def configure_logging(config: LoggingConfig) -> None:
    """
    Apply *config* to the root logger.

    httpx logs every request at INFO; those lines are only kept at DEBUG.
    """
    if config.format == LogFormat.JSON or config.format == LogFormat.JSON.value:
        fmt = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
    else:
        fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file_path is not None:
        handlers.append(logging.FileHandler(config.file_path))

    logging.basicConfig(level=config.level, format=fmt, handlers=handlers, force=True)
    logging.getLogger("httpx").setLevel(
        logging.NOTSET if config.level == "DEBUG" else logging.WARNING
    )


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_HEADERS",
    "LogFormat",
    "ProviderConfig",
    "RetryConfig",
    "CacheTTLConfig",
    "LoggingConfig",
    "RefreshConfig",
    "MarketDataConfig",
    "create_default_config",
    "configure_logging",
]
