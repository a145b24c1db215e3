"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Safe defaults that match the field backend
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from core.domain.models import SortKey

# Load environment variables from .env file
load_dotenv()

DEFAULT_ROSTER_URL = "http://127.0.0.1:5000/api/soldier_data"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DashboardConfig(BaseModel):
    """Roster polling and view configuration."""

    roster_url: str = Field(default=DEFAULT_ROSTER_URL, description="Roster endpoint URL")
    refresh_interval_seconds: float = Field(
        default=5.0, gt=0.0, description="Interval between roster fetches"
    )
    request_timeout_seconds: float = Field(
        default=4.0, gt=0.0, description="Timeout for a single roster request"
    )
    trend_capacity_ticks: int = Field(
        default=120, gt=0, description="Number of refresh ticks kept in the trend buffer"
    )
    roster_source: Literal["http", "simulated"] = Field(
        default="http", description="Where roster snapshots come from"
    )
    initial_sort_key: SortKey = Field(
        default=SortKey.SOLDIER_ID, description="Sort column when the dashboard opens"
    )
    initial_filter_text: str = Field(
        default="", description="Soldier id filter when the dashboard opens"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO")

    def _source_to_literal(val: str) -> Literal["http", "simulated"]:
        return "simulated" if val.strip().lower() in {"sim", "simulated", "demo"} else "http"

    def _sort_key_to_enum(val: str) -> SortKey:
        v = val.strip().lower()
        for key in SortKey:
            if v in {key.value.lower(), key.name.lower()}:
                return key
        return SortKey.SOLDIER_ID

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    dashboard_config = DashboardConfig(
        roster_url=os.getenv("ROSTER_URL", DEFAULT_ROSTER_URL).strip() or DEFAULT_ROSTER_URL,
        refresh_interval_seconds=float(os.getenv("REFRESH_INTERVAL_SECONDS", "5.0")),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "4.0")),
        trend_capacity_ticks=int(os.getenv("TREND_CAPACITY_TICKS", "120")),
        roster_source=_source_to_literal(os.getenv("ROSTER_SOURCE", "http")),
        initial_sort_key=_sort_key_to_enum(os.getenv("SORT_KEY", SortKey.SOLDIER_ID.value)),
        initial_filter_text=os.getenv("FILTER_TEXT", ""),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        dashboard=dashboard_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def configure_logging(logging_config: LoggingConfig | None = None) -> None:
    """(Re)configure structlog and the stdlib root level."""
    logging_config = logging_config or LoggingConfig()
    level = getattr(logging, logging_config.level)
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if logging_config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level} ({config.logging.format})")

    print("\nDASHBOARD CONFIGURATION")
    print(f"Roster Source: {config.dashboard.roster_source}")
    print(f"Roster URL: {config.dashboard.roster_url}")
    print(f"Refresh Interval: {config.dashboard.refresh_interval_seconds}s")
    print(f"Request Timeout: {config.dashboard.request_timeout_seconds}s")
    print(f"Trend Capacity: {config.dashboard.trend_capacity_ticks} ticks")
    print(f"Initial Sort: {config.dashboard.initial_sort_key.value}")
    print(f"Initial Filter: {config.dashboard.initial_filter_text!r}")


if __name__ == "__main__":
    print_config_summary()
