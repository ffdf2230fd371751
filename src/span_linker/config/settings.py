"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

from span_linker.config.env_loader import Environment, get_environment, load_env_files
from span_linker.config.validators import (
    resolve_optional_path,
    validate_log_format,
    validate_log_level,
)
from span_linker.telemetry.logger import configure_logging

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified span-linker configuration.

    Loads configuration from environment variables, .env files, and defaults.
    Validates all values using Pydantic.
    """

    model_config = SettingsConfigDict(
        # .env files are loaded by env_loader so environment-specific files keep
        # their priority order; values are read from os.environ here.
        env_prefix="SPAN_LINKER_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )

    # Telemetry
    log_dir: Path | None = Field(
        default=None, description="JSON log directory (unset disables file logging)"
    )
    log_level: str = Field(
        default="INFO",
        alias="APP_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="console", alias="APP_LOG_FORMAT", description="Log format (json or console)"
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=True, description="Master switch; when off every span is treated as untraced"
    )
    default_session_name: str = Field(
        default="default",
        description="Session (project) name applied to traces that do not set one",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("log_dir", mode="before")
    @classmethod
    def resolve_log_dir(cls, v: Path | str | None) -> Path | None:
        """Resolve the log directory to an absolute path."""
        return resolve_optional_path(v)


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load and validate application configuration.

    Reads .env files first, then reconfigures logging with the loaded
    log level, log directory and log format.

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    log.info("loading_app_config", environment=get_environment().value)

    load_env_files()

    try:
        config = AppConfig()
        configure_logging(config)
        log.info(
            "app_config_loaded",
            environment=config.environment.value,
            log_level=config.log_level,
            tracing_enabled=config.tracing_enabled,
        )
        return config
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise


def get_settings() -> AppConfig:
    """Get the application settings singleton.

    Returns:
        AppConfig instance (singleton pattern).
    """
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
