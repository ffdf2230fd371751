"""Configuration management for span-linker.

Environment variables, .env files, and defaults are merged into a single
validated AppConfig.
"""

from span_linker.config.env_loader import Environment, get_environment, load_env_files
from span_linker.config.settings import AppConfig, get_settings, load_app_config, reset_settings

__all__ = [
    "AppConfig",
    "get_settings",
    "load_app_config",
    "reset_settings",
    "Environment",
    "get_environment",
    "load_env_files",
]
