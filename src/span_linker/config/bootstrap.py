"""Bootstrap configuration helpers (pre-settings).

These helpers exist for "chicken-and-egg" situations where logging needs a
small amount of configuration before the full Pydantic settings singleton can
be imported.

Constraints:
- Keep this module dependency-light (no telemetry imports) to avoid circular imports.
- Prefer validating values using existing config validators.
"""

from __future__ import annotations

import os
from pathlib import Path

from span_linker.config.validators import validate_log_format, validate_log_level


def get_bootstrap_log_level(default: str = "INFO") -> str:
    """Get logging level from environment without importing settings.

    Args:
        default: Default log level if not set or invalid.

    Returns:
        Uppercased, validated log level string.
    """
    value = os.getenv("APP_LOG_LEVEL", default)
    try:
        return validate_log_level(value)
    except ValueError:
        return validate_log_level(default)


def get_bootstrap_log_dir() -> Path | None:
    """Get the JSON log directory from environment without importing settings.

    Returns:
        Resolved directory, or None when SPAN_LINKER_LOG_DIR is unset or empty.
    """
    value = os.getenv("SPAN_LINKER_LOG_DIR", "").strip()
    if not value:
        return None
    return Path(value).expanduser().resolve()


def get_bootstrap_log_format(default: str = "console") -> str:
    """Get the console log format from environment without importing settings.

    Args:
        default: Format used when APP_LOG_FORMAT is unset or invalid.

    Returns:
        "json" or "console".
    """
    value = os.getenv("APP_LOG_FORMAT", default)
    try:
        return validate_log_format(value)
    except ValueError:
        return validate_log_format(default)
