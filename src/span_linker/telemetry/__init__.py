"""Telemetry module for structured logging.

This module provides:
- Structured logging via structlog
- Semantic event constants
"""

from span_linker.telemetry.events import (
    RUN_CREATE_FAILED,
    RUN_CREATED,
    RUN_UPDATE_FAILED,
    RUN_UPDATED,
    SPAN_OPTIONS_INVALID,
    SPAN_PAYLOAD_ENCODING_FAILED,
    SPAN_STATE_MISSING,
    STREAM_AGGREGATION_FAILED,
    STREAM_CLOSE_FAILED,
    STREAM_INPUT_ERROR,
    STREAM_OUTPUT_ERROR,
    STREAM_TASK_CRASHED,
    TRACE_HANDOFF_ENCODE_FAILED,
    TRACE_HANDOFF_DECODE_FAILED,
    TRACE_RESUMED,
)
from span_linker.telemetry.logger import configure_logging, get_logger

__all__ = [
    "get_logger",
    "configure_logging",
    # Event constants
    "RUN_CREATED",
    "RUN_UPDATED",
    "RUN_CREATE_FAILED",
    "RUN_UPDATE_FAILED",
    "SPAN_STATE_MISSING",
    "SPAN_PAYLOAD_ENCODING_FAILED",
    "SPAN_OPTIONS_INVALID",
    "STREAM_INPUT_ERROR",
    "STREAM_OUTPUT_ERROR",
    "STREAM_AGGREGATION_FAILED",
    "STREAM_TASK_CRASHED",
    "STREAM_CLOSE_FAILED",
    "TRACE_HANDOFF_ENCODE_FAILED",
    "TRACE_HANDOFF_DECODE_FAILED",
    "TRACE_RESUMED",
]
