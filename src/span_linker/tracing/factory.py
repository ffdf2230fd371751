"""Build a span controller from application settings."""

from span_linker.config import AppConfig, get_settings
from span_linker.sinks.base import RunSink
from span_linker.tracing.streaming import ChunkAggregator, StreamingSpanController


def build_controller(
    sink: RunSink,
    settings: AppConfig | None = None,
    aggregator: ChunkAggregator | None = None,
) -> StreamingSpanController:
    """Create a controller configured from settings.

    Args:
        sink: Destination for run records.
        settings: Configuration; defaults to the settings singleton.
        aggregator: Optional custom chunk aggregator for streaming spans.

    Returns:
        StreamingSpanController honouring ``tracing_enabled`` and
        ``default_session_name``.
    """
    settings = settings or get_settings()
    return StreamingSpanController(
        sink,
        enabled=settings.tracing_enabled,
        default_session_name=settings.default_session_name,
        aggregator=aggregator,
    )
