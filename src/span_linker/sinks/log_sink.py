"""Sink that writes runs to the structured log."""

from span_linker.telemetry import RUN_CREATED, RUN_UPDATED, get_logger
from span_linker.tracing.models import Run, RunPatch

log = get_logger(__name__)


class LoggingRunSink:
    """RunSink emitting one structlog event per call.

    Handy during development: with SPAN_LINKER_LOG_DIR set, the JSON log file
    holds every run and patch.
    """

    def __init__(self, level: str = "info") -> None:
        self._emit = getattr(log, level.lower())

    async def create_run(self, run: Run) -> Run | None:
        self._emit(RUN_CREATED, **run.to_payload())
        return None

    async def update_run(self, run_id: str, patch: RunPatch) -> None:
        self._emit(RUN_UPDATED, run_id=run_id, **patch.to_payload())
