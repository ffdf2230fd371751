"""Background task management for streaming spans.

Stream drains run as fire-and-forget tasks. References are kept here so the
tasks are not garbage collected while the caller moves on.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from span_linker.telemetry import STREAM_TASK_CRASHED, get_logger

log = get_logger(__name__)

_background_tasks: set[asyncio.Task[Any]] = set()


def run_in_background(coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
    """Run a coroutine in the background without blocking.

    Must be called from within a running event loop.

    Args:
        coro: Coroutine to run.
        name: Optional task name (shows up in logs).

    Returns:
        The scheduled task.
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    task.add_done_callback(_log_task_error)
    return task


def _log_task_error(task: asyncio.Task[Any]) -> None:
    """Log anything that escaped a background task's own error handling."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error(
            STREAM_TASK_CRASHED,
            task_name=task.get_name(),
            error=str(exc),
            exc_info=(type(exc), exc, exc.__traceback__),
        )


async def wait_for_background_tasks() -> None:
    """Wait for all background tasks to complete.

    Useful for tests and graceful shutdown.
    """
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


def get_background_task_count() -> int:
    """Get the number of running background tasks."""
    return len(_background_tasks)
