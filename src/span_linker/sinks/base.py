"""RunSink capability.

A sink is whatever durably stores runs. The tracing core only needs two
operations and treats both as best-effort: failures are logged by the caller
and never retried.
"""

from typing import Protocol, runtime_checkable

from span_linker.tracing.models import Run, RunPatch


@runtime_checkable
class RunSink(Protocol):
    """Destination for run records.

    Implementations must tolerate concurrent calls from many spans, and a
    create_run whose parent_run_id has not been created yet.
    """

    async def create_run(self, run: Run) -> Run | None:
        """Record a new run.

        May return the run as echoed back by the store (with server-generated
        fields); callers do not depend on it.

        Raises:
            SinkError: If the run could not be delivered.
        """
        ...

    async def update_run(self, run_id: str, patch: RunPatch) -> None:
        """Apply ``patch`` to the run ``run_id``.

        Raises:
            SinkError: If the update could not be delivered.
        """
        ...
