"""In-memory sink that records every call.

Used by tests and for inspecting a trace tree locally.
"""

from dataclasses import dataclass, field

from span_linker.tracing.models import Run, RunPatch
from span_linker.tracing.types import SinkError


@dataclass
class SinkCall:
    """One call made to the sink, in arrival order."""

    operation: str  # "create_run" | "update_run"
    run_id: str
    run: Run | None = None
    patch: RunPatch | None = None


@dataclass
class RecordingRunSink:
    """RunSink that keeps runs and patches in memory.

    Attributes:
        calls: Every call in arrival order.
        fail_create: When True, create_run records the call then raises SinkError.
        fail_update: When True, update_run records the call then raises SinkError.
    """

    calls: list[SinkCall] = field(default_factory=list)
    fail_create: bool = False
    fail_update: bool = False

    async def create_run(self, run: Run) -> Run | None:
        self.calls.append(SinkCall("create_run", run.id, run=run))
        if self.fail_create:
            raise SinkError(f"create_run rejected for {run.id}")
        return run

    async def update_run(self, run_id: str, patch: RunPatch) -> None:
        self.calls.append(SinkCall("update_run", run_id, patch=patch))
        if self.fail_update:
            raise SinkError(f"update_run rejected for {run_id}")

    @property
    def created(self) -> list[Run]:
        """Runs passed to create_run, in arrival order."""
        return [c.run for c in self.calls if c.operation == "create_run" and c.run is not None]

    @property
    def updates(self) -> list[tuple[str, RunPatch]]:
        """(run_id, patch) pairs passed to update_run, in arrival order."""
        return [
            (c.run_id, c.patch)
            for c in self.calls
            if c.operation == "update_run" and c.patch is not None
        ]

    def run_by_name(self, name: str) -> Run:
        """Return the first created run called ``name``.

        Raises:
            KeyError: If no such run was created.
        """
        for run in self.created:
            if run.name == name:
                return run
        raise KeyError(name)

    def finalized(self) -> dict[str, Run]:
        """Created runs with their patches applied, keyed by run id."""
        runs = {run.id: run.model_copy(deep=True) for run in self.created}
        for run_id, patch in self.updates:
            run = runs.get(run_id)
            if run is None:
                continue
            changes = patch.model_dump(
                exclude_none=True,
                include={"end_time", "inputs", "outputs", "error"},
            )
            if patch.extra:
                changes["extra"] = {**run.extra, **patch.extra}
            runs[run_id] = run.model_copy(update=changes)
        return runs

    def clear(self) -> None:
        """Forget all recorded calls."""
        self.calls.clear()
