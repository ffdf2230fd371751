"""Pydantic models for run records sent to the trace sink."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from span_linker.tracing.types import RunKind


class Run(BaseModel):
    """A span as understood by the trace sink."""

    id: str = Field(..., description="Run identifier, unique per span instance")
    trace_id: str = Field(..., description="Identifier shared by the whole trace")
    name: str = Field(..., description="Display name of the operation")
    run_type: RunKind = Field(..., description="Kind of run")
    start_time: datetime = Field(..., description="Start time (UTC)")
    end_time: datetime | None = Field(None, description="End time, set when finalized")
    inputs: dict[str, Any] = Field(default_factory=dict, description="Input payload")
    outputs: dict[str, Any] | None = Field(None, description="Output payload")
    error: str | None = Field(None, description="Error message if the run failed")
    parent_run_id: str | None = Field(None, description="Enclosing run, absent at the root")
    dotted_order: str = Field(..., description="Position of the run in the trace tree")
    session_name: str = Field("", description="Session (project) name")
    reference_example_id: str | None = Field(None, description="Associated example")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    extra: dict[str, Any] = Field(default_factory=dict, description="Metadata")

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready representation with absent fields left out."""
        return self.model_dump(mode="json", exclude_none=True)


class RunPatch(BaseModel):
    """Update applied to a run when its span ends."""

    end_time: datetime = Field(..., description="End time (UTC)")
    inputs: dict[str, Any] | None = Field(None, description="Late-arriving input payload")
    outputs: dict[str, Any] | None = Field(None, description="Output payload")
    error: str | None = Field(None, description="Error message")
    extra: dict[str, Any] | None = Field(None, description="Extra metadata (e.g. model usage)")
    total_tokens: int = Field(0, ge=0)
    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_outputs_or_error(self) -> "RunPatch":
        """A patch carries either outputs or an error, never both."""
        if self.outputs is not None and self.error is not None:
            raise ValueError("RunPatch cannot carry both outputs and error")
        return self

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready representation with absent and zero token fields left out."""
        payload = self.model_dump(mode="json", exclude_none=True)
        for key in ("total_tokens", "prompt_tokens", "completion_tokens"):
            if not payload.get(key):
                payload.pop(key, None)
        return payload
