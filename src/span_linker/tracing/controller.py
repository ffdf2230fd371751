"""Span lifecycle controller.

Starting a span mints a run id, places the run in the trace tree (trace id,
parent run id, dotted order), sends it to the sink, and publishes new trace
state for descendants. Ending a span sends exactly one update. Sink and
encoding failures are logged and never reach the traced operation.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from span_linker.telemetry import (
    RUN_CREATE_FAILED,
    RUN_UPDATE_FAILED,
    SPAN_OPTIONS_INVALID,
    SPAN_PAYLOAD_ENCODING_FAILED,
    SPAN_STATE_MISSING,
    get_logger,
)
from span_linker.tracing.background import run_in_background
from span_linker.tracing.context import (
    CallContext,
    TraceOptions,
    get_or_init_state,
    get_state,
    get_trace_options,
    iter_tags,
    publish_state,
)
from span_linker.tracing.encoding import to_jsonable
from span_linker.tracing.models import Run, RunPatch
from span_linker.tracing.ordering import compose_dotted_order, new_run_id, next_start_time
from span_linker.tracing.types import PayloadEncodingError, SpanDescriptor

if TYPE_CHECKING:
    from span_linker.sinks.base import RunSink

log = get_logger(__name__)


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PreparedSpan:
    """A span placed in the trace tree but not yet sent to the sink.

    Attributes:
        parent_ctx: Context the span was started from (with state initialised).
        child_ctx: Context carrying the state published for descendants.
        run: Run record without inputs.
    """

    parent_ctx: CallContext
    child_ctx: CallContext
    run: Run


class SpanController:
    """Start and end spans against a RunSink.

    Attributes:
        sink: Destination for run records.
        enabled: When False every span is treated as untraced.
        default_session_name: Session applied when the trace options set none.
    """

    def __init__(
        self,
        sink: RunSink,
        *,
        enabled: bool = True,
        default_session_name: str = "",
    ) -> None:
        self.sink = sink
        self.enabled = enabled
        self.default_session_name = default_session_name

    def is_traced(self, descriptor: SpanDescriptor | None) -> bool:
        """Return True if spans for ``descriptor`` should be recorded."""
        return self.enabled and descriptor is not None and not descriptor.untraced

    def prepare_span(self, ctx: CallContext, descriptor: SpanDescriptor) -> PreparedSpan | None:
        """Mint a run for ``descriptor`` and derive the descendants' context.

        The trace state of ``ctx`` is read, never modified: the root of a trace
        takes its own run id as trace id in the state it publishes.

        Returns:
            The prepared span, or None when the trace options cannot form a
            valid run (the span is then treated as untraced).
        """
        ctx, state = get_or_init_state(ctx)
        options = get_trace_options(ctx) or TraceOptions()

        run_id = new_run_id()
        trace_id = state.trace_id or run_id
        start_time = next_start_time()

        try:
            run = Run(
                id=run_id,
                trace_id=trace_id,
                name=descriptor.display_name,
                run_type=descriptor.kind,
                start_time=start_time,
                parent_run_id=state.parent_run_id or None,
                dotted_order=compose_dotted_order(state.parent_dotted_order, start_time, run_id),
                session_name=options.session_name or self.default_session_name,
                reference_example_id=options.reference_example_id or None,
                tags=list(iter_tags(options)),
                extra=dict(options.metadata),
            )
        except (ValidationError, TypeError) as e:
            log.warning(
                SPAN_OPTIONS_INVALID,
                name=descriptor.display_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        child_state = state.child(trace_id, run_id, run.dotted_order)
        return PreparedSpan(parent_ctx=ctx, child_ctx=publish_state(ctx, child_state), run=run)

    async def start_span(
        self,
        ctx: CallContext,
        descriptor: SpanDescriptor | None,
        inputs: Any = None,
    ) -> tuple[CallContext, str | None]:
        """Start a span and record its run.

        Args:
            ctx: Context of the caller.
            descriptor: Operation being traced; None disables tracing.
            inputs: Input payload, stored as ``{"input": ...}`` when not None.

        Returns:
            ``(child_ctx, run_id)``. When tracing is disabled, or the trace
            options are invalid, ``ctx`` is returned unchanged with a run id of
            None; such a span must not be passed to end_span, which would
            otherwise finalize the enclosing span.
        """
        if descriptor is None or not self.is_traced(descriptor):
            return ctx, None

        span = self.prepare_span(ctx, descriptor)
        if span is None:
            return ctx, None
        run = span.run

        if inputs is not None:
            try:
                run.inputs = {"input": to_jsonable(inputs)}
            except PayloadEncodingError as e:
                log.warning(
                    SPAN_PAYLOAD_ENCODING_FAILED,
                    run_id=run.id,
                    name=run.name,
                    field="inputs",
                    error=str(e),
                )

        await self.send_create(run)
        return span.child_ctx, run.id

    async def end_span(
        self,
        ctx: CallContext,
        descriptor: SpanDescriptor | None,
        output: Any = None,
        *,
        error: BaseException | str | None = None,
        run_id: str | None = None,
    ) -> CallContext:
        """End a span with its output or its error.

        The sink update is shielded from cancellation of the caller: the run is
        finalized even if the caller is cancelled while waiting for it, in which
        case the caller still sees CancelledError.

        Args:
            ctx: Context returned by start_span.
            descriptor: Operation being traced; None disables tracing.
            output: Output payload, stored as ``{"output": ...}``.
            error: Failure of the operation; takes precedence over ``output``.
            run_id: Run to finalize; defaults to the span's own run from ``ctx``.

        Returns:
            ``ctx``, unchanged.
        """
        if descriptor is None or not self.is_traced(descriptor):
            return ctx

        if run_id is None:
            state = get_state(ctx)
            if state is None or not state.parent_run_id:
                log.warning(SPAN_STATE_MISSING, name=descriptor.display_name, hook="end_span")
                return ctx
            run_id = state.parent_run_id

        patch = RunPatch(end_time=utcnow())
        if error is not None:
            patch.error = _describe_error(error)
        elif output is not None:
            try:
                patch.outputs = {"output": to_jsonable(output)}
            except PayloadEncodingError as e:
                log.warning(
                    SPAN_PAYLOAD_ENCODING_FAILED,
                    run_id=run_id,
                    field="outputs",
                    error=str(e),
                )

        task = run_in_background(self.send_update(run_id, patch), name=f"finalize-{run_id}")
        await asyncio.shield(task)
        return ctx

    async def send_create(self, run: Run) -> None:
        """Deliver a new run; failures are logged, never raised."""
        try:
            await self.sink.create_run(run)
        except Exception as e:
            log.warning(
                RUN_CREATE_FAILED,
                run_id=run.id,
                trace_id=run.trace_id,
                name=run.name,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def send_update(self, run_id: str, patch: RunPatch) -> None:
        """Deliver a run update; failures are logged, never raised."""
        try:
            await self.sink.update_run(run_id, patch)
        except Exception as e:
            log.warning(
                RUN_UPDATE_FAILED,
                run_id=run_id,
                error=str(e),
                error_type=type(e).__name__,
            )


def _describe_error(error: BaseException | str) -> str:
    if isinstance(error, BaseException):
        message = str(error)
        return f"{type(error).__name__}: {message}" if message else type(error).__name__
    return error
